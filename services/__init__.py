"""
Services Package

Long-lived services built on top of the connectors:
- funding_service: Fan-out aggregation and cache policy
- ingest_scheduler: Periodic refresh driver
"""
