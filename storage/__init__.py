"""
Storage Package

Handles caching of aggregated funding data.

Current implementation:
- InMemoryFundingStore: volatile latest-snapshot slot plus keyed history buckets

The aggregation service is the only writer; API routes and the scheduler read
through the service.
"""

from storage.memory_store import InMemoryFundingStore, create_in_memory_store

__all__ = ["InMemoryFundingStore", "create_in_memory_store"]
