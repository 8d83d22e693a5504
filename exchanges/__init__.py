"""
Exchange Connectors Package

This package contains one module per funding source. Each exchange has its own
subfolder with:
- __init__.py: Connector class implementing FundingConnector
- api_client.py: REST API client built on core.http_client.BaseAPIClient

The modular design allows adding new exchanges without modifying the
aggregation service; register the connector in core.connector_manager.
"""
