"""
Core Package

Contains the exchange-agnostic core logic including:
- FundingConnector: Abstract base class every exchange adapter implements
- ConnectorManager: Registry that builds and manages the connectors
- BaseAPIClient: Shared aiohttp transport with rate-limit retries
- Normalization: Canonical timestamps, numbers and record builders
- Schemas: Pydantic models for funding snapshots and history points

This layer ensures all exchanges follow the same interface, making the system modular and scalable.
"""
