"""
Test Suite

Unit tests for the funding aggregator, all offline.

Structure:
- tests/unit/: connectors (with mocked HTTP), normalization, store, service,
  scheduler and the FastAPI routes

Uses pytest with pytest-asyncio for testing async functionality.
"""
