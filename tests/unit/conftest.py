"""
Shared fixtures for unit tests.

Provides:
- mock_response: fake aiohttp response usable as `async with session.get(...)`
- history_params: a fixed one-day HistoryParams window
- make_snapshot / make_point: canonical record builders with sensible defaults
- make_connector: in-memory FundingConnector that never touches the network
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from core.connector_interface import ConnectorState, FundingConnector
from core.http_client import BaseAPIClient
from core.normalization import build_history_point, build_snapshot
from core.schemas import HistoryParams


class MockResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int, json_data=None, text_data: str = ""):
        self.status = status
        self._json_data = json_data
        self._text_data = text_data

    async def json(self, content_type=None):
        return self._json_data

    async def text(self):
        return self._text_data

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


class FakeConnector(FundingConnector):
    """Connector returning canned data (or raising) and counting calls."""

    def __init__(
        self,
        name: str,
        latest: Optional[list] = None,
        history: Optional[list] = None,
        error: Optional[Exception] = None,
        label: Optional[str] = None,
        state: Optional[ConnectorState] = None
    ):
        super().__init__(state=state)
        self.name = name
        self.label = label or name.capitalize()
        self.latest = latest or []
        self.history = history or []
        self.error = error
        self.latest_calls = 0
        self.history_calls = 0

    def create_client(self) -> BaseAPIClient:
        return BaseAPIClient(base_url="http://fake.invalid")

    async def _fetch_latest(self):
        self.latest_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.latest)

    async def _fetch_history(self, symbol, params):
        self.history_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.history)


@pytest.fixture
def mock_response():
    return MockResponse


@pytest.fixture
def history_params() -> HistoryParams:
    start = datetime(2023, 11, 14, tzinfo=timezone.utc)
    return HistoryParams(from_time=start, to_time=start + timedelta(days=1), granularity_hours=1)


@pytest.fixture
def make_snapshot():
    def _make(
        symbol: str = "BTCUSDT",
        exchange: str = "Aster",
        funding_rate_pct: float = 0.01,
        period_hours: float = 8,
        collected_at="2023-11-14T22:13:20.000Z"
    ):
        return build_snapshot(
            symbol=symbol,
            exchange=exchange,
            funding_rate_pct=funding_rate_pct,
            period_hours=period_hours,
            collected_at=collected_at,
        )

    return _make


@pytest.fixture
def make_point():
    def _make(
        symbol: str = "BTC",
        exchange: str = "Hyperliquid",
        bucket_start=1700000000000,
        avg: float = 0.01
    ):
        return build_history_point(
            symbol=symbol,
            exchange=exchange,
            bucket_start=bucket_start,
            bucket_duration_hours=1,
            avg_funding_rate_pct=avg,
            source_count=1,
        )

    return _make


@pytest.fixture
def make_connector():
    def _make(name: str, **kwargs) -> FakeConnector:
        return FakeConnector(name, **kwargs)

    return _make
