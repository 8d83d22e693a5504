"""
Unit Tests for the Paradex Connector

These tests verify that:
- Markets are filtered to USD perpetuals, cached, and fall back when unavailable
- Latest polls one market at a time and skips markets that 404
- History follows the cursor, and a 429 keeps collected pages and starts the cooldown

Run with:
    pytest tests/unit/test_paradex.py -v
"""

import pytest
import pytest_asyncio

from core.exceptions import EmptyResponseError, HttpError, NotFoundError, RateLimitedError
from core.schemas import ConnectorOptions
from exchanges.paradex import DEFAULT_MARKETS, ParadexConnector


MARKETS = {
    "results": [
        {"symbol": "BTC-USD-PERP", "asset_kind": "PERP"},
        {"symbol": "ETH-USD-PERP", "asset_kind": "PERP"},
        {"symbol": "BTC-USD-100000-C", "asset_kind": "PERP_OPTION"},
        {"symbol": "ETH-USDC-PERP", "asset_kind": "PERP"},
    ]
}


def funding_record(market, created_at, rate="0.0001", rate_8h="0.0002", period=8):
    return {
        "market": market,
        "created_at": created_at,
        "funding_rate": rate,
        "funding_rate_8h": rate_8h,
        "funding_period_hours": period,
    }


@pytest_asyncio.fixture
async def connector():
    paradex = ParadexConnector()
    paradex.LATEST_REQUEST_DELAY_SECONDS = 0
    paradex.HISTORY_PAGE_DELAY_SECONDS = 0
    await paradex.initialize()
    yield paradex
    await paradex.shutdown()


class TestMarkets:
    """Tests for market resolution"""

    @pytest.mark.asyncio
    async def test_markets_filtered_and_cached(self, connector, monkeypatch):
        """Verify only PERP -USD-PERP markets are kept and the list is cached"""
        calls = 0

        async def mock_get(path, params=None, headers=None):
            nonlocal calls
            calls += 1
            return MARKETS

        monkeypatch.setattr(connector.client, "_get", mock_get)

        assert await connector.get_markets() == ["BTC-USD-PERP", "ETH-USD-PERP"]
        assert await connector.get_markets() == ["BTC-USD-PERP", "ETH-USD-PERP"]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_explicit_markets_skip_lookup(self, monkeypatch):
        """Verify configured markets are used as-is"""
        paradex = ParadexConnector(ConnectorOptions(markets=["SOL-USD-PERP"]))

        async def fail(*args, **kwargs):
            raise AssertionError("markets endpoint should not be called")

        paradex.client = paradex.create_client()
        monkeypatch.setattr(paradex.client, "get_markets", fail)

        assert await paradex.get_markets() == ["SOL-USD-PERP"]

    @pytest.mark.asyncio
    async def test_defaults_when_markets_unavailable(self, connector, monkeypatch):
        """Verify the default list is used when the lookup fails and nothing is cached"""
        async def mock_get(path, params=None, headers=None):
            raise HttpError("Request failed with status 503 - ", 503, path)

        monkeypatch.setattr(connector.client, "_get", mock_get)

        assert await connector.get_markets() == DEFAULT_MARKETS

    @pytest.mark.asyncio
    async def test_unexpected_market_shape_is_not_masked(self, connector, monkeypatch):
        """Verify errors other than upstream failures propagate instead of falling back"""
        async def mock_get(path, params=None, headers=None):
            return {"results": ["BTC-USD-PERP"]}

        monkeypatch.setattr(connector.client, "_get", mock_get)

        with pytest.raises(AttributeError):
            await connector.get_markets()

    @pytest.mark.asyncio
    async def test_resolve_market(self, connector, monkeypatch):
        """Verify base symbols map to markets and unknown symbols pass through"""
        async def mock_get(path, params=None, headers=None):
            return MARKETS

        monkeypatch.setattr(connector.client, "_get", mock_get)

        assert await connector.resolve_market("eth") == "ETH-USD-PERP"
        assert await connector.resolve_market("BTC-USD-PERP") == "BTC-USD-PERP"
        assert await connector.resolve_market("DOGE") == "DOGE"


class TestFetchLatest:
    """Tests for ParadexConnector.fetch_latest"""

    @pytest.mark.asyncio
    async def test_one_snapshot_per_market(self, monkeypatch):
        """Verify each market yields a snapshot and 404 markets are skipped"""
        paradex = ParadexConnector(ConnectorOptions(markets=["BTC-USD-PERP", "GONE-USD-PERP", "ETH-USD-PERP"]))
        paradex.LATEST_REQUEST_DELAY_SECONDS = 0
        await paradex.initialize()
        requested = []

        async def mock_get(path, params=None, headers=None):
            requested.append(params["market"])
            assert params["page_size"] == 1
            if params["market"] == "GONE-USD-PERP":
                raise NotFoundError("Request failed with status 404 - ", 404, path)
            return {"results": [funding_record(params["market"], 1700000000000, period=1)]}

        monkeypatch.setattr(paradex.client, "_get", mock_get)

        snapshots = await paradex.fetch_latest()
        await paradex.shutdown()

        assert requested == ["BTC-USD-PERP", "GONE-USD-PERP", "ETH-USD-PERP"]
        assert [s.symbol for s in snapshots] == ["BTC-USD-PERP", "ETH-USD-PERP"]
        assert snapshots[0].exchange == "Paradex"
        assert snapshots[0].funding_rate_pct == pytest.approx(0.01)
        assert snapshots[0].period_hours == 1
        assert snapshots[0].mark_price is None
        assert snapshots[0].collected_at == "2023-11-14T22:13:20.000Z"

    @pytest.mark.asyncio
    async def test_max_markets_caps_requests(self, monkeypatch):
        """Verify no more than max_markets markets are polled"""
        markets = [f"M{i}-USD-PERP" for i in range(5)]
        paradex = ParadexConnector(ConnectorOptions(markets=markets, max_markets=2))
        paradex.LATEST_REQUEST_DELAY_SECONDS = 0
        await paradex.initialize()

        async def mock_get(path, params=None, headers=None):
            return {"results": [funding_record(params["market"], 1700000000000)]}

        monkeypatch.setattr(paradex.client, "_get", mock_get)

        snapshots = await paradex.fetch_latest()
        await paradex.shutdown()

        assert len(snapshots) == 2

    @pytest.mark.asyncio
    async def test_nothing_collected_raises(self, connector, monkeypatch):
        """Verify an all-empty poll is reported as a failure"""
        async def mock_get(path, params=None, headers=None):
            if path.endswith("/markets"):
                return MARKETS
            return {"results": []}

        monkeypatch.setattr(connector.client, "_get", mock_get)

        with pytest.raises(EmptyResponseError):
            await connector.fetch_latest()


class TestFetchHistory:
    """Tests for ParadexConnector.fetch_history"""

    @pytest.mark.asyncio
    async def test_cursor_pagination(self, connector, monkeypatch, history_params):
        """Verify every page is collected and the cursor is passed along"""
        cursors = []

        async def mock_get(path, params=None, headers=None):
            if path.endswith("/markets"):
                return MARKETS
            cursors.append(params["cursor"])
            assert params["start_at"] == history_params.from_ms
            assert params["end_at"] == history_params.to_ms
            if params["cursor"] is None:
                return {"next": "page-2", "results": [funding_record("BTC-USD-PERP", 1699920000000)]}
            return {"next": None, "results": [funding_record("BTC-USD-PERP", 1699948800000, rate="-0.0001", rate_8h="-0.0003")]}

        monkeypatch.setattr(connector.client, "_get", mock_get)

        points = await connector.fetch_history("BTC", history_params)

        assert cursors == [None, "page-2"]
        assert len(points) == 2
        first, second = points
        assert first.symbol == "BTC-USD-PERP"
        assert first.avg_funding_rate_pct == pytest.approx(0.01)
        assert first.max_funding_rate_pct == pytest.approx(0.02)
        assert first.min_funding_rate_pct == pytest.approx(0.01)
        assert first.bucket_duration_hours == 8
        assert second.max_funding_rate_pct == pytest.approx(-0.03)

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_collected_pages(self, connector, monkeypatch, history_params):
        """Verify a 429 mid-pagination returns what was collected and starts the cooldown"""
        async def mock_get(path, params=None, headers=None):
            if path.endswith("/markets"):
                return MARKETS
            if params["cursor"] is None:
                return {"next": "page-2", "results": [funding_record("BTC-USD-PERP", 1699920000000)]}
            raise RateLimitedError("Request failed with status 429 - ", 429, path)

        monkeypatch.setattr(connector.client, "_get", mock_get)

        points = await connector.fetch_history("BTC", history_params)

        assert len(points) == 1
        assert connector.state.in_cooldown()

    @pytest.mark.asyncio
    async def test_unknown_market_returns_empty(self, connector, monkeypatch, history_params):
        """Verify a 404 for the market yields an empty history"""
        async def mock_get(path, params=None, headers=None):
            if path.endswith("/markets"):
                return MARKETS
            raise NotFoundError("Request failed with status 404 - ", 404, path)

        monkeypatch.setattr(connector.client, "_get", mock_get)

        assert await connector.fetch_history("DOGE", history_params) == []
