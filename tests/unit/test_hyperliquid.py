"""
Unit Tests for the Hyperliquid Connector and API Client

These tests verify that:
- predictedFundings is reduced to the HlPerp venue per coin
- Snapshots use an 8h period, no mark price and the call time as collectedAt
- History prefers fundingRate8h and sends the documented POST payload

Run with:
    pytest tests/unit/test_hyperliquid.py -v
"""

import pytest
import pytest_asyncio

from core.exceptions import EmptyResponseError, MalformedResponseError
from exchanges.hyperliquid import HyperliquidConnector, resolve_coin


PREDICTED_FUNDINGS = [
    ["BTC", [
        ["BinPerp", {"fundingRate": "0.00015", "nextFundingTime": 1700006400000}],
        ["HlPerp", {"fundingRate": "0.0001", "nextFundingTime": 1700006400000}],
    ]],
    ["ETH", [
        ["HlPerp", {"fundingRate": "-0.00002", "nextFundingTime": 1700006400000}],
    ]],
    ["DOGE", [
        ["BybitPerp", {"fundingRate": "0.0003"}],
    ]],
    "garbage",
]


@pytest_asyncio.fixture
async def connector():
    hyperliquid = HyperliquidConnector()
    await hyperliquid.initialize()
    yield hyperliquid
    await hyperliquid.shutdown()


class TestApiClient:
    """Tests for HyperliquidAPIClient parsing"""

    @pytest.mark.asyncio
    async def test_predicted_fundings_keeps_hlperp_only(self, connector, monkeypatch):
        """Verify only the HlPerp venue is kept and coins without it are dropped"""
        async def mock_post(path, payload, headers=None):
            assert path == "/info"
            assert payload == {"type": "predictedFundings"}
            return PREDICTED_FUNDINGS

        monkeypatch.setattr(connector.client, "_post", mock_post)

        result = await connector.client.get_predicted_fundings()

        assert set(result) == {"BTC", "ETH"}
        assert result["BTC"]["fundingRate"] == "0.0001"

    @pytest.mark.asyncio
    async def test_predicted_fundings_rejects_non_list(self, connector, monkeypatch):
        """Verify an object body raises MalformedResponseError"""
        async def mock_post(path, payload, headers=None):
            return {"error": "bad request"}

        monkeypatch.setattr(connector.client, "_post", mock_post)

        with pytest.raises(MalformedResponseError):
            await connector.client.get_predicted_fundings()


class TestFetchLatest:
    """Tests for HyperliquidConnector.fetch_latest"""

    def test_resolve_coin(self):
        """Verify non-letters are stripped and the coin uppercased"""
        assert resolve_coin("btc") == "BTC"
        assert resolve_coin("eth-perp") == "ETHPERP"

    @pytest.mark.asyncio
    async def test_snapshots(self, connector, monkeypatch):
        """Verify snapshot fields"""
        async def mock_post(path, payload, headers=None):
            return PREDICTED_FUNDINGS

        monkeypatch.setattr(connector.client, "_post", mock_post)

        snapshots = await connector.fetch_latest()

        by_symbol = {s.symbol: s for s in snapshots}
        assert set(by_symbol) == {"BTC", "ETH"}
        btc = by_symbol["BTC"]
        assert btc.exchange == "Hyperliquid"
        assert btc.funding_rate_pct == pytest.approx(0.01)
        assert btc.period_hours == 8
        assert btc.mark_price is None
        assert btc.next_funding_at == "2023-11-15T00:00:00.000Z"
        assert btc.collected_at.endswith("Z")
        assert by_symbol["ETH"].funding_rate_pct == pytest.approx(-0.002)

    @pytest.mark.asyncio
    async def test_no_hlperp_entries_raises(self, connector, monkeypatch):
        """Verify a response without any HlPerp entry is a failure"""
        async def mock_post(path, payload, headers=None):
            return [["DOGE", [["BybitPerp", {"fundingRate": "0.0003"}]]]]

        monkeypatch.setattr(connector.client, "_post", mock_post)

        with pytest.raises(EmptyResponseError):
            await connector.fetch_latest()


class TestFetchHistory:
    """Tests for HyperliquidConnector.fetch_history"""

    @pytest.mark.asyncio
    async def test_history_payload_and_rates(self, connector, monkeypatch, history_params):
        """Verify the POST payload and the fundingRate8h preference"""
        sent = {}

        async def mock_post(path, payload, headers=None):
            sent.update(path=path, payload=payload)
            return {
                "fundingRates": [
                    {"coin": "BTC", "startTime": 1699920000000, "fundingRate": "0.0000125", "fundingRate8h": "0.0001"},
                    {"coin": "BTC", "startTime": 1699923600000, "fundingRate": "0.00002"},
                ]
            }

        monkeypatch.setattr(connector.client, "_post", mock_post)

        points = await connector.fetch_history("btc", history_params)

        assert sent["path"] == "/fundingHistory"
        assert sent["payload"] == {
            "type": "fundingHistory",
            "coin": "BTC",
            "startTime": history_params.from_ms,
            "endTime": history_params.to_ms,
            "intervalHours": 1,
        }

        assert [p.avg_funding_rate_pct for p in points] == [pytest.approx(0.01), pytest.approx(0.002)]
        assert points[0].bucket_start == "2023-11-14T00:00:00.000Z"
        assert points[1].bucket_start == "2023-11-14T01:00:00.000Z"
        assert all(p.exchange == "Hyperliquid" and p.source_count == 1 for p in points)

    @pytest.mark.asyncio
    async def test_missing_funding_rates_raises(self, connector, monkeypatch, history_params):
        """Verify a response without fundingRates is a failure"""
        async def mock_post(path, payload, headers=None):
            return {}

        monkeypatch.setattr(connector.client, "_post", mock_post)

        with pytest.raises(EmptyResponseError):
            await connector.fetch_history("BTC", history_params)
