"""
Unit Tests for the Funding Aggregation Service

These tests verify that:
- One failing connector never prevents the others from contributing
- updatedAt is the most recent collectedAt
- Cached reads do not touch connectors unless forced
- History is cached per (symbol, granularity key)

Run with:
    pytest tests/unit/test_funding_service.py -v
"""

import asyncio

import pytest

from core.connector_manager import ConnectorManager
from core.exceptions import EmptyResponseError, HttpError
from services.funding_service import FundingService
from storage import InMemoryFundingStore


def build_service(connectors):
    return FundingService(store=InMemoryFundingStore(), manager=ConnectorManager(connectors=connectors))


class TestRefreshLatest:
    """Tests for refresh_latest"""

    @pytest.mark.asyncio
    async def test_partial_failure(self, make_connector, make_snapshot):
        """Verify 3 healthy connectors of 5 contribute all their snapshots"""
        per_connector = 4
        healthy = [
            make_connector(name, latest=[make_snapshot(symbol=f"{name}-{i}", exchange=name) for i in range(per_connector)])
            for name in ("aster", "lighter", "edgex")
        ]
        broken = [
            make_connector("paradex", error=HttpError("Request failed with status 500 - ", 500, "u")),
            make_connector("hyperliquid", error=EmptyResponseError("nothing")),
        ]
        service = build_service(healthy[:1] + broken[:1] + healthy[1:2] + broken[1:] + healthy[2:])

        payload = await service.refresh_latest()

        assert len(payload.snapshots) == 3 * per_connector
        assert {s.exchange for s in payload.snapshots} == {"aster", "lighter", "edgex"}
        assert all(c.latest_calls == 1 for c in healthy + broken)

    @pytest.mark.asyncio
    async def test_all_connectors_failing(self, make_connector):
        """Verify a total outage yields an empty payload stamped now, not an exception"""
        service = build_service([make_connector("a", error=EmptyResponseError("x"))])

        payload = await service.refresh_latest()

        assert payload.snapshots == []
        assert payload.updated_at.endswith("Z")

    @pytest.mark.asyncio
    async def test_updated_at_is_latest_collected_at(self, make_connector, make_snapshot):
        """Verify updatedAt is the maximum collectedAt across snapshots"""
        service = build_service([
            make_connector("a", latest=[make_snapshot(collected_at=1700000000000)]),
            make_connector("b", latest=[make_snapshot(collected_at=1700003600000)]),
            make_connector("c", latest=[make_snapshot(collected_at=1699990000000)]),
        ])

        payload = await service.refresh_latest()

        assert payload.updated_at == "2023-11-14T23:13:20.000Z"

    @pytest.mark.asyncio
    async def test_invalid_period_is_kept(self, make_connector, make_snapshot):
        """Verify snapshots with a non-positive period are kept"""
        service = build_service([make_connector("a", latest=[make_snapshot(period_hours=0)])])

        payload = await service.refresh_latest()

        assert len(payload.snapshots) == 1
        assert payload.snapshots[0].period_hours == 0

    @pytest.mark.asyncio
    async def test_slow_connector_does_not_block_others(self, make_connector, make_snapshot):
        """Verify connectors run concurrently"""
        class SlowConnector(type(make_connector("x"))):
            async def _fetch_latest(self):
                await asyncio.sleep(0.05)
                return await super()._fetch_latest()

        slow = SlowConnector("slow", latest=[make_snapshot(symbol="SLOW")])
        others = [make_connector(f"fast{i}", latest=[make_snapshot()]) for i in range(3)]
        service = build_service([slow] + others)

        started = asyncio.get_running_loop().time()
        payload = await service.refresh_latest()
        elapsed = asyncio.get_running_loop().time() - started

        assert len(payload.snapshots) == 4
        assert elapsed < 0.15


class TestCachedLatest:
    """Tests for get_cached_latest"""

    @pytest.mark.asyncio
    async def test_cached_read_is_idempotent(self, make_connector, make_snapshot):
        """Verify repeated cached reads return the same value without fetching"""
        connector = make_connector("a", latest=[make_snapshot()])
        service = build_service([connector])

        first = await service.get_cached_latest()
        second = await service.get_cached_latest()

        assert connector.latest_calls == 1
        assert first == second

    @pytest.mark.asyncio
    async def test_force_refresh_fetches_again(self, make_connector, make_snapshot):
        """Verify force_refresh always calls connectors"""
        connector = make_connector("a", latest=[make_snapshot()])
        service = build_service([connector])

        await service.get_cached_latest()
        await service.get_cached_latest(force_refresh=True)

        assert connector.latest_calls == 2


class TestHistory:
    """Tests for history refresh and cached reads"""

    @pytest.mark.asyncio
    async def test_history_merged_and_cached(self, make_connector, make_point, history_params):
        """Verify history is merged across connectors and stored under its key"""
        good = make_connector("a", history=[make_point(exchange="A"), make_point(exchange="A")])
        also_good = make_connector("b", history=[make_point(exchange="B")])
        bad = make_connector("c", error=EmptyResponseError("none"))
        service = build_service([good, bad, also_good])

        points = await service.get_cached_history_for_symbol("btc", history_params, "1h-24h")
        cached = await service.get_cached_history_for_symbol("BTC", history_params, "1h-24h")

        assert len(points) == 3
        assert cached == points
        assert good.history_calls == 1
        assert service.store.history_keys() == ["BTC::1h-24h"]

    @pytest.mark.asyncio
    async def test_empty_history_is_refetched(self, make_connector, history_params):
        """Verify an empty cached bucket triggers a refresh on the next read"""
        connector = make_connector("a")
        service = build_service([connector])

        await service.get_cached_history_for_symbol("BTC", history_params, "1h-24h")
        await service.get_cached_history_for_symbol("BTC", history_params, "1h-24h")

        assert connector.history_calls == 2

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, make_connector, make_point, history_params):
        """Verify different granularity keys are cached separately"""
        service = build_service([make_connector("a", history=[make_point()])])

        await service.refresh_history_for_symbol("BTC", history_params, "1h-24h")
        await service.refresh_history_for_symbol("BTC", history_params, "8h-168h")
        await service.refresh_history_for_symbol("ETH", history_params, "1h-24h")

        assert sorted(service.store.history_keys()) == ["BTC::1h-24h", "BTC::8h-168h", "ETH::1h-24h"]


class TestConnectorNames:
    def test_connector_names(self, make_connector):
        service = build_service([make_connector("aster"), make_connector("edgex")])
        assert service.connector_names == ["aster", "edgex"]
