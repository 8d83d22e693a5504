"""
Unit Tests for the HTTP API

The application lifespan (connector sessions, scheduler) is not started: the
module-level funding service is swapped for one backed by in-memory connectors.

Run with:
    pytest tests/unit/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

import app.main as main
from core.connector_manager import ConnectorManager
from core.exceptions import EmptyResponseError
from services.funding_service import FundingService
from storage import InMemoryFundingStore


@pytest.fixture
def connectors(make_connector, make_snapshot, make_point):
    return [
        make_connector(
            "aster",
            latest=[make_snapshot(collected_at=1700000000000)],
            history=[make_point(exchange="Aster")],
        ),
        make_connector("paradex", error=EmptyResponseError("down")),
    ]


@pytest.fixture
def client(monkeypatch, connectors):
    service = FundingService(store=InMemoryFundingStore(), manager=ConnectorManager(connectors=connectors))
    monkeypatch.setattr(main, "funding_service", service)
    return TestClient(main.app)


class TestParseDuration:
    """Tests for parse_duration_hours"""

    @pytest.mark.parametrize("value, expected", [
        ("24h", 24),
        ("7d", 168),
        ("1d", 24),
        ("weekly", 5),
        ("", 5),
        (None, 5),
        ("0h", 5),
    ])
    def test_parse_duration_hours(self, value, expected):
        """Verify hours/days parse and anything else falls back to the default"""
        assert main.parse_duration_hours(value, 5) == expected


class TestSystemEndpoints:
    """Tests for /api/health and /api/exchanges"""

    def test_health(self, client):
        """Verify the health endpoint"""
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["timestamp"].endswith("Z")

    def test_exchanges(self, client):
        """Verify registered connectors are listed"""
        response = client.get("/api/exchanges")
        assert response.json() == {"exchanges": ["aster", "paradex"]}


class TestFundingEndpoints:
    """Tests for /api/funding/*"""

    def test_latest_uses_camel_case(self, client):
        """Verify the latest payload and its JSON field names"""
        response = client.get("/api/funding/latest")

        assert response.status_code == 200
        body = response.json()
        assert body["updatedAt"] == "2023-11-14T22:13:20.000Z"
        assert len(body["snapshots"]) == 1
        snapshot = body["snapshots"][0]
        assert snapshot["fundingRatePct"] == 0.01
        assert snapshot["periodHours"] == 8
        assert snapshot["collectedAt"] == "2023-11-14T22:13:20.000Z"

    def test_latest_refresh_flag(self, client, connectors):
        """Verify refresh=true bypasses the cache"""
        client.get("/api/funding/latest")
        client.get("/api/funding/latest")
        assert connectors[0].latest_calls == 1

        client.get("/api/funding/latest", params={"refresh": "true"})
        assert connectors[0].latest_calls == 2

    def test_history(self, client, connectors):
        """Verify history echoes its parameters and is cached per range/granularity"""
        response = client.get("/api/funding/history", params={"symbol": "btc", "range": "7d", "granularity": "8h"})

        assert response.status_code == 200
        body = response.json()
        assert body["symbol"] == "btc"
        assert body["range"] == "7d"
        assert body["granularity"] == "8h"
        assert len(body["points"]) == 1
        assert body["points"][0]["avgFundingRatePct"] == 0.01
        assert main.funding_service.store.history_keys() == ["BTC::8h-168h"]

        client.get("/api/funding/history", params={"symbol": "BTC", "range": "7d", "granularity": "8h"})
        assert connectors[0].history_calls == 1

    def test_history_defaults(self, client):
        """Verify default symbol, range and granularity"""
        body = client.get("/api/funding/history").json()

        assert (body["symbol"], body["range"], body["granularity"]) == ("BTC", "24h", "1h")
        assert main.funding_service.store.history_keys() == ["BTC::1h-24h"]
