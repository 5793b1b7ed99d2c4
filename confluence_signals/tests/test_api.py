"""Tests for the REST API."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from confluence_signals.api import create_app
from confluence_signals.strategy.signal_state import Resolution, SignalDirection, SignalStatus


@pytest.fixture
def populated(memory_store, make_signal, t0):
    signals = [
        make_signal(symbol="BTC", created_at=t0),
        make_signal(symbol="ETH", direction=SignalDirection.SELL, created_at=t0 + timedelta(hours=1)),
        make_signal(symbol="BTC", created_at=t0 + timedelta(hours=2)),
    ]
    for s in signals:
        memory_store.create(s)
    memory_store.resolve(signals[0].signal_id, Resolution(SignalStatus.WON, 104.5, 4.0), t0)
    return memory_store, signals


@pytest.fixture
def client(populated):
    store, _ = populated
    return TestClient(create_app(store))


class TestSignalsEndpoints:
    """Test signal history and detail endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Confluence Signals API"

    def test_list_newest_first(self, client, populated):
        _, signals = populated
        body = client.get("/api/signals").json()

        assert body["total_count"] == 3
        assert body["returned_count"] == 3
        assert [s["signal_id"] for s in body["signals"]] == [s.signal_id for s in reversed(signals)]

    def test_filters(self, client):
        assert client.get("/api/signals", params={"symbol": "btc"}).json()["total_count"] == 2
        assert client.get("/api/signals", params={"direction": "sell"}).json()["total_count"] == 1
        assert client.get("/api/signals", params={"status": "won"}).json()["total_count"] == 1

    def test_pagination(self, client):
        body = client.get("/api/signals", params={"limit": 1, "offset": 1}).json()

        assert body["total_count"] == 3
        assert body["returned_count"] == 1
        assert body["signals"][0]["symbol"] == "ETH"

    def test_invalid_params(self, client):
        assert client.get("/api/signals", params={"limit": 0}).status_code == 422
        assert client.get("/api/signals", params={"status": "open"}).status_code == 422

    def test_get_signal(self, client, populated):
        _, signals = populated
        body = client.get(f"/api/signals/{signals[0].signal_id}").json()

        assert body["status"] == "won"
        assert body["profit_loss_pct"] == 4.0
        assert body["indicators"][0]["name"] == "RSI (14)"

    def test_get_missing(self, client):
        assert client.get("/api/signals/unknown").status_code == 404

    def test_stats(self, client):
        body = client.get("/api/signals/stats").json()

        assert body["total"] == 3
        assert body["pending"] == 2
        assert body["wins"] == 1
        assert body["win_rate"] == 100.0


class TestCloseEndpoint:
    """Test manual close."""

    def test_close_breakeven(self, client, populated):
        _, signals = populated
        response = client.post(f"/api/signals/{signals[2].signal_id}/close", json={"price": 100.02})

        assert response.status_code == 200
        assert response.json()["status"] == "breakeven"

    def test_close_explicit_status(self, client, populated):
        _, signals = populated
        response = client.post(
            f"/api/signals/{signals[1].signal_id}/close", json={"price": 99.0, "status": "won"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "won"
        assert response.json()["result_price"] == 99.0

    def test_close_already_resolved(self, client, populated):
        _, signals = populated
        response = client.post(f"/api/signals/{signals[0].signal_id}/close", json={"price": 100.0})
        assert response.status_code == 409

    def test_close_missing(self, client):
        assert client.post("/api/signals/unknown/close", json={"price": 100.0}).status_code == 404

    @pytest.mark.parametrize("payload", [{"price": 0}, {"price": 100.0, "status": "pending"}, {}])
    def test_close_invalid_body(self, client, populated, payload):
        _, signals = populated
        response = client.post(f"/api/signals/{signals[2].signal_id}/close", json=payload)
        assert response.status_code == 422


def test_status_with_scheduler(memory_store):
    class Scheduler:
        is_running = False
        interval_seconds = 3600
        cycles_run = 0
        last_report = None

    body = TestClient(create_app(memory_store, scheduler=Scheduler())).get("/api/status").json()

    assert body["scheduler"]["running"] is False
    assert body["scheduler"]["last_cycle"] is None
