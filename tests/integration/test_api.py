"""
Integration Tests for the FastAPI Backend

Tests for the health check and the monitoring-session endpoints.
Uses async httpx for ASGI app testing.
"""
import inspect

import pytest
import pytest_asyncio
import httpx

from api.app import create_app
from api import routes
from vitals.blood_pressure import load_or_train_model


def _payload(samples):
    return {"samples": [{"timestamp_ms": s.timestamp_ms, "raw_value": s.raw_value} for s in samples]}


@pytest_asyncio.fixture
async def async_client():
    """Create async test client on a fresh session."""
    routes._session.reset()
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(warm_model=False)),
        base_url="http://test"
    ) as client:
        yield client
    routes._session.reset()


@pytest.mark.asyncio
class TestHealthEndpoint:
    async def test_health(self, async_client):
        response = await async_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["session"] == "idle"


@pytest.mark.asyncio
class TestSessionEndpoints:
    async def test_state_before_samples(self, async_client):
        response = await async_client.get("/session/state")
        assert response.status_code == 404

    async def test_push_and_read_state(self, async_client, ppg_72bpm):
        response = await async_client.post("/session/samples", json=_payload(ppg_72bpm))
        assert response.status_code == 200

        data = response.json()
        assert "disclaimer" in data
        assert data["samples_processed"] == 600
        assert data["finger"]["is_finger_detected"] is True
        assert abs(data["heartbeat"]["bpm"] - 72) <= 3
        assert 70 <= data["vitals"]["spo2"] <= 100
        assert data["vitals"]["arrhythmia_status"].startswith("NORMAL RHYTHM|")

        state = await async_client.get("/session/state")
        assert state.status_code == 200
        assert state.json()["timestamp_ms"] == data["timestamp_ms"]

    async def test_batches_continue_the_stream(self, async_client, ppg_72bpm):
        first = await async_client.post("/session/samples", json=_payload(ppg_72bpm[:300]))
        second = await async_client.post("/session/samples", json=_payload(ppg_72bpm[300:]))
        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["samples_processed"] == 600

    async def test_out_of_order_batch_rejected_atomically(self, async_client, ppg_72bpm):
        await async_client.post("/session/samples", json=_payload(ppg_72bpm[:100]))
        bad = _payload(ppg_72bpm[100:110])
        bad["samples"][5]["timestamp_ms"] = 0.0

        response = await async_client.post("/session/samples", json=bad)
        assert response.status_code == 422

        state = await async_client.get("/session/state")
        assert state.json()["samples_processed"] == 100

    async def test_non_finite_value_rejected(self, async_client):
        response = await async_client.post(
            "/session/samples",
            content='{"samples": [{"timestamp_ms": 0, "raw_value": NaN}]}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    async def test_batch_size_limits(self, async_client):
        empty = await async_client.post("/session/samples", json={"samples": []})
        assert empty.status_code == 422

        too_many = {"samples": [{"timestamp_ms": i, "raw_value": 150.0} for i in range(901)]}
        response = await async_client.post("/session/samples", json=too_many)
        assert response.status_code == 422

    async def test_analysis(self, async_client, ppg_72bpm):
        short = await async_client.get("/session/analysis")
        assert short.status_code == 409

        await async_client.post("/session/samples", json=_payload(ppg_72bpm[:30]))
        short = await async_client.get("/session/analysis")
        assert short.status_code == 409

        await async_client.post("/session/samples", json=_payload(ppg_72bpm[30:]))
        response = await async_client.get("/session/analysis")
        assert response.status_code == 200
        data = response.json()
        assert abs(data["hr_bpm"] - 72) <= 3
        assert data["hrv"]["valid"] is True

    async def test_reset(self, async_client, ppg_72bpm):
        await async_client.post("/session/samples", json=_payload(ppg_72bpm[:60]))
        response = await async_client.post("/session/reset")
        assert response.status_code == 200

        state = await async_client.get("/session/state")
        assert state.status_code == 404


class TestAppSetup:
    def test_session_handlers_run_in_threadpool(self):
        for handler in (routes.push_samples, routes.session_state,
                        routes.session_analysis, routes.session_reset):
            assert not inspect.iscoroutinefunction(handler)

    @pytest.mark.asyncio
    async def test_startup_trains_bp_model(self):
        app = create_app()
        async with app.router.lifespan_context(app):
            assert load_or_train_model.cache_info().currsize == 1
