"""
HTTP trigger API tests.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from maildrain.engine import LeaseManager
from maildrain.main import create_app


@pytest.fixture
def collaborators(fake_mailbox, sink, voicemail):
    return {
        "queue": fake_mailbox([voicemail("2019-01-17 09:13:25"), voicemail("2019-01-11 14:21:05")]),
        "sink": sink,
    }


def build_app(settings, session_factory, collaborators):
    app = create_app(settings, **collaborators)
    # Lifespan is not run under ASGITransport; wire the lease store directly.
    app.state.session_factory = session_factory
    return app


@pytest_asyncio.fixture
async def client(settings, session_factory, collaborators):
    """Async test client for an insecure-dev app."""
    app = build_app(settings, session_factory, collaborators)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_drain_trigger_returns_outcome(client, collaborators):
    response = await client.post(
        "/v1/mailbox/drain",
        json={"budget_seconds": 120, "event": {"source": "notification"}},
    )

    assert response.status_code == 200
    assert response.json() == {
        "resource_id": "999999",
        "items_processed": 2,
        "terminated_by": "empty",
    }
    assert collaborators["queue"].items == []


@pytest.mark.asyncio
async def test_drain_trigger_without_body(client):
    response = await client.post("/v1/mailbox/drain")

    assert response.status_code == 200
    assert response.json()["items_processed"] == 2


@pytest.mark.asyncio
async def test_contended_drain_is_not_an_error(client, session_factory, collaborators):
    await LeaseManager(session_factory).acquire("999999", timedelta(minutes=5))

    response = await client.post("/v1/mailbox/drain", json={})

    assert response.status_code == 200
    assert response.json()["terminated_by"] == "lock_contention"
    assert collaborators["queue"].calls == []


@pytest.mark.asyncio
async def test_anomaly_maps_to_502(client, collaborators):
    collaborators["queue"].stuck = True

    response = await client.post("/v1/mailbox/drain", json={})

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "DUPLICATE_HEAD_ANOMALY"
    assert body["outcome"]["items_processed"] == 1
    assert body["outcome"]["terminated_by"] == "anomaly"


@pytest.mark.asyncio
async def test_lock_status(client, session_factory):
    response = await client.get("/v1/mailbox/lock")
    assert response.json() == {"resource_id": "999999", "locked": False, "expires_at": None}

    await LeaseManager(session_factory).acquire("999999", timedelta(minutes=5))

    response = await client.get("/v1/mailbox/lock")
    assert response.status_code == 200
    assert response.json()["locked"] is True


@pytest.mark.asyncio
async def test_api_key_required_when_not_insecure(settings, session_factory, collaborators):
    secured = settings.model_copy(update={"allow_insecure_dev": False, "api_key": "drain-key"})
    app = build_app(secured, session_factory, collaborators)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        missing = await client.get("/v1/health")
        wrong = await client.get("/v1/health", headers={"Authorization": "Bearer nope"})
        bearer = await client.get("/v1/health", headers={"Authorization": "Bearer drain-key"})
        header = await client.get("/v1/health", headers={"X-API-Key": "drain-key"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert bearer.status_code == 200
    assert header.status_code == 200


@pytest.mark.asyncio
async def test_missing_voipms_configuration_is_a_json_error(settings, session_factory, sink):
    """Without an injected queue the voip.ms account must be configured."""
    unconfigured = settings.model_copy(update={"voipms_user": ""})
    app = build_app(unconfigured, session_factory, {"sink": sink})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post("/v1/mailbox/drain", json={})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "CONFIGURATION_ERROR"
    assert "voipms_user" in body["message"]
    assert body["outcome"] is None
    assert sink.stored == []
