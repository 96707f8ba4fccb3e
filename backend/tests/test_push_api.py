"""
Tests for push subscription endpoints and the health/metrics surface.
"""

import pytest
from httpx import AsyncClient

from workshop_booking.domain.principal import Role
from workshop_booking.main import app
from workshop_booking.services.interfaces.webpush_transport import DisabledPushTransport

from conftest import auth_headers

SUBSCRIPTION = {"endpoint": "https://push.test/browser", "p256dh": "BOr-key", "auth": "secret"}


@pytest.mark.asyncio
async def test_vapid_public_key(client: AsyncClient):
    response = await client.get("/api/v1/push/vapid-public-key")
    assert response.status_code == 200
    assert response.json() == {"public_key": "test-public-key"}


@pytest.mark.asyncio
async def test_vapid_public_key_not_configured(client: AsyncClient):
    app.state.push_transport = DisabledPushTransport()
    response = await client.get("/api/v1/push/vapid-public-key")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_subscribe_list_unsubscribe(client: AsyncClient, seed):
    headers = auth_headers(seed.parent_id, Role.PARENT)

    response = await client.post("/api/v1/push/subscribe", json=SUBSCRIPTION, headers=headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    # Re-subscribing refreshes keys instead of adding a row
    await client.post("/api/v1/push/subscribe", json={**SUBSCRIPTION, "auth": "rotated"}, headers=headers)
    response = await client.get("/api/v1/push/subscriptions", headers=headers)
    assert [s["endpoint"] for s in response.json()] == [SUBSCRIPTION["endpoint"]]

    response = await client.post(
        "/api/v1/push/unsubscribe",
        json={"endpoint": SUBSCRIPTION["endpoint"]},
        headers=headers,
    )
    assert response.json()["success"] is True

    response = await client.post(
        "/api/v1/push/unsubscribe",
        json={"endpoint": SUBSCRIPTION["endpoint"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_subscribe_rejects_missing_keys(client: AsyncClient, seed):
    response = await client.post(
        "/api/v1/push/subscribe",
        json={"endpoint": SUBSCRIPTION["endpoint"], "p256dh": "", "auth": "x"},
        headers=auth_headers(seed.parent_id, Role.PARENT),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_subscribe_requires_auth(client: AsyncClient):
    response = await client.post("/api/v1/push/subscribe", json=SUBSCRIPTION)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_conversation_flow_over_http(client: AsyncClient, seed):
    parent_headers = auth_headers(seed.parent_id, Role.PARENT)
    staff_headers = auth_headers(seed.staff_id, Role.STAFF)

    response = await client.post("/api/v1/conversations/start", json={}, headers=parent_headers)
    assert response.status_code == 200
    conversation_id = response.json()["id"]

    response = await client.post(
        f"/api/v1/conversations/{conversation_id}/messages",
        json={"body": "Hello"},
        headers=staff_headers,
    )
    assert response.status_code == 201
    assert response.json()["sender_id"] == seed.staff_id

    response = await client.post(
        f"/api/v1/conversations/{conversation_id}/messages",
        json={"body": "   "},
        headers=parent_headers,
    )
    assert response.status_code == 400

    response = await client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=parent_headers)
    assert [m["body"] for m in response.json()] == ["Hello"]

    response = await client.post(
        "/api/v1/conversations/broadcast",
        json={"body": "Closed Monday"},
        headers=auth_headers(seed.admin_id, Role.ADMIN),
    )
    assert response.json() == {"recipients": 4}


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}
    assert data["push_enabled"] is True

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_operations_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed_or_minted(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "trace-42"})
    assert response.headers["X-Request-ID"] == "trace-42"

    response = await client.get("/", headers={"X-Request-ID": "not a valid id!"})
    assert response.headers["X-Request-ID"] != "not a valid id!"
    assert len(response.headers["X-Request-ID"]) == 12
