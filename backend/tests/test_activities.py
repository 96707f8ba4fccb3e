"""
Tests for workshop endpoints and executor notifications.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from workshop_booking.domain.errors import Forbidden, ValidationError
from workshop_booking.domain.principal import Role
from workshop_booking.models import PushSubscription

from conftest import auth_headers, principal


def future(days: int = 10) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.mark.asyncio
async def test_admin_creates_activity(client: AsyncClient, seed):
    response = await client.post(
        "/api/v1/activities/",
        json={
            "service_id": seed.service_id,
            "title": "Clay animals",
            "starts_at": future(),
            "max_participants": 12,
            "details": {"executor_id": seed.staff_id, "contact_phone": "+100200300"},
        },
        headers=auth_headers(seed.admin_id, Role.ADMIN),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Clay animals"
    assert data["current_participants"] == 0
    assert data["status"] == "scheduled"
    assert data["details"] == {"executor_id": seed.staff_id, "contact_phone": "+100200300", "notes": None}


@pytest.mark.asyncio
async def test_parent_cannot_create_activity(client: AsyncClient, seed):
    response = await client.post(
        "/api/v1/activities/",
        json={"service_id": seed.service_id, "starts_at": future()},
        headers=auth_headers(seed.parent_id, Role.PARENT),
    )
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_create_activity_unknown_service(client: AsyncClient, seed):
    response = await client.post(
        "/api/v1/activities/",
        json={"service_id": 999, "starts_at": future()},
        headers=auth_headers(seed.admin_id, Role.ADMIN),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_activities_upcoming_only(client: AsyncClient, seed):
    response = await client.get("/api/v1/activities/")
    assert response.status_code == 200
    data = response.json()
    assert data["cached"] is False
    # The workshop that started an hour ago is not upcoming
    assert data["total"] == 2
    assert [a["id"] for a in data["activities"]] == [seed.soon_activity_id, seed.activity_id]

    response = await client.get("/api/v1/activities/?upcoming_only=false&page_size=1")
    data = response.json()
    assert data["total"] == 3
    assert len(data["activities"]) == 1


@pytest.mark.asyncio
async def test_get_activity_not_found(client: AsyncClient):
    response = await client.get("/api/v1/activities/999")
    assert response.status_code == 404
    assert response.json() == {"code": "NOT_FOUND", "message": "Activity 999 not found"}


@pytest.mark.asyncio
async def test_assigning_executor_pushes_to_them(client: AsyncClient, db_session, transport, seed):
    db_session.add(PushSubscription(user_id=seed.staff_id, endpoint="https://push.test/staff", p256dh="k", auth="a"))
    await db_session.commit()

    response = await client.patch(
        f"/api/v1/activities/{seed.soon_activity_id}",
        json={"details": {"executor_id": seed.staff_id}},
        headers=auth_headers(seed.admin_id, Role.ADMIN),
    )

    assert response.status_code == 200
    assert response.json()["details"]["executor_id"] == seed.staff_id
    assert transport.titles() == ["New workshop assignment"]


@pytest.mark.asyncio
async def test_status_change_pushes_to_executor(activity_service, db_session, publisher, transport, seed):
    db_session.add(PushSubscription(user_id=seed.staff_id, endpoint="https://push.test/staff", p256dh="k", auth="a"))
    await db_session.commit()

    activity = await activity_service.update_activity(
        principal(seed.admin_id, Role.ADMIN),
        seed.activity_id,
        {"status": "in-progress"},
    )

    assert activity.status == "in-progress"
    assert transport.titles() == ["Workshop status changed"]
    assert transport.sent[0][1]["data"]["status"] == "in-progress"
    assert publisher.names(f"activity:{seed.activity_id}") == ["activity:updated"]


@pytest.mark.asyncio
async def test_executor_must_be_staff(activity_service, seed):
    with pytest.raises(ValidationError):
        await activity_service.update_activity(
            principal(seed.admin_id, Role.ADMIN),
            seed.activity_id,
            {"executor_id": seed.parent_id},
        )


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(activity_service, seed):
    with pytest.raises(ValidationError):
        await activity_service.update_activity(
            principal(seed.admin_id, Role.ADMIN),
            seed.activity_id,
            {"status": "postponed"},
        )


@pytest.mark.asyncio
async def test_occupancy_cannot_be_written_directly(activity_service, seed):
    with pytest.raises(ValidationError):
        await activity_service.update_activity(
            principal(seed.admin_id, Role.ADMIN),
            seed.activity_id,
            {"current_participants": 5},
        )


@pytest.mark.asyncio
async def test_staff_cannot_update_activity(activity_service, seed):
    with pytest.raises(Forbidden):
        await activity_service.update_activity(
            principal(seed.staff_id, Role.STAFF),
            seed.activity_id,
            {"title": "Renamed"},
        )
