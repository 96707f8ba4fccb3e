"""
Tests for push subscriptions and dispatch, including pruning of expired endpoints.
"""

import json

import pytest

from workshop_booking.core.config import Settings
from workshop_booking.domain.errors import ValidationError
from workshop_booking.repositories.sql import SqlSubscriptionRepository, SqlUnitOfWork
from workshop_booking.services.interfaces.webpush_transport import DisabledPushTransport, WebPushTransport
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.push_service import Notification, PushDispatcher
from workshop_booking.services.transport_factory import get_push_transport

from fakes import RecordingPublisher

HELLO = Notification(title="Hello", body="World", data={"type": "test"}, url="/inbox", tag="t-1")


def dispatcher_for(db_session, transport) -> PushDispatcher:
    return PushDispatcher(SqlSubscriptionRepository(db_session), SqlUnitOfWork(db_session), transport)


@pytest.mark.asyncio
async def test_subscribe_same_endpoint_overwrites_keys(subscription_store, seed):
    first = await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "old-key", "old-auth")
    second = await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "new-key", "new-auth")

    subscriptions = await subscription_store.list_subscriptions(seed.parent_id)
    assert len(subscriptions) == 1
    assert second.id == first.id
    assert subscriptions[0].p256dh == "new-key"
    assert subscriptions[0].auth == "new-auth"


@pytest.mark.asyncio
async def test_same_endpoint_for_two_users_is_two_records(subscription_store, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/shared", "k", "a")
    await subscription_store.subscribe(seed.child_id, "https://push.test/shared", "k", "a")

    assert len(await subscription_store.list_subscriptions(seed.parent_id)) == 1
    assert len(await subscription_store.list_subscriptions(seed.child_id)) == 1


@pytest.mark.asyncio
async def test_subscribe_requires_keys(subscription_store, seed):
    with pytest.raises(ValidationError):
        await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "", "auth")


@pytest.mark.asyncio
async def test_unsubscribe_removes_only_that_endpoint(subscription_store, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "k", "a")
    await subscription_store.subscribe(seed.parent_id, "https://push.test/2", "k", "a")

    assert await subscription_store.unsubscribe(seed.parent_id, "https://push.test/1") is True
    assert await subscription_store.unsubscribe(seed.parent_id, "https://push.test/1") is False

    remaining = await subscription_store.list_subscriptions(seed.parent_id)
    assert [s.endpoint for s in remaining] == ["https://push.test/2"]


@pytest.mark.asyncio
async def test_gone_endpoint_is_pruned_and_the_other_delivered(db_session, subscription_store, transport, seed):
    """Two subscriptions, one answers 410: exactly that one is deleted, the other receives."""
    await subscription_store.subscribe(seed.parent_id, "https://push.test/live", "k", "a")
    await subscription_store.subscribe(seed.parent_id, "https://push.test/gone", "k", "a")
    transport.failures["https://push.test/gone"] = 410

    report = await dispatcher_for(db_session, transport).dispatch(seed.parent_id, HELLO)

    assert report.as_dict() == {"sent": 1, "failed": 0, "expired": 1}
    assert [endpoint for endpoint, _ in transport.sent] == ["https://push.test/live"]
    remaining = await subscription_store.list_subscriptions(seed.parent_id)
    assert [s.endpoint for s in remaining] == ["https://push.test/live"]


@pytest.mark.asyncio
async def test_not_found_endpoint_is_pruned(db_session, subscription_store, transport, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/404", "k", "a")
    transport.failures["https://push.test/404"] = 404

    report = await dispatcher_for(db_session, transport).dispatch(seed.parent_id, HELLO)

    assert report.expired == 1
    assert await subscription_store.list_subscriptions(seed.parent_id) == []


@pytest.mark.asyncio
async def test_transient_failure_keeps_subscription(db_session, subscription_store, transport, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/flaky", "k", "a")
    transport.failures["https://push.test/flaky"] = 503

    report = await dispatcher_for(db_session, transport).dispatch(seed.parent_id, HELLO)

    assert report.as_dict() == {"sent": 0, "failed": 1, "expired": 0}
    assert len(await subscription_store.list_subscriptions(seed.parent_id)) == 1


@pytest.mark.asyncio
async def test_user_without_subscriptions_gets_empty_report(db_session, transport, seed):
    report = await dispatcher_for(db_session, transport).dispatch(seed.parent_id, HELLO)
    assert report.as_dict() == {"sent": 0, "failed": 0, "expired": 0}
    assert transport.sent == []


@pytest.mark.asyncio
async def test_disabled_transport_keeps_subscriptions(db_session, subscription_store, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "k", "a")

    report = await dispatcher_for(db_session, DisabledPushTransport()).dispatch(seed.parent_id, HELLO)

    assert report.failed == 1
    assert len(await subscription_store.list_subscriptions(seed.parent_id)) == 1


@pytest.mark.asyncio
async def test_notifier_dedupes_recipients_and_skips_missing(db_session, subscription_store, transport, seed):
    await subscription_store.subscribe(seed.parent_id, "https://push.test/1", "k", "a")
    notifier = Notifier(RecordingPublisher(), dispatcher_for(db_session, transport))

    reports = await notifier.push([seed.parent_id, None, seed.parent_id], HELLO)

    assert list(reports) == [seed.parent_id]
    assert len(transport.sent) == 1


def test_notification_payload_shape():
    payload = json.loads(HELLO.to_payload())

    assert payload["title"] == "Hello"
    assert payload["body"] == "World"
    assert payload["tag"] == "t-1"
    assert payload["data"] == {"type": "test", "url": "/inbox"}
    assert payload["icon"].endswith(".png")


def test_notification_payload_omits_empty_tag():
    payload = json.loads(Notification(title="A", body="B").to_payload())
    assert "tag" not in payload
    assert payload["data"] == {}


def test_transport_factory_without_keys_is_disabled():
    transport = get_push_transport(Settings(VAPID_PUBLIC_KEY="", VAPID_PRIVATE_KEY=""))
    assert isinstance(transport, DisabledPushTransport)
    assert transport.public_key == ""


def test_transport_factory_with_keys_uses_webpush():
    transport = get_push_transport(Settings(VAPID_PUBLIC_KEY="public", VAPID_PRIVATE_KEY="private\n"))
    assert isinstance(transport, WebPushTransport)
    assert transport.public_key == "public"
