"""
Durable push subscriptions and delivery.

SubscriptionStore keeps one row per (user, endpoint). PushDispatcher sends a
notification to every endpoint of a user independently and prunes the ones the
push service reports as gone (HTTP 404/410). Any other failure is logged and
the endpoint is kept for the next attempt.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import push_subscriptions_pruned, record_push_delivery
from workshop_booking.domain.errors import DeliveryFailure, ValidationError
from workshop_booking.models import PushSubscription
from workshop_booking.repositories.interfaces import SubscriptionRepository, UnitOfWork
from workshop_booking.services.interfaces.push_transport import PushTransport

logger = get_logger(__name__)

DEFAULT_ICON = "/icon-192x192.png"
DEFAULT_BADGE = "/badge-72x72.png"

SENT = "sent"
FAILED = "failed"
EXPIRED = "expired"


@dataclass
class Notification:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    url: Optional[str] = None
    tag: Optional[str] = None
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_BADGE

    def to_payload(self) -> str:
        data = dict(self.data)
        if self.url:
            data.setdefault("url", self.url)
        payload = {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "data": data,
        }
        return json.dumps({key: value for key, value in payload.items() if value is not None})


@dataclass
class DispatchReport:
    sent: int = 0
    failed: int = 0
    expired: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"sent": self.sent, "failed": self.failed, "expired": self.expired}


class SubscriptionStore:
    def __init__(self, subscriptions: SubscriptionRepository, uow: UnitOfWork) -> None:
        self._subscriptions = subscriptions
        self._uow = uow

    async def subscribe(self, user_id: int, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
        """
        Store a push endpoint for a user.

        Re-subscribing the same endpoint (e.g. after the browser rotated its
        keys) overwrites the keys in place instead of adding a second row.
        """
        if not endpoint or not p256dh or not auth:
            raise ValidationError("endpoint, p256dh and auth are required")

        subscription = await self._subscriptions.get(user_id, endpoint)
        if subscription is not None:
            subscription.p256dh = p256dh
            subscription.auth = auth
            created = False
        else:
            subscription = await self._subscriptions.add(
                PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
            )
            created = True
        await self._uow.commit()

        logger.info("push_subscribed", user_id=user_id, subscription_id=subscription.id, created=created)
        return subscription

    async def unsubscribe(self, user_id: int, endpoint: str) -> bool:
        """Remove exactly this endpoint. Returns False when there was nothing to remove."""
        subscription = await self._subscriptions.get(user_id, endpoint)
        if subscription is None:
            return False
        await self._subscriptions.delete(subscription)
        await self._uow.commit()
        logger.info("push_unsubscribed", user_id=user_id)
        return True

    async def list_subscriptions(self, user_id: int) -> list[PushSubscription]:
        return await self._subscriptions.list_for_user(user_id)


class PushDispatcher:
    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        uow: UnitOfWork,
        transport: PushTransport,
    ) -> None:
        self._subscriptions = subscriptions
        self._uow = uow
        self._transport = transport

    async def dispatch(self, user_id: int, notification: Notification) -> DispatchReport:
        report = DispatchReport()
        subscriptions = await self._subscriptions.list_for_user(user_id)
        if not subscriptions:
            logger.debug("push_no_subscriptions", user_id=user_id)
            return report

        payload = notification.to_payload()
        outcomes = await asyncio.gather(
            *(self._deliver(subscription, payload) for subscription in subscriptions)
        )

        gone: list[PushSubscription] = []
        for subscription, outcome in zip(subscriptions, outcomes):
            record_push_delivery(outcome)
            if outcome == SENT:
                report.sent += 1
            elif outcome == EXPIRED:
                report.expired += 1
                gone.append(subscription)
            else:
                report.failed += 1

        if gone:
            try:
                for subscription in gone:
                    await self._subscriptions.delete(subscription)
                await self._uow.commit()
            except Exception:
                await self._uow.rollback()
                raise
            push_subscriptions_pruned.inc(len(gone))

        logger.info("push_dispatched", user_id=user_id, **report.as_dict())
        return report

    async def _deliver(self, subscription: PushSubscription, payload: str) -> str:
        try:
            await self._transport.send(subscription, payload)
            return SENT
        except DeliveryFailure as failure:
            if failure.endpoint_gone:
                logger.info(
                    "push_subscription_expired",
                    user_id=subscription.user_id,
                    subscription_id=subscription.id,
                    status_code=failure.status_code,
                )
                return EXPIRED
            logger.warning(
                "push_delivery_failed",
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                status_code=failure.status_code,
                error=failure.message,
            )
            return FAILED
        except Exception as e:
            logger.error(
                "push_delivery_error",
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                error=str(e),
            )
            return FAILED
