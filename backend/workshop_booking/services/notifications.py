"""
Notification fan-out shared by every producer.

Called only after the producer's unit of work has committed. Failures here are
logged and counted but never propagate: a booking or message that succeeded
stays successful even if nobody could be told about it.
"""

from typing import Any, Iterable, Optional

from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import notification_errors
from workshop_booking.services.interfaces.publisher import EventPublisher
from workshop_booking.services.push_service import DispatchReport, Notification, PushDispatcher

logger = get_logger(__name__)


class Notifier:
    def __init__(self, publisher: EventPublisher, dispatcher: Optional[PushDispatcher] = None) -> None:
        self._publisher = publisher
        self._dispatcher = dispatcher

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        try:
            await self._publisher.publish(room, event, payload)
        except Exception as e:
            notification_errors.labels(stage="live").inc()
            logger.error("live_publish_failed", room=room, live_event=event, error=str(e))

    async def push(self, user_ids: Iterable[Optional[int]], notification: Notification) -> dict[int, DispatchReport]:
        reports: dict[int, DispatchReport] = {}
        if self._dispatcher is None:
            return reports

        for user_id in dict.fromkeys(uid for uid in user_ids if uid is not None):
            try:
                reports[user_id] = await self._dispatcher.dispatch(user_id, notification)
            except Exception as e:
                notification_errors.labels(stage="push").inc()
                logger.error("push_dispatch_failed", user_id=user_id, error=str(e))
        return reports
