"""
Activity service handling workshop scheduling, staff assignment and status.

current_participants is never written here; only the occupancy tracker sets it.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from workshop_booking.core.logging import get_logger
from workshop_booking.db.base import utcnow
from workshop_booking.domain.errors import Forbidden, NotFound, ValidationError
from workshop_booking.domain.principal import Principal, Role
from workshop_booking.models import Activity, ACTIVITY_STATUSES
from workshop_booking.repositories.interfaces import ActivityRepository, CatalogReader, UnitOfWork, UserReader
from workshop_booking.services.interfaces.publisher import activity_room
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.push_service import Notification

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "service_id",
    "title",
    "starts_at",
    "max_participants",
    "status",
    "executor_id",
    "contact_phone",
    "notes",
)

STATUS_TEXT = {
    "scheduled": "is scheduled",
    "in-progress": "has started",
    "completed": "is completed",
    "cancelled": "is cancelled",
}


class ActivityService:
    def __init__(
        self,
        users: UserReader,
        catalog: CatalogReader,
        activities: ActivityRepository,
        uow: UnitOfWork,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._catalog = catalog
        self._activities = activities
        self._uow = uow
        self._notifier = notifier
        self._clock = clock

    async def create_activity(self, actor: Principal, data: dict[str, Any]) -> Activity:
        """Schedule a new workshop. Admin only."""
        self._require_admin(actor)
        if data.get("service_id") is None or data.get("starts_at") is None:
            raise ValidationError("service_id and starts_at are required")

        await self._validate(data)
        activity = Activity(
            **{name: data[name] for name in EDITABLE_FIELDS if data.get(name) is not None},
            current_participants=0,
        )
        await self._activities.add(activity)
        await self._uow.commit()

        logger.info(
            "activity_created",
            activity_id=activity.id,
            service_id=activity.service_id,
            starts_at=str(activity.starts_at),
            executor_id=activity.executor_id,
        )

        await self._notifier.publish(activity_room(activity.id), "activity:created", {"activity_id": activity.id})
        if activity.executor_id is not None:
            await self._notifier.push([activity.executor_id], self._assignment_notification(activity))
        return activity

    async def update_activity(self, actor: Principal, activity_id: int, changes: dict[str, Any]) -> Activity:
        """
        Apply a partial update. Admin only.

        A new executor is told about the assignment; a status change is sent to
        the executor assigned after the update.
        """
        self._require_admin(actor)
        activity = await self.get_activity(activity_id)

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(unknown))}")
        await self._validate(changes)

        previous_executor = activity.executor_id
        previous_status = activity.status
        for name, value in changes.items():
            if name in ("service_id", "starts_at", "max_participants", "status") and value is None:
                raise ValidationError(f"{name} cannot be empty")
            setattr(activity, name, value)
        await self._uow.commit()

        logger.info("activity_updated", activity_id=activity.id, fields=sorted(changes))

        await self._notifier.publish(activity_room(activity.id), "activity:updated", {"activity_id": activity.id})
        if activity.executor_id is not None and activity.executor_id != previous_executor:
            await self._notifier.push([activity.executor_id], self._assignment_notification(activity))
        if activity.status != previous_status and activity.executor_id is not None:
            await self._notifier.push(
                [activity.executor_id],
                Notification(
                    title="Workshop status changed",
                    body=f"Workshop {activity.title or activity.id} {STATUS_TEXT.get(activity.status, activity.status)}",
                    data={"type": "workshop_status_change", "activity_id": activity.id, "status": activity.status},
                    url=f"/executor/workshops/{activity.id}",
                ),
            )
        return activity

    async def get_activity(self, activity_id: int) -> Activity:
        activity = await self._activities.get(activity_id)
        if activity is None:
            raise NotFound("Activity", activity_id)
        return activity

    async def list_activities(
        self,
        page: int = 1,
        page_size: int = 20,
        upcoming_only: bool = True,
    ) -> tuple[list[Activity], int]:
        starts_after = self._clock() if upcoming_only else None
        return await self._activities.list_page(page, page_size, starts_after)

    def _require_admin(self, actor: Principal) -> None:
        if not actor.is_admin:
            raise Forbidden("Only administrators can manage workshops")

    async def _validate(self, data: dict[str, Any]) -> None:
        if data.get("service_id") is not None and not await self._catalog.service_exists(data["service_id"]):
            raise NotFound("Service", data["service_id"])

        if data.get("status") is not None and data["status"] not in ACTIVITY_STATUSES:
            raise ValidationError(f"Unknown workshop status {data['status']!r}")

        if data.get("max_participants") is not None and data["max_participants"] <= 0:
            raise ValidationError("max_participants must be positive")

        executor_id: Optional[int] = data.get("executor_id")
        if executor_id is not None:
            executor = await self._users.get_user(executor_id)
            if executor is None:
                raise NotFound("User", executor_id)
            if executor.role != Role.STAFF.value:
                raise ValidationError(f"User {executor_id} is not a staff member")

    @staticmethod
    def _assignment_notification(activity: Activity) -> Notification:
        return Notification(
            title="New workshop assignment",
            body=f"You have been assigned to workshop {activity.title or activity.id}",
            data={"type": "workshop_assignment", "activity_id": activity.id},
            url=f"/executor/workshops/{activity.id}",
        )
