"""
Booking lifecycle: create, edit, cancel and payment bookkeeping.

CONSISTENCY STRATEGY: Recount inside the unit of work
======================================================

Problem:
  Activity.current_participants is a cached count of live bookings. If it is
  incremented/decremented in place, concurrent create + cancel on the same
  activity can drift it away from the real number of rows.

Solution:
  1. Stage the booking write (insert or delete)
  2. Recount live bookings with a fresh COUNT in the same transaction
  3. Write that count onto the activity
  4. Commit both together

  A reader right after a successful create/cancel sees the new count. Two
  concurrent recounts can interleave, but each writes a value read from the
  table, so the final value is correct after the last commit.

Notifications run strictly after commit, so a failed operation never
announces anything. Notification errors are isolated in Notifier.

Edit window:
  Line items may be changed only while the activity is at least
  EDIT_WINDOW_HOURS away. Once the activity has started the gate no longer
  applies. Cancelling is never gated.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import booking_latency, record_booking_operation
from workshop_booking.db.base import utcnow
from workshop_booking.domain.errors import DomainError, EditWindowClosed, Forbidden, NotFound, ValidationError
from workshop_booking.domain.principal import Principal, Role
from workshop_booking.models import Activity, Booking, PAYMENT_STATUSES
from workshop_booking.repositories.interfaces import (
    ActivityRepository,
    BookingRepository,
    CatalogReader,
    UnitOfWork,
    UserReader,
)
from workshop_booking.services import pricing
from workshop_booking.services.interfaces.publisher import activity_room
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.occupancy import OccupancyTracker
from workshop_booking.services.push_service import Notification

logger = get_logger(__name__)

# Statuses settable through update_status; cancellation goes through cancel_booking
SETTABLE_BOOKING_STATUSES = ("pending", "completed")


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BookingService:
    def __init__(
        self,
        users: UserReader,
        catalog: CatalogReader,
        activities: ActivityRepository,
        bookings: BookingRepository,
        uow: UnitOfWork,
        notifier: Notifier,
        edit_window_hours: int = 24,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._catalog = catalog
        self._activities = activities
        self._bookings = bookings
        self._uow = uow
        self._notifier = notifier
        self._occupancy = OccupancyTracker(activities, bookings)
        self._edit_window = timedelta(hours=edit_window_hours)
        self._edit_window_hours = edit_window_hours
        self._clock = clock

    @asynccontextmanager
    async def _track(self, operation: str):
        start = time.perf_counter()
        try:
            yield
        except DomainError as e:
            record_booking_operation(operation, e.code.value)
            logger.warning(f"booking_{operation}_rejected", code=e.code.value, reason=e.message)
            raise
        except Exception:
            record_booking_operation(operation, "error")
            raise
        else:
            record_booking_operation(operation, "success")
        finally:
            booking_latency.labels(operation=operation).observe(time.perf_counter() - start)

    async def _commit(self) -> None:
        try:
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

    async def create_booking(
        self,
        actor: Principal,
        subject_id: Optional[int],
        payer_id: Optional[int],
        activity_id: Optional[int],
        selections: Sequence[pricing.Selection] = (),
        notes: Optional[str] = None,
    ) -> Booking:
        async with self._track("create"):
            missing = [
                name
                for name, value in (
                    ("subject_id", subject_id),
                    ("payer_id", payer_id),
                    ("activity_id", activity_id),
                )
                if value is None
            ]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

            if not actor.is_admin and actor.user_id not in (subject_id, payer_id):
                raise Forbidden("Bookings can only be made for yourself or your child")

            subject = await self._users.get_user(subject_id)
            if subject is None:
                raise NotFound("User", subject_id)
            if subject.role != Role.CHILD.value:
                raise ValidationError(f"User {subject_id} is not a child")

            if await self._users.get_user(payer_id) is None:
                raise NotFound("User", payer_id)

            activity = await self._activities.get(activity_id)
            if activity is None:
                raise NotFound("Activity", activity_id)

            priced = await pricing.resolve(self._catalog, subject.age, selections)

            booking = Booking(
                subject_id=subject_id,
                payer_id=payer_id,
                activity_id=activity_id,
                status="pending",
                payment_status="pending",
                amount=priced.total,
                notes=notes,
                line_items=priced.to_line_items(),
            )
            try:
                await self._bookings.add(booking)
                occupancy = await self._occupancy.recount(activity_id)
            except Exception:
                await self._uow.rollback()
                raise
            await self._commit()

            logger.info(
                "booking_created",
                booking_id=booking.id,
                subject_id=subject_id,
                payer_id=payer_id,
                activity_id=activity_id,
                amount=booking.amount,
                items=len(priced.lines),
                occupancy=occupancy,
            )

        await self._announce(
            activity,
            "booking:created",
            {"booking_id": booking.id, "activity_id": activity_id},
            actor,
            booking,
            Notification(
                title="New booking",
                body=f"A new booking was made for {activity.title or 'a workshop'}",
                data={"type": "booking_created", "activity_id": activity_id, "booking_id": booking.id},
                tag=f"activity-{activity_id}",
            ),
        )
        return booking

    async def edit_booking(
        self,
        actor: Principal,
        booking_id: int,
        selections: Sequence[pricing.Selection],
        notes: Optional[str] = None,
    ) -> Booking:
        """Replace the whole line-item list and re-price the booking."""
        async with self._track("edit"):
            booking = await self._get_owned(actor, booking_id)
            activity = await self._get_activity(booking.activity_id)
            self._check_edit_window(activity)

            subject = await self._users.get_user(booking.subject_id)
            if subject is None:
                raise NotFound("User", booking.subject_id)

            priced = await pricing.resolve(self._catalog, subject.age, selections)
            try:
                await self._bookings.replace_line_items(booking, priced.to_line_items())
                booking.amount = priced.total
                if notes is not None:
                    booking.notes = notes
                booking.updated_at = self._clock()
            except Exception:
                await self._uow.rollback()
                raise
            await self._commit()

            logger.info(
                "booking_updated",
                booking_id=booking.id,
                activity_id=booking.activity_id,
                amount=booking.amount,
                items=len(priced.lines),
            )

        # Occupancy depends only on booking existence, so no occupancy event here
        await self._notifier.publish(
            activity_room(booking.activity_id),
            "booking:updated",
            {"booking_id": booking.id, "activity_id": booking.activity_id},
        )
        return booking

    async def cancel_booking(self, actor: Principal, booking_id: int) -> None:
        async with self._track("cancel"):
            booking = await self._get_owned(actor, booking_id)
            activity = await self._get_activity(booking.activity_id)

            activity_id = booking.activity_id
            try:
                await self._bookings.delete(booking)
                occupancy = await self._occupancy.recount(activity_id)
            except Exception:
                await self._uow.rollback()
                raise
            await self._commit()

            logger.info(
                "booking_cancelled",
                booking_id=booking_id,
                activity_id=activity_id,
                occupancy=occupancy,
            )

        await self._announce(
            activity,
            "booking:cancelled",
            {"activity_id": activity_id},
            actor,
            booking,
            Notification(
                title="Booking cancelled",
                body=f"A booking for {activity.title or 'a workshop'} was cancelled",
                data={"type": "booking_cancelled", "activity_id": activity_id},
                tag=f"activity-{activity_id}",
            ),
        )

    async def update_status(
        self,
        actor: Principal,
        booking_id: int,
        payment_status: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Booking:
        """Staff-side bookkeeping: mark a booking paid/refunded or completed."""
        async with self._track("status"):
            if not actor.is_staff:
                raise Forbidden("Only staff can change payment or booking status")
            if payment_status is None and status is None:
                raise ValidationError("Nothing to update")
            if payment_status is not None and payment_status not in PAYMENT_STATUSES:
                raise ValidationError(f"Unknown payment status {payment_status!r}")
            if status is not None and status not in SETTABLE_BOOKING_STATUSES:
                raise ValidationError(f"Status {status!r} cannot be set directly")

            booking = await self._bookings.get(booking_id)
            if booking is None:
                raise NotFound("Booking", booking_id)

            if payment_status is not None:
                booking.payment_status = payment_status
            if status is not None:
                booking.status = status
            await self._commit()

            logger.info(
                "booking_status_updated",
                booking_id=booking.id,
                payment_status=booking.payment_status,
                status=booking.status,
                actor_id=actor.user_id,
            )

        await self._notifier.publish(
            activity_room(booking.activity_id),
            "booking:updated",
            {"booking_id": booking.id, "activity_id": booking.activity_id},
        )
        return booking

    async def get_booking(self, actor: Principal, booking_id: int) -> Booking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking", booking_id)
        if not actor.is_staff and actor.user_id not in booking.owner_ids:
            raise Forbidden("Not your booking")
        return booking

    async def list_bookings(self, actor: Principal, activity_id: Optional[int] = None) -> list[Booking]:
        if actor.is_staff:
            return await self._bookings.find(activity_id=activity_id)
        return await self._bookings.find(user_id=actor.user_id, activity_id=activity_id)

    async def _get_owned(self, actor: Principal, booking_id: int) -> Booking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking", booking_id)
        if not actor.is_admin and actor.user_id not in booking.owner_ids:
            raise Forbidden("Only the booking owner or an admin can change this booking")
        return booking

    async def _get_activity(self, activity_id: int) -> Activity:
        activity = await self._activities.get(activity_id)
        if activity is None:
            raise NotFound("Activity", activity_id)
        return activity

    def _check_edit_window(self, activity: Activity) -> None:
        remaining = as_utc(activity.starts_at) - self._clock()
        # Already started: the window no longer applies
        if timedelta(0) <= remaining < self._edit_window:
            raise EditWindowClosed(self._edit_window_hours)

    async def _announce(
        self,
        activity: Activity,
        event: str,
        payload: dict,
        actor: Principal,
        booking: Booking,
        notification: Notification,
    ) -> None:
        room = activity_room(activity.id)
        await self._notifier.publish(room, event, payload)
        await self._notifier.publish(room, "activity:occupancy-changed", {"activity_id": activity.id})

        recipients = [activity.executor_id, booking.payer_id]
        await self._notifier.push(
            [user_id for user_id in recipients if user_id != actor.user_id],
            notification,
        )
