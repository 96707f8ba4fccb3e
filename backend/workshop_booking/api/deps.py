"""
Request-scoped wiring: repositories and services over the request's session.

The live channel and push transport are process singletons created in the
application lifespan and kept on app.state.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_booking.core.config import get_settings
from workshop_booking.db.session import get_db
from workshop_booking.repositories.sql import (
    SqlActivityRepository,
    SqlBookingRepository,
    SqlCatalogReader,
    SqlConversationRepository,
    SqlSubscriptionRepository,
    SqlUnitOfWork,
    SqlUserReader,
)
from workshop_booking.services.activity_service import ActivityService
from workshop_booking.services.booking_service import BookingService
from workshop_booking.services.conversation_service import ConversationService
from workshop_booking.services.interfaces.push_transport import PushTransport
from workshop_booking.services.live_channel import LiveChannel
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.push_service import PushDispatcher, SubscriptionStore


def get_live_channel(request: Request) -> LiveChannel:
    return request.app.state.live_channel


def get_transport(request: Request) -> PushTransport:
    return request.app.state.push_transport


def get_subscription_store(db: AsyncSession = Depends(get_db)) -> SubscriptionStore:
    return SubscriptionStore(SqlSubscriptionRepository(db), SqlUnitOfWork(db))


def get_notifier(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Notifier:
    dispatcher = PushDispatcher(
        SqlSubscriptionRepository(db),
        SqlUnitOfWork(db),
        get_transport(request),
    )
    return Notifier(get_live_channel(request), dispatcher)


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> BookingService:
    return BookingService(
        users=SqlUserReader(db),
        catalog=SqlCatalogReader(db),
        activities=SqlActivityRepository(db),
        bookings=SqlBookingRepository(db),
        uow=SqlUnitOfWork(db),
        notifier=notifier,
        edit_window_hours=get_settings().EDIT_WINDOW_HOURS,
    )


def get_activity_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ActivityService:
    return ActivityService(
        users=SqlUserReader(db),
        catalog=SqlCatalogReader(db),
        activities=SqlActivityRepository(db),
        uow=SqlUnitOfWork(db),
        notifier=notifier,
    )


def get_conversation_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ConversationService:
    return ConversationService(
        users=SqlUserReader(db),
        conversations=SqlConversationRepository(db),
        uow=SqlUnitOfWork(db),
        notifier=notifier,
    )
