"""
SQLAlchemy implementations of the repository interfaces.

All repositories of one request share a single AsyncSession, so the session
transaction is the unit of work across them.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_booking.models import (
    Activity,
    Booking,
    BookingLineItem,
    CatalogItem,
    CatalogVariant,
    Conversation,
    ConversationMessage,
    PushSubscription,
    Service,
    User,
)
from workshop_booking.repositories.interfaces import (
    ActivityRepository,
    BookingRepository,
    CatalogReader,
    ConversationRepository,
    SubscriptionRepository,
    UnitOfWork,
    UserReader,
)


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


class SqlUserReader(UserReader):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._session.get(User, user_id)

    async def list_active_by_roles(self, roles: Iterable[str]) -> list[User]:
        result = await self._session.execute(
            select(User)
            .where(User.role.in_(list(roles)), User.is_active.is_(True))
            .order_by(User.id)
        )
        return list(result.scalars().all())


class SqlCatalogReader(CatalogReader):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_item(self, item_id: int) -> Optional[CatalogItem]:
        return await self._session.get(CatalogItem, item_id)

    async def get_variant(self, variant_id: int) -> Optional[CatalogVariant]:
        return await self._session.get(CatalogVariant, variant_id)

    async def service_exists(self, service_id: int) -> bool:
        return await self._session.get(Service, service_id) is not None


class SqlActivityRepository(ActivityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, activity_id: int) -> Optional[Activity]:
        return await self._session.get(Activity, activity_id)

    async def add(self, activity: Activity) -> Activity:
        self._session.add(activity)
        await self._session.flush()
        return activity

    async def list_page(
        self,
        page: int,
        page_size: int,
        starts_after: Optional[datetime] = None,
    ) -> tuple[list[Activity], int]:
        query = select(Activity)
        if starts_after is not None:
            query = query.where(Activity.starts_at >= starts_after)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self._session.execute(count_query)).scalar() or 0

        # Uses the ix_activities_starts_at index
        result = await self._session.execute(
            query
            .order_by(Activity.starts_at.asc(), Activity.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def set_occupancy(self, activity_id: int, count: int) -> None:
        activity = await self._session.get(Activity, activity_id)
        if activity is None:
            return
        activity.current_participants = count
        await self._session.flush()


class SqlBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, booking_id: int) -> Optional[Booking]:
        result = await self._session.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    async def add(self, booking: Booking) -> Booking:
        self._session.add(booking)
        await self._session.flush()
        return booking

    async def replace_line_items(self, booking: Booking, line_items: list[BookingLineItem]) -> None:
        # delete-orphan cascade removes the previous rows on flush
        booking.line_items.clear()
        await self._session.flush()
        booking.line_items.extend(line_items)
        await self._session.flush()

    async def delete(self, booking: Booking) -> None:
        await self._session.delete(booking)
        await self._session.flush()

    async def count_live(self, activity_id: int) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(Booking)
            .where(Booking.activity_id == activity_id, Booking.status != "cancelled")
        )
        return result.scalar() or 0

    async def find(self, user_id: Optional[int] = None, activity_id: Optional[int] = None) -> list[Booking]:
        query = select(Booking)
        if user_id is not None:
            query = query.where(or_(Booking.payer_id == user_id, Booking.subject_id == user_id))
        if activity_id is not None:
            query = query.where(Booking.activity_id == activity_id)
        result = await self._session.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
        return list(result.scalars().all())


class SqlSubscriptionRepository(SubscriptionRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int, endpoint: str) -> Optional[PushSubscription]:
        result = await self._session.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        return result.scalar_one_or_none()

    async def add(self, subscription: PushSubscription) -> PushSubscription:
        self._session.add(subscription)
        await self._session.flush()
        return subscription

    async def delete(self, subscription: PushSubscription) -> None:
        await self._session.delete(subscription)
        await self._session.flush()

    async def list_for_user(self, user_id: int) -> list[PushSubscription]:
        result = await self._session.execute(
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.id)
        )
        return list(result.scalars().all())


class SqlConversationRepository(ConversationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, conversation_id: int) -> Optional[Conversation]:
        return await self._session.get(Conversation, conversation_id)

    async def get_by_owner(self, owner_id: int) -> Optional[Conversation]:
        result = await self._session.execute(
            select(Conversation).where(Conversation.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def add(self, conversation: Conversation) -> Conversation:
        self._session.add(conversation)
        await self._session.flush()
        return conversation

    async def add_message(self, message: ConversationMessage) -> ConversationMessage:
        self._session.add(message)
        await self._session.flush()
        return message

    async def find(self, owner_id: Optional[int] = None) -> list[Conversation]:
        query = select(Conversation)
        if owner_id is not None:
            query = query.where(Conversation.owner_id == owner_id)
        result = await self._session.execute(query.order_by(Conversation.updated_at.desc(), Conversation.id.desc()))
        return list(result.scalars().all())

    async def list_messages(self, conversation_id: int) -> list[ConversationMessage]:
        result = await self._session.execute(
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        )
        return list(result.scalars().all())
