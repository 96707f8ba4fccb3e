"""Repository interfaces.

Services depend only on these. Each exposes just the operations the booking
engine needs, so persistence can be swapped or faked in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from workshop_booking.models import (
    Activity,
    Booking,
    BookingLineItem,
    CatalogItem,
    CatalogVariant,
    Conversation,
    ConversationMessage,
    PushSubscription,
    User,
)


class UnitOfWork(ABC):
    """Atomic multi-write boundary. Nothing is durable before commit()."""

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class UserReader(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        """Return a user by ID, or None if not found."""
        ...

    @abstractmethod
    async def list_active_by_roles(self, roles: Iterable[str]) -> list[User]:
        """Return active users having one of the given roles, ordered by id."""
        ...


class CatalogReader(ABC):
    @abstractmethod
    async def get_item(self, item_id: int) -> Optional[CatalogItem]:
        ...

    @abstractmethod
    async def get_variant(self, variant_id: int) -> Optional[CatalogVariant]:
        ...

    @abstractmethod
    async def service_exists(self, service_id: int) -> bool:
        ...


class ActivityRepository(ABC):
    @abstractmethod
    async def get(self, activity_id: int) -> Optional[Activity]:
        ...

    @abstractmethod
    async def add(self, activity: Activity) -> Activity:
        """Stage a new activity and assign its ID."""
        ...

    @abstractmethod
    async def list_page(
        self,
        page: int,
        page_size: int,
        starts_after: Optional[datetime] = None,
    ) -> tuple[list[Activity], int]:
        """Return one page of activities ordered by start time, plus the total count."""
        ...

    @abstractmethod
    async def set_occupancy(self, activity_id: int, count: int) -> None:
        ...


class BookingRepository(ABC):
    @abstractmethod
    async def get(self, booking_id: int) -> Optional[Booking]:
        """Return a booking with its line items loaded."""
        ...

    @abstractmethod
    async def add(self, booking: Booking) -> Booking:
        """Stage a new booking (with line items) and assign its ID."""
        ...

    @abstractmethod
    async def replace_line_items(self, booking: Booking, line_items: list[BookingLineItem]) -> None:
        """Drop every current line item of the booking and attach the given ones."""
        ...

    @abstractmethod
    async def delete(self, booking: Booking) -> None:
        """Stage removal of the booking and its line items."""
        ...

    @abstractmethod
    async def count_live(self, activity_id: int) -> int:
        """Fresh count of non-cancelled bookings for the activity, including staged writes."""
        ...

    @abstractmethod
    async def find(self, user_id: Optional[int] = None, activity_id: Optional[int] = None) -> list[Booking]:
        """Bookings newest first. user_id matches the payer or the subject."""
        ...


class SubscriptionRepository(ABC):
    @abstractmethod
    async def get(self, user_id: int, endpoint: str) -> Optional[PushSubscription]:
        ...

    @abstractmethod
    async def add(self, subscription: PushSubscription) -> PushSubscription:
        ...

    @abstractmethod
    async def delete(self, subscription: PushSubscription) -> None:
        ...

    @abstractmethod
    async def list_for_user(self, user_id: int) -> list[PushSubscription]:
        ...


class ConversationRepository(ABC):
    @abstractmethod
    async def get(self, conversation_id: int) -> Optional[Conversation]:
        ...

    @abstractmethod
    async def get_by_owner(self, owner_id: int) -> Optional[Conversation]:
        ...

    @abstractmethod
    async def add(self, conversation: Conversation) -> Conversation:
        ...

    @abstractmethod
    async def add_message(self, message: ConversationMessage) -> ConversationMessage:
        ...

    @abstractmethod
    async def find(self, owner_id: Optional[int] = None) -> list[Conversation]:
        """Conversations most recently active first."""
        ...

    @abstractmethod
    async def list_messages(self, conversation_id: int) -> list[ConversationMessage]:
        """Messages oldest first."""
        ...
