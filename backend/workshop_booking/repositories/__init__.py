"""
Persistence layer - narrow repositories per entity.
Keeps business logic clean from query details.
"""

from .interfaces import (
    ActivityRepository,
    BookingRepository,
    CatalogReader,
    ConversationRepository,
    SubscriptionRepository,
    UnitOfWork,
    UserReader,
)

__all__ = [
    "ActivityRepository",
    "BookingRepository",
    "CatalogReader",
    "ConversationRepository",
    "SubscriptionRepository",
    "UnitOfWork",
    "UserReader",
]
