from workshop_booking.models.user import User
from workshop_booking.models.catalog import Service, CatalogItem, CatalogVariant
from workshop_booking.models.activity import Activity, ACTIVITY_STATUSES
from workshop_booking.models.booking import Booking, BookingLineItem, BOOKING_STATUSES, PAYMENT_STATUSES
from workshop_booking.models.subscription import PushSubscription
from workshop_booking.models.conversation import Conversation, ConversationMessage

__all__ = [
    "User",
    "Service", "CatalogItem", "CatalogVariant",
    "Activity", "ACTIVITY_STATUSES",
    "Booking", "BookingLineItem", "BOOKING_STATUSES", "PAYMENT_STATUSES",
    "PushSubscription",
    "Conversation", "ConversationMessage",
]
