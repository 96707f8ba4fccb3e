from workshop_booking.schemas.booking import (
    LineItemSelection, BookingCreate, BookingUpdate, BookingStatusUpdate,
    BookingResponse, BookingCancelResponse,
)
from workshop_booking.schemas.activity import (
    ActivityDetails, ActivityCreate, ActivityUpdate, ActivityResponse, ActivityListResponse,
)
from workshop_booking.schemas.push import (
    PushSubscribeRequest, PushUnsubscribeRequest, PushSubscriptionResponse,
    VapidPublicKeyResponse, PushStatusResponse,
)
from workshop_booking.schemas.conversation import (
    ConversationStart, ConversationResponse, MessageCreate, MessageResponse,
    BroadcastRequest, BroadcastResponse,
)

__all__ = [
    "LineItemSelection", "BookingCreate", "BookingUpdate", "BookingStatusUpdate",
    "BookingResponse", "BookingCancelResponse",
    "ActivityDetails", "ActivityCreate", "ActivityUpdate", "ActivityResponse", "ActivityListResponse",
    "PushSubscribeRequest", "PushUnsubscribeRequest", "PushSubscriptionResponse",
    "VapidPublicKeyResponse", "PushStatusResponse",
    "ConversationStart", "ConversationResponse", "MessageCreate", "MessageResponse",
    "BroadcastRequest", "BroadcastResponse",
]
