from workshop_booking.domain.errors import (
    DeliveryFailure,
    DomainError,
    EditWindowClosed,
    ErrorCode,
    Forbidden,
    IneligibleItem,
    NotFound,
    ValidationError,
)
from workshop_booking.domain.principal import STAFF_ROLES, Principal, Role

__all__ = [
    "DeliveryFailure",
    "DomainError",
    "EditWindowClosed",
    "ErrorCode",
    "Forbidden",
    "IneligibleItem",
    "NotFound",
    "ValidationError",
    "STAFF_ROLES",
    "Principal",
    "Role",
]
