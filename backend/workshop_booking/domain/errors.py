"""Domain error codes for the booking engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INELIGIBLE_ITEM = "INELIGIBLE_ITEM"
    EDIT_WINDOW_CLOSED = "EDIT_WINDOW_CLOSED"
    FORBIDDEN = "FORBIDDEN"
    DELIVERY_FAILURE = "DELIVERY_FAILURE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message}


class ValidationError(DomainError):
    """Raised for missing or malformed input. The message is shown verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class NotFound(DomainError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{entity} {entity_id} not found",
        )
        self.entity = entity
        self.entity_id = entity_id


class IneligibleItem(DomainError):
    """Raised when selected catalog items are not available for the subject's age."""

    def __init__(self, items: list[str], age: int) -> None:
        super().__init__(
            code=ErrorCode.INELIGIBLE_ITEM,
            message=f"Items {', '.join(repr(name) for name in items)} are not available for age {age}",
        )
        self.items = items
        self.age = age

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["items"] = self.items
        return data


class EditWindowClosed(DomainError):
    """Raised when a booking is edited too close to the activity start."""

    def __init__(self, hours: int) -> None:
        super().__init__(
            code=ErrorCode.EDIT_WINDOW_CLOSED,
            message=f"Bookings can only be changed at least {hours} hours before the workshop starts",
        )
        self.hours = hours


class Forbidden(DomainError):
    """Raised when the caller may not act on the resource."""

    def __init__(self, message: str = "Not allowed") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)


class DeliveryFailure(DomainError):
    """Raised by push transports. Never surfaces to booking or message callers."""

    GONE_STATUSES = (404, 410)

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(code=ErrorCode.DELIVERY_FAILURE, message=message)
        self.status_code = status_code

    @property
    def endpoint_gone(self) -> bool:
        return self.status_code in self.GONE_STATUSES
