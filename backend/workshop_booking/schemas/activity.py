"""
Pydantic schemas for activity (workshop) request/response validation.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from workshop_booking.models import Activity


class ActivityDetails(BaseModel):
    executor_id: Optional[int] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ActivityCreate(BaseModel):
    service_id: int
    title: str = Field("", max_length=255)
    starts_at: datetime
    max_participants: int = Field(20, gt=0, le=1000)
    details: ActivityDetails = Field(default_factory=ActivityDetails)

    def to_fields(self) -> dict[str, Any]:
        data = self.model_dump(exclude={"details"})
        data.update(self.details.model_dump())
        return data


class ActivityUpdate(BaseModel):
    service_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    starts_at: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, gt=0, le=1000)
    status: Optional[str] = None
    details: Optional[ActivityDetails] = None

    def to_changes(self) -> dict[str, Any]:
        """Only the fields the client sent, with details flattened."""
        changes = self.model_dump(exclude_unset=True, exclude={"details"})
        if self.details is not None:
            changes.update(self.details.model_dump(exclude_unset=True))
        return changes


class ActivityResponse(BaseModel):
    id: int
    service_id: int
    title: str
    starts_at: datetime
    max_participants: int
    current_participants: int
    status: str
    details: ActivityDetails
    created_at: datetime

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            service_id=activity.service_id,
            title=activity.title or "",
            starts_at=activity.starts_at,
            max_participants=activity.max_participants,
            current_participants=activity.current_participants,
            status=activity.status,
            details=ActivityDetails(
                executor_id=activity.executor_id,
                contact_phone=activity.contact_phone,
                notes=activity.notes,
            ),
            created_at=activity.created_at,
        )


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
