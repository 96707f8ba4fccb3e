"""
Pydantic schemas for booking-related request/response validation.

Required identifiers are Optional here on purpose: missing ones are reported by
the booking service as a ValidationError with its own message.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class LineItemSelection(BaseModel):
    item_id: int
    variant_id: Optional[int] = None


class BookingCreate(BaseModel):
    subject_id: Optional[int] = None
    payer_id: Optional[int] = None
    activity_id: Optional[int] = None
    line_items: list[LineItemSelection] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)


class BookingUpdate(BaseModel):
    line_items: list[LineItemSelection]
    notes: Optional[str] = Field(None, max_length=2000)


class BookingStatusUpdate(BaseModel):
    payment_status: Optional[str] = None
    status: Optional[str] = None


class LineItemResponse(BaseModel):
    item_id: int
    variant_id: Optional[int]
    unit_price: int

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    subject_id: int
    payer_id: int
    activity_id: int
    status: str
    payment_status: str
    amount: int
    notes: Optional[str]
    line_items: list[LineItemResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
