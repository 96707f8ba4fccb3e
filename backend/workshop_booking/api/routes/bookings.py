"""
Booking endpoints. Every write recounts activity occupancy in the same transaction.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from workshop_booking.api.deps import get_booking_service
from workshop_booking.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    BookingStatusUpdate,
    BookingResponse,
    BookingCancelResponse,
    LineItemSelection,
)
from workshop_booking.services.booking_service import BookingService
from workshop_booking.services.cache_service import listing_cache
from workshop_booking.services.pricing import Selection
from workshop_booking.core.security import get_current_principal
from workshop_booking.core.logging import get_logger
from workshop_booking.domain.principal import Principal

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _selections(line_items: list[LineItemSelection]) -> list[Selection]:
    return [Selection(item_id=line.item_id, variant_id=line.variant_id) for line in line_items]


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """
    Book a child onto a workshop.

    Prices come from the catalog, never from the client. Items outside the
    child's age range are rejected together in one error.
    """
    booking = await service.create_booking(
        principal,
        subject_id=booking_data.subject_id,
        payer_id=booking_data.payer_id,
        activity_id=booking_data.activity_id,
        selections=_selections(booking_data.line_items),
        notes=booking_data.notes,
    )
    # Occupancy shown in the activity list changed
    await listing_cache.invalidate()
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    activity_id: Optional[int] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Staff see every booking; everyone else sees the ones they pay for or attend."""
    return await service.list_bookings(principal, activity_id=activity_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking(principal, booking_id)


@router.put("/{booking_id}", response_model=BookingResponse)
async def edit_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Replace the line items. Closed inside the edit window before the workshop."""
    return await service.edit_booking(
        principal,
        booking_id,
        _selections(booking_data.line_items),
        notes=booking_data.notes,
    )


@router.patch("/{booking_id}/payment", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    status_data: BookingStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Staff bookkeeping: payment status and attendance."""
    return await service.update_status(
        principal,
        booking_id,
        payment_status=status_data.payment_status,
        status=status_data.status,
    )


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking and release its place on the workshop."""
    await service.cancel_booking(principal, booking_id)
    await listing_cache.invalidate()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking_id,
    )
