"""
Workshop (activity) endpoints with Redis caching on list operations.
"""

from fastapi import APIRouter, Depends, Query, status

from workshop_booking.api.deps import get_activity_service
from workshop_booking.schemas.activity import (
    ActivityCreate,
    ActivityUpdate,
    ActivityResponse,
    ActivityListResponse,
)
from workshop_booking.services.activity_service import ActivityService
from workshop_booking.services.cache_service import listing_cache
from workshop_booking.core.security import get_current_principal
from workshop_booking.core.logging import get_logger
from workshop_booking.domain.principal import Principal

logger = get_logger(__name__)
router = APIRouter(prefix="/activities", tags=["Activities"])


@router.post("/", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    activity_data: ActivityCreate,
    principal: Principal = Depends(get_current_principal),
    service: ActivityService = Depends(get_activity_service),
):
    """Schedule a workshop. Admin only."""
    activity = await service.create_activity(principal, activity_data.to_fields())
    await listing_cache.invalidate()
    return ActivityResponse.from_activity(activity)


@router.patch("/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: int,
    changes: ActivityUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ActivityService = Depends(get_activity_service),
):
    """Partial update. Assigning an executor notifies them by push."""
    activity = await service.update_activity(principal, activity_id, changes.to_changes())
    await listing_cache.invalidate()
    return ActivityResponse.from_activity(activity)


@router.get("/", response_model=ActivityListResponse)
async def list_activities(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    service: ActivityService = Depends(get_activity_service),
):
    """
    List workshops with pagination.
    Pages are cached in Redis for REDIS_CACHE_TTL seconds.
    Cache is invalidated when workshops are written or bookings change occupancy.
    """
    cached = await listing_cache.get_listing(page, page_size, upcoming_only)
    if cached is not None:
        logger.info("activities_list_cache_hit", page=page)
        cached["cached"] = True
        return ActivityListResponse(**cached)

    activities, total = await service.list_activities(page, page_size, upcoming_only)

    response_data = {
        "activities": [ActivityResponse.from_activity(a).model_dump(mode="json") for a in activities],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }

    await listing_cache.set_listing(page, page_size, upcoming_only, response_data)

    return ActivityListResponse(**response_data)


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: int,
    service: ActivityService = Depends(get_activity_service),
):
    """Single workshop. Not cached; occupancy must be current."""
    activity = await service.get_activity(activity_id)
    return ActivityResponse.from_activity(activity)
