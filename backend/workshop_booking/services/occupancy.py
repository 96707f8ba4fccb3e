"""
Occupancy tracker.

The activity's `current_participants` is a cached aggregate. It is always
rewritten from a fresh COUNT inside the caller's unit of work and never
incremented or decremented in place. Two concurrent recounts may race, but each
writes a value read from the table, so the last commit leaves the true count.
"""

from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import occupancy_recounts
from workshop_booking.repositories.interfaces import ActivityRepository, BookingRepository

logger = get_logger(__name__)


class OccupancyTracker:
    def __init__(self, activities: ActivityRepository, bookings: BookingRepository) -> None:
        self._activities = activities
        self._bookings = bookings

    async def recount(self, activity_id: int) -> int:
        count = await self._bookings.count_live(activity_id)
        await self._activities.set_occupancy(activity_id, count)
        occupancy_recounts.inc()
        logger.info("occupancy_recounted", activity_id=activity_id, occupancy=count)
        return count
