"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from workshop_booking.api.routes import activities, bookings, push, conversations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(activities.router)
api_router.include_router(bookings.router)
api_router.include_router(push.router)
api_router.include_router(conversations.router)
