"""
Push subscription endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from workshop_booking.api.deps import get_subscription_store, get_transport
from workshop_booking.schemas.push import (
    PushSubscribeRequest,
    PushUnsubscribeRequest,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
    PushStatusResponse,
)
from workshop_booking.services.interfaces.push_transport import PushTransport
from workshop_booking.services.push_service import SubscriptionStore
from workshop_booking.core.security import get_current_principal
from workshop_booking.core.logging import get_logger
from workshop_booking.domain.principal import Principal

logger = get_logger(__name__)
router = APIRouter(prefix="/push", tags=["Push"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key(transport: PushTransport = Depends(get_transport)):
    """Application server key the browser needs for pushManager.subscribe()."""
    if not transport.public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return VapidPublicKeyResponse(public_key=transport.public_key)


@router.post("/subscribe", response_model=PushStatusResponse)
async def subscribe(
    subscription: PushSubscribeRequest,
    principal: Principal = Depends(get_current_principal),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    """Register this browser. Subscribing the same endpoint again refreshes its keys."""
    await store.subscribe(
        principal.user_id,
        endpoint=subscription.endpoint,
        p256dh=subscription.p256dh,
        auth=subscription.auth,
    )
    return PushStatusResponse(success=True, message="Subscribed to push notifications")


@router.post("/unsubscribe", response_model=PushStatusResponse)
async def unsubscribe(
    request: PushUnsubscribeRequest,
    principal: Principal = Depends(get_current_principal),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    removed = await store.unsubscribe(principal.user_id, request.endpoint)
    if not removed:
        return PushStatusResponse(success=False, message="Subscription not found")
    return PushStatusResponse(success=True, message="Unsubscribed from push notifications")


@router.get("/subscriptions", response_model=list[PushSubscriptionResponse])
async def list_subscriptions(
    principal: Principal = Depends(get_current_principal),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    return await store.list_subscriptions(principal.user_id)
