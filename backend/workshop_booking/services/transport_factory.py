"""
Push transport factory.
Configures which delivery transport the dispatcher uses.
"""

from workshop_booking.core.config import Settings, get_settings
from workshop_booking.core.logging import get_logger
from workshop_booking.services.interfaces.push_transport import PushTransport
from workshop_booking.services.interfaces.webpush_transport import DisabledPushTransport, WebPushTransport

logger = get_logger(__name__)


def get_push_transport(settings: Settings | None = None) -> PushTransport:
    """
    Build the transport from configuration.

    The VAPID keypair is loaded once from settings. It is never generated at
    startup: a fresh keypair would orphan every stored subscription.
    Without keys the disabled transport is used and subscriptions are retained.
    """
    settings = settings or get_settings()

    if settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY.strip():
        return WebPushTransport(
            vapid_public_key=settings.VAPID_PUBLIC_KEY,
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            claims_email=settings.VAPID_CLAIMS_EMAIL,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            ttl=settings.PUSH_TTL_SECONDS,
        )

    logger.warning("push_not_configured", message="VAPID keys missing; push delivery disabled")
    return DisabledPushTransport()
