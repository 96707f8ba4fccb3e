"""
Push transport interface.
Allows swapping the delivery mechanism without touching the dispatcher.
"""

from abc import ABC, abstractmethod

from workshop_booking.models import PushSubscription


class PushTransport(ABC):
    """
    Interface for delivering one payload to one push endpoint.

    Implementations:
    - WebPushTransport: Web Push protocol with VAPID (pywebpush)
    - DisabledPushTransport: VAPID not configured, every delivery fails softly
    """

    @abstractmethod
    async def send(self, subscription: PushSubscription, payload: str) -> None:
        """
        Deliver a payload to a single endpoint.

        Raises:
            DeliveryFailure: carrying the push service HTTP status when one was returned.
                404/410 mean the endpoint is permanently gone.
        """
        pass

    @property
    def public_key(self) -> str:
        """Application server key handed to browsers when they subscribe."""
        return ""
