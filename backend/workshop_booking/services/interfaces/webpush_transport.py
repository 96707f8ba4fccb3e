"""
Web Push transport backed by pywebpush.

pywebpush is synchronous (requests), so each delivery runs in a worker thread
with its own HTTP timeout. Deliveries to different endpoints never share a
request, so one slow push service only delays its own endpoint.
"""

from fastapi.concurrency import run_in_threadpool
from pywebpush import WebPushException, webpush

from workshop_booking.core.logging import get_logger
from workshop_booking.domain.errors import DeliveryFailure
from workshop_booking.models import PushSubscription
from workshop_booking.services.interfaces.push_transport import PushTransport

logger = get_logger(__name__)


class WebPushTransport(PushTransport):
    def __init__(
        self,
        vapid_public_key: str,
        vapid_private_key: str,
        claims_email: str,
        timeout: float = 10.0,
        ttl: int = 86400,
    ) -> None:
        self._public_key = vapid_public_key
        self._private_key = vapid_private_key.strip()
        self._claims = {"sub": claims_email}
        self._timeout = timeout
        self._ttl = ttl

    @property
    def public_key(self) -> str:
        return self._public_key

    def _deliver(self, subscription: PushSubscription, payload: str) -> None:
        webpush(
            subscription_info={
                "endpoint": subscription.endpoint,
                "keys": {
                    "p256dh": subscription.p256dh,
                    "auth": subscription.auth,
                },
            },
            data=payload,
            vapid_private_key=self._private_key,
            # pywebpush fills in "aud" and "exp" on the dict it is given
            vapid_claims=dict(self._claims),
            timeout=self._timeout,
            ttl=self._ttl,
        )

    async def send(self, subscription: PushSubscription, payload: str) -> None:
        try:
            await run_in_threadpool(self._deliver, subscription, payload)
        except WebPushException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise DeliveryFailure(str(exc), status_code=status_code) from exc
        except Exception as exc:
            raise DeliveryFailure(str(exc) or type(exc).__name__) from exc


class DisabledPushTransport(PushTransport):
    """
    Used when VAPID keys are not configured.
    Subscriptions are kept; nothing is sent.
    """

    async def send(self, subscription: PushSubscription, payload: str) -> None:
        raise DeliveryFailure("Push notifications are not configured")
