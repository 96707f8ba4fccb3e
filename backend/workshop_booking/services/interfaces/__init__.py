"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .publisher import EventPublisher, activity_room, conversation_room
from .push_transport import PushTransport
from .webpush_transport import WebPushTransport, DisabledPushTransport

__all__ = [
    'EventPublisher', 'activity_room', 'conversation_room',
    'PushTransport', 'WebPushTransport', 'DisabledPushTransport',
]
