"""
Live event publisher interface.
Producers depend on this, not on a concrete channel, so tests can record events.
"""

from abc import ABC, abstractmethod
from typing import Any


class EventPublisher(ABC):
    """
    Interface for best-effort, non-durable room publishing.

    Implementations:
    - LiveChannel: in-process rooms over WebSocket connections
    """

    @abstractmethod
    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """
        Deliver an event to every connection currently joined to the room.

        Args:
            room: Room name, e.g. "activity:12"
            event: Event name, e.g. "booking:created"
            payload: JSON-serializable event body

        Returns:
            Number of connections the event was delivered to
        """
        pass


def activity_room(activity_id: int) -> str:
    return f"activity:{activity_id}"


def conversation_room(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"
