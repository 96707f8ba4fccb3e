"""
In-process live channel: publish/subscribe over named rooms.

DELIVERY MODEL
==============

  - Rooms are "activity:<id>" and "conversation:<id>".
  - publish() reaches only the connections joined at that moment. Nothing is
    stored; durable delivery is the push dispatcher's job.
  - Within a room, publishes are delivered in call order: a per-room lock
    serializes fan-out, and each connection receives in join order.
  - Across rooms there is no ordering promise.
  - A connection whose send fails or exceeds the send timeout is dropped from
    every room, so one stalled client cannot hold up a room.

One instance is created in the application lifespan and injected wherever it is
needed. It is not shared across processes.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from workshop_booking.core.logging import get_logger
from workshop_booking.core.metrics import live_connections, live_events_published
from workshop_booking.services.interfaces.publisher import EventPublisher

logger = get_logger(__name__)


class LiveConnection(ABC):
    """A connected client that can receive JSON frames."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        pass


class LiveChannel(EventPublisher):
    def __init__(self, send_timeout: float = 5.0) -> None:
        self._send_timeout = send_timeout
        self._connections: dict[str, LiveConnection] = {}
        # dicts keep join order
        self._rooms: dict[str, dict[str, None]] = {}
        self._memberships: dict[str, set[str]] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        # publishes holding or waiting on each room lock
        self._lock_users: dict[str, int] = {}

    def connect(self, connection: LiveConnection) -> None:
        self._connections[connection.connection_id] = connection
        self._memberships.setdefault(connection.connection_id, set())
        live_connections.set(len(self._connections))
        logger.debug("live_connected", connection_id=connection.connection_id)

    def disconnect(self, connection_id: str) -> None:
        for room in list(self._memberships.get(connection_id, ())):
            self.leave(connection_id, room)
        self._memberships.pop(connection_id, None)
        if self._connections.pop(connection_id, None) is not None:
            live_connections.set(len(self._connections))
            logger.debug("live_disconnected", connection_id=connection_id)

    def join(self, connection_id: str, room: str) -> None:
        if connection_id not in self._connections:
            raise KeyError(f"Unknown connection {connection_id}")
        self._rooms.setdefault(room, {})[connection_id] = None
        self._memberships[connection_id].add(room)
        logger.debug("live_room_joined", connection_id=connection_id, room=room)

    def leave(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.pop(connection_id, None)
            if not members:
                del self._rooms[room]
                if room not in self._lock_users:
                    self._room_locks.pop(room, None)
        if connection_id in self._memberships:
            self._memberships[connection_id].discard(room)

    def is_connected(self, connection_id: str) -> bool:
        """False once the connection disconnected or was dropped after a failed send."""
        return connection_id in self._connections

    def members(self, room: str) -> list[str]:
        return list(self._rooms.get(room, {}))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _acquire_room_lock(self, room: str) -> asyncio.Lock:
        self._lock_users[room] = self._lock_users.get(room, 0) + 1
        return self._room_locks.setdefault(room, asyncio.Lock())

    def _release_room_lock(self, room: str) -> None:
        remaining = self._lock_users[room] - 1
        if remaining:
            self._lock_users[room] = remaining
            return
        del self._lock_users[room]
        # The room may have emptied while a publish was still sending
        if room not in self._rooms:
            self._room_locks.pop(room, None)

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> int:
        if not self._rooms.get(room):
            logger.debug("live_publish_no_listeners", room=room, live_event=event)
            return 0

        frame = {"room": room, "event": event, "payload": payload}
        delivered = 0
        lock = self._acquire_room_lock(room)
        try:
            async with lock:
                for connection_id in self.members(room):
                    connection = self._connections.get(connection_id)
                    if connection is None:
                        continue
                    try:
                        await asyncio.wait_for(connection.send(frame), timeout=self._send_timeout)
                        delivered += 1
                    except Exception as e:
                        logger.warning(
                            "live_send_failed",
                            connection_id=connection_id,
                            room=room,
                            live_event=event,
                            error=str(e) or type(e).__name__,
                        )
                        self.disconnect(connection_id)
        finally:
            self._release_room_lock(room)

        live_events_published.labels(event=event).inc()
        logger.info("live_event_published", room=room, live_event=event, delivered=delivered)
        return delivered
