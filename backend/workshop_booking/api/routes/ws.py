"""
WebSocket transport for the live channel.

Clients connect to /ws?token=<bearer> and send JSON frames:
    {"action": "join", "room": "activity:12"}
    {"action": "leave", "room": "activity:12"}
Server frames are {"room", "event", "payload"}; rejected client frames get
{"error": "..."} back and the socket stays open. When the channel drops the
connection after a failed or slow send, the next join or leave frame is
answered by closing with 1013 so the client reconnects and joins its rooms again.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_booking.core.logging import get_logger
from workshop_booking.core.security import decode_principal
from workshop_booking.db.session import get_db
from workshop_booking.domain.principal import Principal
from workshop_booking.repositories.sql import SqlConversationRepository
from workshop_booking.services.live_channel import LiveChannel, LiveConnection

logger = get_logger(__name__)
router = APIRouter()

ROOM_KINDS = ("activity", "conversation")


class WebSocketConnection(LiveConnection):
    def __init__(self, websocket: WebSocket) -> None:
        super().__init__(uuid.uuid4().hex)
        self.websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        await self.websocket.send_json(message)


def parse_room(room: Any) -> tuple[str, int]:
    """Split "kind:id". Raises ValueError for anything else."""
    if not isinstance(room, str):
        raise ValueError("room must be a string")
    kind, _, raw_id = room.partition(":")
    if kind not in ROOM_KINDS or not raw_id.isdigit():
        raise ValueError(f"Unknown room {room!r}")
    return kind, int(raw_id)


async def can_join(principal: Principal, room: str, db: AsyncSession) -> bool:
    kind, room_id = parse_room(room)
    if kind == "activity" or principal.is_staff:
        return True
    conversation = await SqlConversationRepository(db).get(room_id)
    # Release the connection; the session lives as long as the socket
    await db.rollback()
    return conversation is not None and conversation.owner_id == principal.user_id


@router.websocket("/ws")
async def live_socket(
    websocket: WebSocket,
    token: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    try:
        principal = decode_principal(token)
    except ValueError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel: LiveChannel = websocket.app.state.live_channel
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    channel.connect(connection)
    logger.info("live_socket_opened", connection_id=connection.connection_id, user_id=principal.user_id)

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"error": "frames must be JSON"})
                continue

            action = frame.get("action") if isinstance(frame, dict) else None
            room = frame.get("room") if isinstance(frame, dict) else None

            if action not in ("join", "leave"):
                await websocket.send_json({"error": "action must be 'join' or 'leave'"})
                continue
            try:
                parse_room(room)
            except ValueError as e:
                await websocket.send_json({"error": str(e)})
                continue

            if action == "join" and not await can_join(principal, room, db):
                await websocket.send_json({"error": f"No access to room {room}"})
                continue

            # No await between this check and join/leave
            if not channel.is_connected(connection.connection_id):
                logger.info("live_socket_dropped", connection_id=connection.connection_id)
                await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
                return

            if action == "join":
                channel.join(connection.connection_id, room)
            else:
                channel.leave(connection.connection_id, room)
            await websocket.send_json({"ack": action, "room": room})
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(connection.connection_id)
        logger.info("live_socket_closed", connection_id=connection.connection_id)
