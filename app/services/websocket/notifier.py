"""Relays registry-driven room changes (turn timeouts, expiry) to sockets."""

import logging

from app.schemas.games import GameSnapshot
from app.schemas.ws import MessageType, RoomClosedPayload, WSServerMessage
from app.services.game.engine import AnyGameEvent, RoomClosed
from app.services.room import RoomListener

from .handlers.base import events_payload
from .manager import ConnectionManager

logger = logging.getLogger(__name__)


def build_room_listener(manager: ConnectionManager) -> RoomListener:
    """Create the RoomRegistry listener that broadcasts to room subscribers."""

    async def on_room_change(
        room_id: str, events: list[AnyGameEvent], snapshot: GameSnapshot | None
    ) -> None:
        closed = next((e for e in events if isinstance(e, RoomClosed)), None)
        if closed is not None:
            sent = await manager.send_to_room(
                room_id,
                WSServerMessage(
                    type=MessageType.ROOM_CLOSED,
                    payload=RoomClosedPayload(reason=closed.reason, room_id=room_id).model_dump(),
                ),
            )
            manager.close_room(room_id)
            logger.info("Room %s closed (%s), notified %d connections", room_id, closed.reason, sent)
            return

        sent = await manager.send_to_room(
            room_id,
            WSServerMessage(
                type=MessageType.GAME_UPDATED,
                payload=events_payload(events, snapshot),
            ),
        )
        logger.debug("Room %s update sent to %d connections", room_id, sent)

    return on_room_change
