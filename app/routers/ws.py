import json
import logging
import time
from collections import defaultdict, deque

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.room import RoomRegistry
from app.services.websocket import ConnectionManager
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.handlers.leave import leave_current_game

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

MAX_MESSAGE_SIZE = 64 * 1024  # 64 KB
MAX_MESSAGES_PER_SECOND = 10
RATE_LIMIT_WINDOW = 1.0  # seconds


class RateLimiter:
    """Sliding-window message limit per connection."""

    def __init__(
        self, max_messages: int = MAX_MESSAGES_PER_SECOND, window: float = RATE_LIMIT_WINDOW
    ):
        self.max_messages = max_messages
        self.window = window
        self._sent: dict[str, deque[float]] = defaultdict(deque)

    def is_allowed(self, connection_id: str) -> bool:
        now = time.monotonic()
        sent = self._sent[connection_id]
        while sent and sent[0] <= now - self.window:
            sent.popleft()

        if len(sent) >= self.max_messages:
            return False
        sent.append(now)
        return True

    def remove(self, connection_id: str) -> None:
        self._sent.pop(connection_id, None)


def _error(error_code: str, message: str) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ERROR,
        payload=ErrorPayload(error_code=error_code, message=message).model_dump(),
    )


def _decode(
    connection_id: str, frame: dict, rate_limiter: RateLimiter
) -> tuple[WSClientMessage | None, WSServerMessage | None]:
    """Turn a raw ASGI receive frame into a client message.

    Returns:
        (message, error). Both are None for frames that carry nothing to
        handle (empty or binary frames).
    """
    text = frame.get("text")
    data = frame.get("bytes")
    size = len(text.encode("utf-8")) if text else len(data or b"")
    if size == 0:
        return None, None

    if size > MAX_MESSAGE_SIZE:
        logger.warning(
            "Message too large from connection %s: %d bytes (max %d)",
            connection_id,
            size,
            MAX_MESSAGE_SIZE,
        )
        return None, _error(
            "MESSAGE_TOO_LARGE", f"Message exceeds maximum size of {MAX_MESSAGE_SIZE} bytes"
        )

    if not rate_limiter.is_allowed(connection_id):
        logger.warning("Rate limit exceeded for connection %s", connection_id)
        return None, _error("RATE_LIMITED", "Too many messages, please slow down")

    if not text:
        return None, None

    try:
        raw = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON from connection %s", connection_id)
        return None, _error("INVALID_JSON", "Invalid JSON format")

    try:
        return WSClientMessage.model_validate(raw), None
    except ValidationError as e:
        logger.warning("Invalid message from connection %s: %s", connection_id, e)
        return None, _error("INVALID_MESSAGE", "Invalid message format")


async def _leave_on_disconnect(
    connection_id: str, manager: ConnectionManager, registry: RoomRegistry
) -> None:
    """Take a disconnected player out of their game and tell the others."""
    if registry.get_player_room(connection_id) is None:
        return

    ctx = HandlerContext(
        connection_id=connection_id,
        message=WSClientMessage(type=MessageType.LEAVE_GAME),
        manager=manager,
        registry=registry,
    )
    result = await leave_current_game(ctx)
    if result.broadcast and result.room_id:
        await manager.send_to_room(result.room_id, result.broadcast)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for game connections.

    Clients connect with: ws://host/api/v1/ws

    Every connection is a new player; its connection id is the player id sent
    back in the 'connected' message. Players then send 'join_game' to take a
    seat. Disconnecting leaves the current game.
    """
    manager: ConnectionManager | None = getattr(websocket.app.state, "connection_manager", None)
    registry: RoomRegistry | None = getattr(websocket.app.state, "registry", None)
    rate_limiter: RateLimiter | None = getattr(websocket.app.state, "rate_limiter", None)
    if manager is None or registry is None or rate_limiter is None:
        logger.error("WS connection rejected: services not initialized")
        await websocket.close(code=WSCloseCode.INTERNAL_ERROR)
        return

    await websocket.accept()
    connection = await manager.connect(websocket)
    connection_id = connection.connection_id

    try:
        while websocket.client_state == WebSocketState.CONNECTED:
            try:
                frame = await websocket.receive()
            except Exception as e:
                logger.debug("Error receiving message: %s", e)
                break
            if frame.get("type") == "websocket.disconnect":
                break

            message, error = _decode(connection_id, frame, rate_limiter)
            if error is not None:
                await manager.send_to_connection(connection_id, error)
                continue
            if message is None:
                continue

            result = await dispatch(
                HandlerContext(
                    connection_id=connection_id,
                    message=message,
                    manager=manager,
                    registry=registry,
                )
            )
            if result is None:
                logger.debug("Unhandled message type %s from %s", message.type, connection_id)
                continue

            if result.response:
                await manager.send_to_connection(connection_id, result.response)
            if result.broadcast and result.room_id:
                await manager.send_to_room(
                    result.room_id, result.broadcast, exclude_connection=connection_id
                )

    except WebSocketDisconnect as e:
        logger.info("WS disconnected: connection %s, code %s", connection_id, e.code)
    except Exception as e:
        logger.error("WS error for connection %s: %s", connection_id, e)
    finally:
        rate_limiter.remove(connection_id)
        await _leave_on_disconnect(connection_id, manager, registry)
        await manager.disconnect(connection_id)
