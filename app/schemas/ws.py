from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Lobby
    JOIN_GAME = "join_game"
    JOINED_GAME = "joined_game"
    LEAVE_GAME = "leave_game"
    GAME_UPDATED = "game_updated"
    PLAYER_LEFT = "player_left"
    ROOM_CLOSED = "room_closed"

    # Game
    START_GAME = "start_game"
    GAME_STARTED = "game_started"
    GAME_ACTION = "game_action"
    GAME_EVENTS = "game_events"
    GET_GAME_STATE = "get_game_state"
    GAME_STATE = "game_state"
    GAME_ERROR = "game_error"


class WSCloseCode:
    """WebSocket close codes (RFC 6455)."""

    NORMAL = 1000
    GOING_AWAY = 1001
    INTERNAL_ERROR = 1011


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ConnectedPayload(BaseModel):
    """Payload for the 'connected' message.

    player_id is the identity used for every game action on this connection.
    """

    connection_id: str
    player_id: str


class PongPayload(BaseModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(BaseModel):
    """Payload for error messages (ERROR, GAME_ERROR)."""

    error_code: str
    message: str


class JoinGamePayload(BaseModel):
    """Payload for the 'join_game' message from client."""

    player_name: str = Field(..., min_length=1, max_length=32)
    game_id: str | None = Field(None, description="Join this room instead of any open one")
    difficulty: str | None = Field(
        None, description="Preferred difficulty when a new room has to be created"
    )


class JoinedGamePayload(BaseModel):
    """Payload for the 'joined_game' message sent to the joining player."""

    game_id: str
    player_id: str
    game_state: dict[str, Any]


class RoomClosedPayload(BaseModel):
    """Payload sent when the registry tears a room down."""

    reason: str = "expired"
    room_id: str


class PlayerLeftPayload(BaseModel):
    """Payload broadcast to remaining players when someone leaves."""

    player_id: str
    game_state: dict[str, Any]


# --- Game payload schemas ---


class GameActionPayload(BaseModel):
    """Payload for GAME_ACTION messages from client."""

    action_type: str = Field(..., description="Action type: 'reveal', 'toggle_flag'")
    x: int | None = Field(None, description="Column index")
    y: int | None = Field(None, description="Row index")


class GameEventsPayload(BaseModel):
    """Payload for GAME_EVENTS / GAME_STARTED / GAME_UPDATED messages to clients.

    Contains the events that occurred and the redacted room state after them.
    """

    events: list[dict[str, Any]] = Field(
        default_factory=list, description="List of game events (serialized)"
    )
    game_state: dict[str, Any] | None = Field(
        None, description="Redacted room snapshot after the events"
    )


class GameStatePayload(BaseModel):
    """Payload for GAME_STATE messages to clients.

    Contains the full redacted room state for reconciliation or initial sync.
    """

    state: dict[str, Any] = Field(..., description="Full game state (serialized)")


class GameErrorPayload(BaseModel):
    """Payload for GAME_ERROR messages to clients."""

    error_code: str
    message: str
