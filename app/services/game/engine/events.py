"""Game event types - emitted during state transitions for WebSocket broadcasts.

Events describe what happened during a room operation, enabling:
- Efficient WebSocket updates (only send what changed)
- Frontend animations (know exactly which cells flipped)
- Action replay / audit logging
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str
    seq: int = 0  # Sequence number assigned during processing


class PlayerJoined(GameEvent):
    """A player took a seat in the room."""

    event_type: Literal["player_joined"] = "player_joined"
    player_id: str
    name: str
    color: str


class PlayerLeft(GameEvent):
    """A player left the room or disconnected."""

    event_type: Literal["player_left"] = "player_left"
    player_id: str


class GameStarted(GameEvent):
    """Room has transitioned from WAITING to PLAYING."""

    event_type: Literal["game_started"] = "game_started"
    player_order: list[str] = Field(..., description="Player IDs in turn order")
    first_player_id: str


class CellsRevealed(GameEvent):
    """One or more cells were revealed by a single move."""

    event_type: Literal["cells_revealed"] = "cells_revealed"
    player_id: str
    cells: list[tuple[int, int]] = Field(
        ..., description="(x, y) of every revealed cell, origin first"
    )
    score: int = Field(..., description="Acting player's score after the move")


class MineHit(GameEvent):
    """The acting player revealed a mine."""

    event_type: Literal["mine_hit"] = "mine_hit"
    player_id: str
    x: int
    y: int


class FlagToggled(GameEvent):
    """A cell's flag was placed or removed."""

    event_type: Literal["flag_toggled"] = "flag_toggled"
    player_id: str
    x: int
    y: int
    flagged: bool


class TurnSkipped(GameEvent):
    """The current player ran out of time."""

    event_type: Literal["turn_skipped"] = "turn_skipped"
    player_id: str


class TurnStarted(GameEvent):
    """A new turn has begun."""

    event_type: Literal["turn_started"] = "turn_started"
    player_id: str
    turn_number: int


class GameEnded(GameEvent):
    """The game has finished."""

    event_type: Literal["game_ended"] = "game_ended"
    winner_id: str | None
    reason: str = Field(..., description="Why the game ended: 'mine_hit', 'board_cleared'")
    scores: dict[str, int]


class RoomClosed(GameEvent):
    """The room was torn down by the registry."""

    event_type: Literal["room_closed"] = "room_closed"
    room_id: str
    reason: str = Field(..., description="Why the room closed: 'expired', 'empty'")


# Union of all event types for type checking
AnyGameEvent = Annotated[
    PlayerJoined
    | PlayerLeft
    | GameStarted
    | CellsRevealed
    | MineHit
    | FlagToggled
    | TurnSkipped
    | TurnStarted
    | GameEnded
    | RoomClosed,
    Field(discriminator="event_type"),
]
