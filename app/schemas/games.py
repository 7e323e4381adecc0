"""Pydantic schemas for game snapshots and room listings."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.game_engine import GamePhase


class CellView(BaseModel):
    """A single cell as seen by players.

    is_mine and neighbor_count are always False/0 for unrevealed cells.
    """

    is_revealed: bool
    is_flagged: bool
    is_mine: bool
    neighbor_count: int
    revealed_by: str | None = None


class PlayerView(BaseModel):
    """Public information about a seated player."""

    id: str
    name: str
    color: str
    joined_at: datetime


class GameSnapshot(BaseModel):
    """Full room state safe to broadcast to every member."""

    room_id: str
    phase: GamePhase
    difficulty: str
    players: list[PlayerView]
    scores: dict[str, int]
    current_player_id: str | None = None
    winner_id: str | None = None
    turn_number: int = 0
    width: int
    height: int
    mine_count: int
    board: list[list[CellView]]


class RoomSummary(BaseModel):
    """Listing entry for GET /games."""

    room_id: str = Field(..., description="Room identifier")
    player_count: int
    max_players: int
    phase: GamePhase
    difficulty: str
    width: int
    height: int
    mine_count: int
