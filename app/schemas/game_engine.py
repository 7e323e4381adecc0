from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# Game phases
class GamePhase(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


# Rejection codes returned to the acting player
class ErrorCode(str, Enum):
    # Lifecycle
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    ALREADY_STARTED = "ALREADY_STARTED"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"

    # Moves
    NOT_PLAYING = "NOT_PLAYING"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    ALREADY_REVEALED_OR_FLAGGED = "ALREADY_REVEALED_OR_FLAGGED"
    CANNOT_FLAG_REVEALED = "CANNOT_FLAG_REVEALED"

    # Registry
    NOT_IN_ANY_ROOM = "NOT_IN_ANY_ROOM"


class GameInvariantError(RuntimeError):
    """Internal room state is inconsistent (e.g. a turn with no players)."""


# One colour per seat, assigned by join position
PLAYER_COLORS = [
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
    "#BB8FCE",
    "#85C1E9",
]


class DifficultyPreset(BaseModel):
    width: int
    height: int
    mine_count: int


DIFFICULTY_PRESETS: dict[str, DifficultyPreset] = {
    "easy": DifficultyPreset(width=9, height=9, mine_count=10),
    "medium": DifficultyPreset(width=16, height=16, mine_count=40),
    "hard": DifficultyPreset(width=30, height=16, mine_count=99),
}


def resolve_difficulty(name: str | None, default: str = "medium") -> str:
    """Return a known difficulty name, falling back to the default."""
    if name in DIFFICULTY_PRESETS:
        return name
    return default if default in DIFFICULTY_PRESETS else "medium"


# Board entities
class Cell(BaseModel):
    is_mine: bool = False
    neighbor_count: int = Field(0, ge=0, le=8)
    is_revealed: bool = False
    is_flagged: bool = False
    revealed_by: str | None = None


class Board(BaseModel):
    """Fixed-size minefield indexed as cells[y][x].

    Mines and neighbor counts are set once by the generator. The only fields
    that change afterwards are the per-cell reveal/flag flags and
    revealed_safe_count, which tracks revealed non-mine cells for the win check.
    """

    width: int
    height: int
    mine_count: int
    cells: list[list[Cell]]
    revealed_safe_count: int = 0

    @property
    def safe_cell_count(self) -> int:
        return self.width * self.height - self.mine_count

    def cell(self, x: int, y: int) -> Cell:
        return self.cells[y][x]


class Player(BaseModel):
    id: str
    name: str
    color: str
    joined_at: datetime
