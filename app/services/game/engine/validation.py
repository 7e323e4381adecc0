"""Validation layer for room operations and ProcessResult pattern.

Separates validation from processing logic:
- validate_*() checks if an operation is valid given current room state
- ProcessResult replaces exceptions for control flow

Every check runs before the room is touched, so a rejected operation never
leaves a partial change behind.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.schemas.game_engine import ErrorCode, GamePhase
from app.schemas.games import GameSnapshot

from .actions import RevealAction, ToggleFlagAction
from .board import in_bounds
from .events import AnyGameEvent

if TYPE_CHECKING:
    from app.services.game.room import GameRoom

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Result of a room operation.

    Replaces exceptions for control flow, providing explicit success/failure
    with error codes suitable for client localization.
    """

    snapshot: GameSnapshot | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        snapshot: GameSnapshot | None,
        events: list[AnyGameEvent] | None = None,
    ) -> "ProcessResult":
        """Create a successful result with the new snapshot and events."""
        return cls(
            snapshot=snapshot,
            events=events or [],
            success=True,
        )

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        """Create a failure result with error details."""
        return cls(
            snapshot=None,
            events=[],
            success=False,
            error_code=code,
            error_message=message,
        )

    @property
    def turn_changed(self) -> bool:
        return any(e.event_type == "turn_started" for e in self.events)

    @property
    def game_ended(self) -> bool:
        return any(e.event_type == "game_ended" for e in self.events)


@dataclass
class ValidationResult:
    """Result of validating an operation before processing."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        """Create a validation failure with error details."""
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )

    def to_process_result(self) -> ProcessResult:
        return ProcessResult.failure(
            self.error_code or "VALIDATION_ERROR",
            self.error_message or "Invalid action",
        )


def validate_join(room: "GameRoom", player_id: str) -> ValidationResult:
    """Check that player_id may take a seat in room."""
    if player_id in room.players:
        logger.warning(
            "Validation failed: ALREADY_IN_ROOM, room=%s, player=%s", room.id, player_id
        )
        return ValidationResult.error(ErrorCode.ALREADY_IN_ROOM, "Player is already in this room")

    if len(room.players) >= room.max_players:
        logger.warning(
            "Validation failed: ROOM_FULL, room=%s, players=%d/%d",
            room.id,
            len(room.players),
            room.max_players,
        )
        return ValidationResult.error(ErrorCode.ROOM_FULL, "Game is full")

    if room.phase != GamePhase.WAITING:
        logger.warning(
            "Validation failed: ALREADY_STARTED, room=%s, phase=%s", room.id, room.phase.value
        )
        return ValidationResult.error(ErrorCode.ALREADY_STARTED, "Game already started")

    return ValidationResult.ok()


def validate_start(room: "GameRoom") -> ValidationResult:
    """Check that room can move from WAITING to PLAYING.

    A room that is already PLAYING is handled by the caller as a no-op.
    """
    if room.phase == GamePhase.FINISHED:
        logger.warning("Validation failed: ALREADY_STARTED (finished), room=%s", room.id)
        return ValidationResult.error(ErrorCode.ALREADY_STARTED, "Game has already finished")

    if len(room.players) < 2:
        logger.warning(
            "Validation failed: NOT_ENOUGH_PLAYERS, room=%s, players=%d",
            room.id,
            len(room.players),
        )
        return ValidationResult.error(
            ErrorCode.NOT_ENOUGH_PLAYERS, "Need at least 2 players to start"
        )

    return ValidationResult.ok()


def validate_move(
    room: "GameRoom",
    action: RevealAction | ToggleFlagAction,
    player_id: str,
) -> ValidationResult:
    """Validate a reveal or flag before it touches the board.

    Checks, in order:
    - Room is PLAYING
    - It's the acting player's turn
    - Coordinates are on the board
    - The target cell can take this action

    Args:
        room: The room the move targets.
        action: The reveal or flag action.
        player_id: The player attempting the move.

    Returns:
        ValidationResult indicating success or failure with error details.
    """
    action_type = action.action_type
    logger.debug(
        "Validating move: type=%s, player=%s, phase=%s, x=%d, y=%d",
        action_type,
        player_id,
        room.phase.value,
        action.x,
        action.y,
    )

    if room.phase != GamePhase.PLAYING:
        logger.warning(
            "Validation failed: NOT_PLAYING, room=%s, phase=%s", room.id, room.phase.value
        )
        return ValidationResult.error(ErrorCode.NOT_PLAYING, "Game is not in playing state")

    current_player_id = room.current_player_id
    if player_id != current_player_id:
        logger.warning(
            "Validation failed: NOT_YOUR_TURN, current=%s, attempted=%s",
            current_player_id,
            player_id,
        )
        return ValidationResult.error(ErrorCode.NOT_YOUR_TURN, "Not your turn")

    if not in_bounds(room.board, action.x, action.y):
        logger.warning(
            "Validation failed: OUT_OF_BOUNDS, x=%d, y=%d, board=%dx%d",
            action.x,
            action.y,
            room.board.width,
            room.board.height,
        )
        return ValidationResult.error(ErrorCode.OUT_OF_BOUNDS, "Invalid coordinates")

    cell = room.board.cell(action.x, action.y)

    if isinstance(action, RevealAction):
        if cell.is_revealed or cell.is_flagged:
            logger.warning(
                "Validation failed: ALREADY_REVEALED_OR_FLAGGED, x=%d, y=%d",
                action.x,
                action.y,
            )
            return ValidationResult.error(
                ErrorCode.ALREADY_REVEALED_OR_FLAGGED,
                "Cell already revealed or flagged",
            )

    elif isinstance(action, ToggleFlagAction):
        if cell.is_revealed:
            logger.warning(
                "Validation failed: CANNOT_FLAG_REVEALED, x=%d, y=%d", action.x, action.y
            )
            return ValidationResult.error(
                ErrorCode.CANNOT_FLAG_REVEALED, "Cannot flag revealed cell"
            )

    logger.debug("Move validated successfully: type=%s", action_type)
    return ValidationResult.ok()
