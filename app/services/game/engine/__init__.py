"""Game engine module - board generation, move rules and result types.

This module provides the core game engine with:
- Board generation and flood-fill reveal
- Action types for explicit user inputs
- Event types for WebSocket broadcasts
- ProcessResult pattern for error handling

Usage:
    from app.services.game.engine import (
        process_action,
        ProcessResult,
        RevealAction,
    )

    # Process an action (while holding the room's lock)
    result = process_action(room, RevealAction(x=3, y=4), player_id)

    if result.success:
        snapshot = result.snapshot
        events = result.events  # Broadcast these via WebSocket
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Actions - explicit user inputs
from .actions import (
    GameAction,
    RevealAction,
    StartGameAction,
    ToggleFlagAction,
    build_action_from_payload,
)

# Board
from .board import generate_board, in_bounds, neighbors
from .cascade import cascade_reveal, is_board_cleared, reveal_single

# Events - for WebSocket broadcasts
from .events import (
    AnyGameEvent,
    CellsRevealed,
    FlagToggled,
    GameEnded,
    GameEvent,
    GameStarted,
    MineHit,
    PlayerJoined,
    PlayerLeft,
    RoomClosed,
    TurnSkipped,
    TurnStarted,
)

# Main processing
from .process import process_action

# Turn order
from .turns import find_winner, get_index_after_removal, get_next_player_index

# Result types
from .validation import (
    ProcessResult,
    ValidationResult,
    validate_join,
    validate_move,
    validate_start,
)

__all__ = [
    # Actions
    "GameAction",
    "RevealAction",
    "ToggleFlagAction",
    "StartGameAction",
    "build_action_from_payload",
    # Board
    "generate_board",
    "in_bounds",
    "neighbors",
    "cascade_reveal",
    "is_board_cleared",
    "reveal_single",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "PlayerJoined",
    "PlayerLeft",
    "GameStarted",
    "CellsRevealed",
    "MineHit",
    "FlagToggled",
    "TurnSkipped",
    "TurnStarted",
    "GameEnded",
    "RoomClosed",
    # Processing
    "process_action",
    # Turns
    "find_winner",
    "get_index_after_removal",
    "get_next_player_index",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_join",
    "validate_move",
    "validate_start",
]
