"""Game service module.

Provides:
- Room state machine (room.py)
- Game engine processing (engine/)
"""

# Re-export from engine for convenience
from .engine import (
    GameAction,
    ProcessResult,
    RevealAction,
    StartGameAction,
    ToggleFlagAction,
    build_action_from_payload,
    process_action,
)
from .room import GameRoom, create_game_room

__all__ = [
    # Rooms
    "GameRoom",
    "create_game_room",
    # Engine
    "GameAction",
    "ProcessResult",
    "RevealAction",
    "ToggleFlagAction",
    "StartGameAction",
    "process_action",
    "build_action_from_payload",
]
