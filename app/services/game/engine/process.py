"""Main entry point for game action processing.

This module provides the primary interface for processing player actions:
- process_action(): Validates and processes any game action against a room
- Dispatches to the room operation matching the action type
- Returns ProcessResult with the new snapshot and events
"""

import logging
from typing import TYPE_CHECKING

from .actions import GameAction, RevealAction, StartGameAction, ToggleFlagAction
from .validation import ProcessResult

if TYPE_CHECKING:
    from app.services.game.room import GameRoom

logger = logging.getLogger(__name__)


def process_action(
    room: "GameRoom",
    action: GameAction,
    player_id: str,
) -> ProcessResult:
    """Process a game action and return the result.

    The room validates before mutating, so a failed result means the room is
    unchanged. Callers must hold the room's lock.

    Args:
        room: The room the action targets.
        action: The action to process.
        player_id: The player attempting the action.

    Returns:
        ProcessResult containing:
        - success: Whether the action was processed successfully
        - snapshot: The redacted room snapshot (if successful)
        - events: List of events that occurred (with seq numbers)
        - error_code/error_message: Error details (if failed)

    Example:
        >>> result = process_action(room, RevealAction(x=0, y=0), player_id)
        >>> if result.success:
        ...     for event in result.events:
        ...         broadcast(event)  # event.seq is set
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    action_type = type(action).__name__
    logger.info(
        "Processing action: type=%s, room=%s, player=%s, phase=%s",
        action_type,
        room.id,
        player_id,
        room.phase.value,
    )
    logger.debug("Action details: %s", action)

    if isinstance(action, StartGameAction):
        result = room.start()

    elif isinstance(action, RevealAction):
        result = room.reveal_cell(action.x, action.y, player_id)

    elif isinstance(action, ToggleFlagAction):
        result = room.toggle_flag(action.x, action.y, player_id)

    else:
        logger.error("Unknown action type received: %s", action_type)
        return ProcessResult.failure(
            "UNKNOWN_ACTION",
            f"Unknown action type: {type(action).__name__}",
        )

    if result.success:
        logger.info(
            "Action processed successfully: type=%s, player=%s, events_generated=%d",
            action_type,
            player_id,
            len(result.events),
        )
        logger.debug("Generated events: %s", [type(e).__name__ for e in result.events])
    else:
        logger.warning(
            "Action processing failed: type=%s, player=%s, error=%s",
            action_type,
            player_id,
            result.error_code,
        )

    return result
