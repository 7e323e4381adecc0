"""Handler for GAME_ACTION messages."""

import logging

from app.schemas.ws import (
    GameActionPayload,
    GameErrorPayload,
    MessageType,
    WSServerMessage,
)
from app.services.game.engine import ProcessResult, build_action_from_payload

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    error_response,
    events_payload,
    validate_payload,
)

logger = logging.getLogger(__name__)


@handler(MessageType.GAME_ACTION)
async def handle_game_action(ctx: HandlerContext) -> HandlerResult:
    """Handle GAME_ACTION message by running the move through the player's room.

    Flow:
    1. Validate payload
    2. Build a typed action from payload
    3. Run it through the registry (room lock held for the whole move)
    4. Return events to requester and broadcast them to the room

    Returns:
        HandlerResult with events for requester and broadcast for room.
    """
    payload, validation_error = validate_payload(
        ctx.message.payload,
        GameActionPayload,
        ctx.message.request_id,
        MessageType.GAME_ERROR,
    )
    if validation_error:
        return validation_error

    try:
        action = build_action_from_payload(payload.model_dump(exclude_none=True))
    except ValueError as e:
        return error_response(
            error_code="INVALID_ACTION",
            message=str(e),
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    result: ProcessResult = await ctx.registry.run_action(ctx.player_id, action)

    if not result.success or result.snapshot is None:
        logger.info(
            "Game action failed for player %s: %s - %s",
            ctx.player_id,
            result.error_code,
            result.error_message,
        )
        return HandlerResult(
            success=False,
            response=WSServerMessage(
                type=MessageType.GAME_ERROR,
                request_id=ctx.message.request_id,
                payload=GameErrorPayload(
                    error_code=result.error_code or "PROCESSING_ERROR",
                    message=result.error_message or "Failed to process action",
                ).model_dump(),
            ),
        )

    room_id = result.snapshot.room_id
    payload_dict = events_payload(result.events, result.snapshot)

    logger.info(
        "Game action processed for player %s in room %s: %d events",
        ctx.player_id,
        room_id,
        len(result.events),
    )

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.GAME_EVENTS,
            request_id=ctx.message.request_id,
            payload=payload_dict,
        ),
        broadcast=WSServerMessage(
            type=MessageType.GAME_EVENTS,
            payload=payload_dict,
        ),
        room_id=room_id,
    )
