"""Handler for JOIN_GAME messages."""

import logging

from app.schemas.ws import (
    JoinedGamePayload,
    JoinGamePayload,
    MessageType,
    PlayerLeftPayload,
    WSServerMessage,
)

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    error_response,
    events_payload,
    validate_payload,
)

logger = logging.getLogger(__name__)


@handler(MessageType.JOIN_GAME)
async def handle_join_game(ctx: HandlerContext) -> HandlerResult:
    """Handle JOIN_GAME message.

    Leaves the player's current room (if any), seats them in the requested
    room or the first open one, and subscribes the connection to it.
    """
    logger.info(
        "JOIN_GAME request: connection=%s, request_id=%s, payload=%s",
        ctx.connection_id,
        ctx.message.request_id,
        ctx.message.payload,
    )

    payload, error = validate_payload(
        ctx.message.payload,
        JoinGamePayload,
        ctx.message.request_id,
        MessageType.GAME_ERROR,
    )
    if error:
        logger.warning("Invalid join_game payload from connection %s", ctx.connection_id)
        return error

    result = await ctx.registry.join_player(
        ctx.player_id,
        payload.player_name,
        room_id=payload.game_id,
        difficulty=payload.difficulty,
    )

    # The player left their previous room even if the new join failed
    previous = result.previous
    if previous is not None and previous.success:
        ctx.manager.unsubscribe_from_room(ctx.connection_id)
        if not previous.room_closed and previous.snapshot is not None:
            await ctx.manager.send_to_room(
                previous.room_id,
                WSServerMessage(
                    type=MessageType.PLAYER_LEFT,
                    payload=PlayerLeftPayload(
                        player_id=ctx.player_id,
                        game_state=previous.snapshot.model_dump(mode="json"),
                    ).model_dump(),
                ),
            )

    if not result.success or result.snapshot is None:
        logger.warning(
            "JOIN_GAME failed: error_code=%s, message=%s, connection=%s",
            result.error_code,
            result.error_message,
            ctx.connection_id,
        )
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Unknown error",
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    ctx.manager.subscribe_to_room(ctx.connection_id, result.room_id)

    logger.info("JOIN_GAME ok: room_id=%s, player=%s", result.room_id, ctx.player_id)

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.JOINED_GAME,
            request_id=ctx.message.request_id,
            payload=JoinedGamePayload(
                game_id=result.room_id,
                player_id=ctx.player_id,
                game_state=result.snapshot.model_dump(mode="json"),
            ).model_dump(),
        ),
        broadcast=WSServerMessage(
            type=MessageType.GAME_UPDATED,
            payload=events_payload(result.events, result.snapshot),
        ),
        room_id=result.room_id,
    )
