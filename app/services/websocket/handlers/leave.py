"""Handler for LEAVE_GAME messages."""

import logging

from app.schemas.ws import MessageType, PlayerLeftPayload, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult, error_response

logger = logging.getLogger(__name__)


async def leave_current_game(ctx: HandlerContext) -> HandlerResult:
    """Remove the connection's player from their room.

    Shared by the LEAVE_GAME handler and the disconnect path. Remaining
    players receive PLAYER_LEFT with the updated snapshot; an emptied room is
    deleted without a broadcast.
    """
    result = await ctx.registry.leave_player(ctx.player_id)
    ctx.manager.unsubscribe_from_room(ctx.connection_id)

    if not result.success:
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to leave game",
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    response = WSServerMessage(
        type=MessageType.PLAYER_LEFT,
        request_id=ctx.message.request_id,
        payload=None,
    )

    if result.room_closed or result.snapshot is None:
        logger.info("Player %s left room %s, room closed", ctx.player_id, result.room_id)
        return HandlerResult(success=True, response=response)

    logger.info("Player %s left room %s", ctx.player_id, result.room_id)

    return HandlerResult(
        success=True,
        response=response,
        broadcast=WSServerMessage(
            type=MessageType.PLAYER_LEFT,
            payload=PlayerLeftPayload(
                player_id=ctx.player_id,
                game_state=result.snapshot.model_dump(mode="json"),
            ).model_dump(),
        ),
        room_id=result.room_id,
    )


@handler(MessageType.LEAVE_GAME)
async def handle_leave_game(ctx: HandlerContext) -> HandlerResult:
    """Handle LEAVE_GAME message."""
    return await leave_current_game(ctx)
