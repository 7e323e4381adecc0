"""Handler for GET_GAME_STATE messages."""

import logging

from app.schemas.game_engine import ErrorCode
from app.schemas.ws import GameStatePayload, MessageType, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult, error_response

logger = logging.getLogger(__name__)


@handler(MessageType.GET_GAME_STATE)
async def handle_get_game_state(ctx: HandlerContext) -> HandlerResult:
    """Send the player's room snapshot back to the requester only."""
    room = ctx.registry.get_player_room(ctx.player_id)
    if room is None:
        return error_response(
            error_code=ErrorCode.NOT_IN_ANY_ROOM,
            message="Not in a game",
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    async with room.lock:
        snapshot = room.snapshot()

    logger.debug("Game state sent to player %s for room %s", ctx.player_id, room.id)

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.GAME_STATE,
            request_id=ctx.message.request_id,
            payload=GameStatePayload(state=snapshot.model_dump(mode="json")).model_dump(),
        ),
    )
