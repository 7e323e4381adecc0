"""Handler for START_GAME messages."""

import logging

from app.schemas.ws import MessageType, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult, error_response, events_payload

logger = logging.getLogger(__name__)


@handler(MessageType.START_GAME)
async def handle_start_game(ctx: HandlerContext) -> HandlerResult:
    """Handle START_GAME message from any seated player.

    Flow:
    1. Resolve the player's room (NOT_IN_ANY_ROOM otherwise)
    2. Start the game (needs at least 2 players)
    3. Return the events and snapshot to the sender and broadcast them to the room

    Starting a game that is already running succeeds without events and
    without a broadcast.
    """
    result = await ctx.registry.start_game(ctx.player_id)

    if not result.success or result.snapshot is None:
        logger.info(
            "START_GAME rejected for player %s: %s - %s",
            ctx.player_id,
            result.error_code,
            result.error_message,
        )
        return error_response(
            error_code=result.error_code or "GAME_START_FAILED",
            message=result.error_message or "Failed to start game",
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    room_id = result.snapshot.room_id
    payload = events_payload(result.events, result.snapshot)
    response = WSServerMessage(
        type=MessageType.GAME_STARTED,
        request_id=ctx.message.request_id,
        payload=payload,
    )

    if not result.events:
        logger.debug("START_GAME no-op for room %s", room_id)
        return HandlerResult(success=True, response=response)

    logger.info(
        "Game started for room %s by player %s: %d events, %d players",
        room_id,
        ctx.player_id,
        len(result.events),
        len(result.snapshot.players),
    )

    return HandlerResult(
        success=True,
        response=response,
        broadcast=WSServerMessage(type=MessageType.GAME_STARTED, payload=payload),
        room_id=room_id,
    )
