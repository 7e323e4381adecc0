"""REST endpoints for browsing game rooms."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.dependencies.registry import Registry
from app.schemas.games import GameSnapshot, RoomSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])


@router.get("", response_model=list[RoomSummary])
async def list_games(registry: Registry):
    """List every live room with its occupancy, phase and board size."""
    rooms = registry.list_rooms()
    logger.debug("GET /games - %d rooms", len(rooms))
    return rooms


@router.get("/{room_id}", response_model=GameSnapshot)
async def get_game(room_id: str, registry: Registry):
    """Return the redacted snapshot of one room.

    Raises:
        HTTPException 404: If no room has this id.
    """
    snapshot = registry.get_snapshot(room_id)
    if snapshot is None:
        logger.info("GET /games/%s - not found", room_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found",
        )
    return snapshot
