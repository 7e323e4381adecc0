import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.services.room import RoomRegistry

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RoomRegistry:
    """Return the RoomRegistry created in the application lifespan."""
    registry: RoomRegistry | None = getattr(request.app.state, "registry", None)
    if registry is None:
        logger.error("RoomRegistry requested before application startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Game service is not ready",
        )
    return registry


Registry = Annotated[RoomRegistry, Depends(get_registry)]
