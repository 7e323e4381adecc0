"""Base types and helpers for WebSocket message handlers."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas.games import GameSnapshot
from app.schemas.ws import (
    ErrorPayload,
    GameEventsPayload,
    MessageType,
    WSClientMessage,
    WSServerMessage,
)
from app.services.game.engine import AnyGameEvent

if TYPE_CHECKING:
    from app.services.room import RoomRegistry
    from app.services.websocket.manager import ConnectionManager


@dataclass
class HandlerContext:
    """Context passed to each message handler."""

    connection_id: str
    message: WSClientMessage
    manager: "ConnectionManager"
    registry: "RoomRegistry"

    @property
    def player_id(self) -> str:
        return self.connection_id


@dataclass
class HandlerResult:
    """Result returned by message handlers.

    response goes to the sender only; broadcast goes to the other members of
    room_id. Failures never carry a broadcast.
    """

    success: bool
    response: WSServerMessage | None = None
    broadcast: WSServerMessage | None = None
    room_id: str | None = None


T = TypeVar("T", bound=BaseModel)


def validate_payload(
    payload: dict | None,
    schema: type[T],
    request_id: str | None,
    error_type: MessageType,
) -> tuple[T | None, HandlerResult | None]:
    """Validate payload against a Pydantic schema.

    Args:
        payload: The raw payload dict to validate.
        schema: The Pydantic model class to validate against.
        request_id: The request_id for error responses.
        error_type: The MessageType to use for error responses.

    Returns:
        Tuple of (validated_payload, error_result). One will be None.
    """
    try:
        validated = schema.model_validate(payload or {})
        return validated, None
    except ValidationError as e:
        return None, HandlerResult(
            success=False,
            response=WSServerMessage(
                type=error_type,
                request_id=request_id,
                payload=ErrorPayload(
                    error_code="VALIDATION_ERROR",
                    message=str(e),
                ).model_dump(),
            ),
        )


def error_response(
    error_code: str,
    message: str,
    error_type: MessageType,
    request_id: str | None = None,
) -> HandlerResult:
    """Build an error HandlerResult."""
    return HandlerResult(
        success=False,
        response=WSServerMessage(
            type=error_type,
            request_id=request_id,
            payload=ErrorPayload(
                error_code=error_code,
                message=message,
            ).model_dump(),
        ),
    )


def events_payload(
    events: list[AnyGameEvent], snapshot: GameSnapshot | None
) -> dict[str, Any]:
    """Serialize events plus the snapshot that follows them."""
    return GameEventsPayload(
        events=[event.model_dump(mode="json") for event in events],
        game_state=snapshot.model_dump(mode="json") if snapshot else None,
    ).model_dump()
