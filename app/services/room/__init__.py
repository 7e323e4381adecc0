"""Room registry and per-room timers."""

from .registry import (
    JoinGameResult,
    LeaveGameResult,
    RoomListener,
    RoomNotFoundError,
    RoomRegistry,
)
from .timers import RoomTimers

__all__ = [
    "JoinGameResult",
    "LeaveGameResult",
    "RoomListener",
    "RoomNotFoundError",
    "RoomRegistry",
    "RoomTimers",
]
