from app.services.websocket.handlers import HandlerContext, HandlerResult, dispatch, handler
from app.services.websocket.manager import ConnectionManager
from app.services.websocket.notifier import build_room_listener

__all__ = [
    "ConnectionManager",
    "HandlerContext",
    "HandlerResult",
    "build_room_listener",
    "dispatch",
    "handler",
]
