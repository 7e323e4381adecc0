import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket

from app.config import Settings, get_settings
from app.schemas.ws import (
    ConnectedPayload,
    MessageType,
    WSCloseCode,
    WSServerMessage,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """An accepted socket and the room it listens to.

    The connection id doubles as the player id; a reconnect is a new player.
    """

    connection_id: str
    websocket: WebSocket
    connected_at: datetime = field(default_factory=_utcnow)
    last_heartbeat: datetime = field(default_factory=_utcnow)
    room_id: str | None = None

    @property
    def player_id(self) -> str:
        return self.connection_id

    def seconds_since_heartbeat(self, now: datetime) -> float:
        return (now - self.last_heartbeat).total_seconds()


class ConnectionManager:
    """Tracks open sockets on this process and fans room messages out to them.

    A connection listens to at most one room at a time. The manager knows
    nothing about game rules; the registry decides membership and handlers
    keep subscriptions in step with it.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}  # room_id -> connection ids
        self._cleanup_task: asyncio.Task | None = None

        logger.info(
            "ConnectionManager initialized: heartbeat=%ds, timeout=%ds",
            self._settings.WS_HEARTBEAT_INTERVAL,
            self._settings.WS_CONNECTION_TIMEOUT,
        )

    # --- Connection lifecycle ---

    async def connect(self, websocket: WebSocket) -> Connection:
        """Register an accepted socket and send it the 'connected' greeting."""
        connection = Connection(connection_id=str(uuid.uuid4()), websocket=websocket)
        self._connections[connection.connection_id] = connection
        logger.info(
            "Connection %s established (%d open)",
            connection.connection_id,
            len(self._connections),
        )

        await self.send_to_connection(
            connection.connection_id,
            WSServerMessage(
                type=MessageType.CONNECTED,
                payload=ConnectedPayload(
                    connection_id=connection.connection_id,
                    player_id=connection.player_id,
                ).model_dump(),
            ),
        )
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection and its room subscription. Safe to call twice."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        if connection.room_id:
            self._drop_member(connection.room_id, connection_id)
        logger.info("Connection %s disconnected", connection_id)

    async def heartbeat(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_heartbeat = _utcnow()

    async def close_all_connections(self) -> None:
        """Close every socket (server shutdown)."""
        logger.info("Closing all %d connections", len(self._connections))
        for connection_id in list(self._connections):
            await self._close(connection_id, WSCloseCode.GOING_AWAY)

    async def _close(self, connection_id: str, code: int) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            try:
                await connection.websocket.close(code=code)
            except Exception as e:
                logger.debug("Error closing websocket %s: %s", connection_id, e)
        await self.disconnect(connection_id)

    # --- Stale connection cleanup ---

    async def cleanup_stale_connections(self) -> int:
        """Close connections whose last heartbeat is older than WS_CONNECTION_TIMEOUT.

        Closing the socket ends its receive loop, which takes the player out of
        their game the same way a normal disconnect does.

        Returns:
            Number of connections closed.
        """
        now = _utcnow()
        timeout = self._settings.WS_CONNECTION_TIMEOUT
        stale = [
            conn_id
            for conn_id, connection in list(self._connections.items())
            if connection.seconds_since_heartbeat(now) > timeout
        ]

        for conn_id in stale:
            logger.warning("Connection %s is stale, closing", conn_id)
            await self._close(conn_id, WSCloseCode.GOING_AWAY)

        if stale:
            logger.info("Cleaned up %d stale connections", len(stale))
        return len(stale)

    async def _cleanup_loop(self) -> None:
        interval = self._settings.WS_HEARTBEAT_INTERVAL
        logger.info("Starting cleanup task with interval %ds", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.cleanup_stale_connections()
            except Exception as e:
                logger.error("Error in cleanup task: %s", e)

    async def start_cleanup_task(self) -> None:
        if self._cleanup_task is not None:
            logger.warning("Cleanup task already running")
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup_task(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None
        logger.info("Cleanup task stopped")

    # --- Room subscriptions ---

    def subscribe_to_room(self, connection_id: str, room_id: str) -> None:
        """Point a connection at room_id, leaving any room it listened to before."""
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning("Connection %s not found for room subscription", connection_id)
            return

        if connection.room_id and connection.room_id != room_id:
            self._drop_member(connection.room_id, connection_id)
        connection.room_id = room_id
        self._rooms.setdefault(room_id, set()).add(connection_id)
        logger.debug("Connection %s subscribed to room %s", connection_id, room_id)

    def unsubscribe_from_room(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None or connection.room_id is None:
            return
        self._drop_member(connection.room_id, connection_id)
        connection.room_id = None

    def close_room(self, room_id: str) -> None:
        """Drop every subscription to a room that no longer exists."""
        for conn_id in self._rooms.pop(room_id, set()):
            connection = self._connections.get(conn_id)
            if connection is not None and connection.room_id == room_id:
                connection.room_id = None
        logger.debug("Subscriptions for room %s dropped", room_id)

    def _drop_member(self, room_id: str, connection_id: str) -> None:
        """Remove connection_id from room_id's member set; caller resets connection.room_id."""
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room_id]

    # --- Sending ---

    async def send_to_connection(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send one message; a socket that fails to send is disconnected.

        Returns:
            True if the message was written to the socket.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug("Connection %s not found for sending", connection_id)
            return False

        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
        except Exception as e:
            logger.warning("Failed to send to connection %s: %s", connection_id, e)
            await self.disconnect(connection_id)
            return False
        return True

    async def send_to_room(
        self, room_id: str, message: WSServerMessage, exclude_connection: str | None = None
    ) -> int:
        """Send a message to every subscriber of room_id except exclude_connection.

        Returns:
            Number of connections the message reached.
        """
        sent = 0
        for conn_id in list(self._rooms.get(room_id, ())):
            if conn_id != exclude_connection and await self.send_to_connection(conn_id, message):
                sent += 1
        return sent

    # --- Queries ---

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def get_room_connection_count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, ()))

    def get_total_connection_count(self) -> int:
        return len(self._connections)
