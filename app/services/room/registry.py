"""Room registry for discovering, joining and tearing down game rooms."""

import asyncio
import logging
import random
import string
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from app.config import Settings, get_settings
from app.schemas.game_engine import ErrorCode, Player, resolve_difficulty
from app.schemas.games import GameSnapshot, RoomSummary
from app.services.game import GameRoom, create_game_room, process_action
from app.services.game.engine import (
    AnyGameEvent,
    GameAction,
    ProcessResult,
    RevealAction,
    RoomClosed,
    StartGameAction,
    ToggleFlagAction,
)

from .timers import RoomTimers

logger = logging.getLogger(__name__)

TURN_TIMER = "turn"
EXPIRY_TIMER = "expiry"

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits
ROOM_ID_LENGTH = 9

# Called with (room_id, events, snapshot) for changes no player action caused
RoomListener = Callable[[str, list[AnyGameEvent], GameSnapshot | None], Awaitable[None]]


class RoomNotFoundError(LookupError):
    """An explicitly requested room does not exist."""


@dataclass
class JoinGameResult:
    """Result of join_player operation."""

    success: bool
    room_id: str | None = None
    player: Player | None = None
    snapshot: GameSnapshot | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    previous: "LeaveGameResult | None" = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass
class LeaveGameResult:
    """Result of leave_player operation."""

    success: bool
    room_id: str | None = None
    room_closed: bool = False
    snapshot: GameSnapshot | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None


class RoomRegistry:
    """Owns every live GameRoom and the player -> room mapping.

    Created once per process (see app.main lifespan) and handed to the
    transport. Map changes happen under the registry lock; room mutations
    happen under that room's own lock, always acquired after the registry
    lock when both are needed.

    Each room carries a turn timer (skips an idle player) and an expiry timer
    (deletes the room after ROOM_EXPIRY_SECONDS).
    """

    def __init__(self, settings: Settings | None = None, rng: random.Random | None = None):
        self._settings = settings or get_settings()
        self._rng = rng
        self._id_rng = random.Random()

        self._rooms: dict[str, GameRoom] = {}
        self._player_rooms: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._timers = RoomTimers()
        self._listener: RoomListener | None = None

        logger.info(
            "RoomRegistry initialized: max_players=%d, turn_limit=%.1fs, room_expiry=%.1fs",
            self._settings.MAX_PLAYERS,
            self._settings.TURN_TIME_LIMIT_SECONDS,
            self._settings.ROOM_EXPIRY_SECONDS,
        )

    def set_listener(self, listener: RoomListener | None) -> None:
        """Register the callback used to broadcast timer-driven changes."""
        self._listener = listener

    # --- Queries ---

    def get_room(self, room_id: str) -> GameRoom | None:
        return self._rooms.get(room_id)

    def get_player_room(self, player_id: str) -> GameRoom | None:
        room_id = self._player_rooms.get(player_id)
        return self._rooms.get(room_id) if room_id else None

    def get_snapshot(self, room_id: str) -> GameSnapshot | None:
        room = self._rooms.get(room_id)
        return room.snapshot() if room else None

    def list_rooms(self) -> list[RoomSummary]:
        return [room.summary() for room in self._rooms.values()]

    def is_turn_timer_armed(self, room_id: str) -> bool:
        return self._timers.is_armed(room_id, TURN_TIMER)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    # --- Room discovery ---

    async def find_or_create_room(
        self, room_id: str | None = None, difficulty: str | None = None
    ) -> GameRoom:
        """Return the requested room, the first open room, or a new room.

        Raises:
            RoomNotFoundError: If room_id is given and no such room exists.
        """
        async with self._lock:
            room, _ = self._find_or_create_room_locked(room_id, difficulty)
            return room

    def _find_or_create_room_locked(
        self, room_id: str | None, difficulty: str | None
    ) -> tuple[GameRoom, bool]:
        if room_id:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            return room, False

        # First fit, in creation order
        for room in self._rooms.values():
            if room.is_open() and (difficulty is None or room.difficulty == difficulty):
                logger.debug("Found open room %s for join", room.id)
                return room, False

        return self._create_room_locked(difficulty), True

    def _create_room_locked(self, difficulty: str | None) -> GameRoom:
        difficulty = resolve_difficulty(difficulty, self._settings.DEFAULT_DIFFICULTY)
        room = create_game_room(
            self._generate_room_id(),
            difficulty=difficulty,
            max_players=self._settings.MAX_PLAYERS,
            rng=self._rng,
        )
        self._rooms[room.id] = room
        self._arm_expiry_timer(room.id)
        logger.info("Room %s created (%s), %d rooms live", room.id, difficulty, len(self._rooms))
        return room

    def _generate_room_id(self) -> str:
        while True:
            room_id = "".join(self._id_rng.choices(ROOM_ID_ALPHABET, k=ROOM_ID_LENGTH))
            if room_id not in self._rooms:
                return room_id

    def _delete_room_locked(self, room_id: str) -> GameRoom | None:
        room = self._rooms.pop(room_id, None)
        self._timers.cancel_room(room_id)
        if room is None:
            return None
        for player_id in room.players:
            if self._player_rooms.get(player_id) == room_id:
                del self._player_rooms[player_id]
        logger.info("Room %s deleted, %d rooms live", room_id, len(self._rooms))
        return room

    # --- Membership ---

    async def join_player(
        self,
        player_id: str,
        name: str,
        room_id: str | None = None,
        difficulty: str | None = None,
    ) -> JoinGameResult:
        """Seat a player, leaving any room they are currently in first.

        The player -> room mapping is only recorded once the room accepted the
        player.
        """
        previous = None
        if player_id in self._player_rooms:
            previous = await self.leave_player(player_id)

        async with self._lock:
            try:
                room, created = self._find_or_create_room_locked(room_id, difficulty)
            except RoomNotFoundError:
                logger.warning("Join failed for player %s: room %s not found", player_id, room_id)
                return JoinGameResult(
                    success=False,
                    previous=previous,
                    error_code=ErrorCode.ROOM_NOT_FOUND,
                    error_message="Game not found",
                )

            async with room.lock:
                result = room.add_player(player_id, name)

            if not result.success:
                if created and not room.players:
                    self._delete_room_locked(room.id)
                logger.warning(
                    "Join failed for player %s in room %s: %s",
                    player_id,
                    room.id,
                    result.error_code,
                )
                return JoinGameResult(
                    success=False,
                    room_id=room.id,
                    previous=previous,
                    error_code=result.error_code,
                    error_message=result.error_message,
                )

            self._player_rooms[player_id] = room.id
            self._touch(room.id)

        return JoinGameResult(
            success=True,
            room_id=room.id,
            player=room.players[player_id],
            snapshot=result.snapshot,
            events=result.events,
            previous=previous,
        )

    async def leave_player(self, player_id: str) -> LeaveGameResult:
        """Remove a player from their room; empty rooms are deleted."""
        async with self._lock:
            room_id = self._player_rooms.pop(player_id, None)
            if room_id is None:
                return LeaveGameResult(
                    success=False,
                    error_code=ErrorCode.NOT_IN_ANY_ROOM,
                    error_message="Not in a game",
                )

            room = self._rooms.get(room_id)
            if room is None:
                return LeaveGameResult(success=True, room_id=room_id, room_closed=True)

            async with room.lock:
                result = room.remove_player(player_id)

            if not room.players:
                self._delete_room_locked(room_id)
                return LeaveGameResult(
                    success=True, room_id=room_id, room_closed=True, events=result.events
                )

            self._after_room_change(room, result)

        return LeaveGameResult(
            success=True,
            room_id=room_id,
            snapshot=result.snapshot,
            events=result.events,
        )

    # --- Game actions ---

    async def start_game(self, player_id: str) -> ProcessResult:
        return await self._run_action(player_id, StartGameAction())

    async def reveal_cell(self, player_id: str, x: int, y: int) -> ProcessResult:
        return await self._run_action(player_id, RevealAction(x=x, y=y))

    async def toggle_flag(self, player_id: str, x: int, y: int) -> ProcessResult:
        return await self._run_action(player_id, ToggleFlagAction(x=x, y=y))

    async def run_action(self, player_id: str, action: GameAction) -> ProcessResult:
        """Run a typed action built from a client payload."""
        return await self._run_action(player_id, action)

    async def _run_action(self, player_id: str, action: GameAction) -> ProcessResult:
        async with self._lock:
            room = self.get_player_room(player_id)

        if room is None:
            logger.warning("Action from player %s with no room", player_id)
            return ProcessResult.failure(ErrorCode.NOT_IN_ANY_ROOM, "Not in a game")

        async with room.lock:
            # The room may have been deleted while we waited for its lock
            if self._player_rooms.get(player_id) != room.id or self._rooms.get(room.id) is not room:
                return ProcessResult.failure(ErrorCode.NOT_IN_ANY_ROOM, "Not in a game")
            result = process_action(room, action, player_id)

        if result.success:
            self._after_room_change(room, result)
        return result

    # --- Timers ---

    def _after_room_change(self, room: GameRoom, result: ProcessResult) -> None:
        """Keep the room's timers in step with a successful operation."""
        if result.game_ended:
            self._timers.cancel(room.id, TURN_TIMER)
        elif result.turn_changed:
            self._arm_turn_timer(room)
        self._touch(room.id)

    def _touch(self, room_id: str) -> None:
        if self._settings.ROOM_EXPIRY_RESET_ON_ACTIVITY:
            self._arm_expiry_timer(room_id)

    def _arm_turn_timer(self, room: GameRoom) -> None:
        room_id, turn_number = room.id, room.turn_number
        self._timers.arm(
            room_id,
            TURN_TIMER,
            self._settings.TURN_TIME_LIMIT_SECONDS,
            lambda: self._on_turn_timeout(room_id, turn_number),
        )

    def _arm_expiry_timer(self, room_id: str) -> None:
        self._timers.arm(
            room_id,
            EXPIRY_TIMER,
            self._settings.ROOM_EXPIRY_SECONDS,
            lambda: self._on_room_expired(room_id),
        )

    async def _on_turn_timeout(self, room_id: str, turn_number: int) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return

        async with room.lock:
            if self._rooms.get(room_id) is not room:
                return
            # A move may have taken the turn while this timer waited for the lock
            if room.turn_number != turn_number:
                logger.debug(
                    "Stale turn timer for room %s (turn %d, now %d)",
                    room_id,
                    turn_number,
                    room.turn_number,
                )
                return
            result = room.skip_turn()

        if not result.success:
            return

        self._arm_turn_timer(room)
        await self._notify(room_id, result.events, result.snapshot)

    async def _on_room_expired(self, room_id: str) -> None:
        async with self._lock:
            room = self._delete_room_locked(room_id)
        if room is None:
            return

        logger.info(
            "Room %s expired (phase=%s, players=%d)",
            room_id,
            room.phase.value,
            len(room.players),
        )
        await self._notify(room_id, [RoomClosed(room_id=room_id, reason="expired")], None)

    async def _notify(
        self, room_id: str, events: list[AnyGameEvent], snapshot: GameSnapshot | None
    ) -> None:
        if self._listener is None:
            return
        try:
            await self._listener(room_id, events, snapshot)
        except Exception as e:
            logger.error("Room listener failed for room %s: %s", room_id, e)

    async def shutdown(self) -> None:
        """Cancel all timers and drop every room."""
        await self._timers.cancel_all()
        async with self._lock:
            count = len(self._rooms)
            self._rooms.clear()
            self._player_rooms.clear()
        logger.info("RoomRegistry shut down, %d rooms dropped", count)
