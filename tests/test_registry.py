"""Tests for the room registry: discovery, membership and room timers."""

import asyncio
import random

import pytest

from app.config import Settings
from app.schemas.game_engine import ErrorCode, GamePhase
from app.services.game.engine import RoomClosed, TurnSkipped, TurnStarted
from app.services.room import RoomNotFoundError, RoomRegistry

from .conftest import PLAYER_A, PLAYER_B, PLAYER_C


def make_registry(settings: Settings, **overrides) -> RoomRegistry:
    if overrides:
        settings = settings.model_copy(update=overrides)
    return RoomRegistry(settings, rng=random.Random(11))


class RecordingListener:
    """Collects timer-driven notifications from the registry."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list, object]] = []
        self.called = asyncio.Event()

    async def __call__(self, room_id, events, snapshot) -> None:
        self.calls.append((room_id, events, snapshot))
        self.called.set()


def find_mine(room) -> tuple[int, int]:
    for y, row in enumerate(room.board.cells):
        for x, cell in enumerate(row):
            if cell.is_mine:
                return x, y
    raise AssertionError("Board has no mines")


class TestDiscovery:
    def test_first_join_creates_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            result = await registry.join_player(PLAYER_A, "Alice")

            assert result.success
            assert registry.room_count == 1
            assert len(result.room_id) == 9
            assert result.snapshot.difficulty == "easy"
            assert registry.get_player_room(PLAYER_A).id == result.room_id
            await registry.shutdown()

        asyncio.run(scenario())

    def test_second_player_joins_same_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            first = await registry.join_player(PLAYER_A, "Alice")
            second = await registry.join_player(PLAYER_B, "Bob")

            assert first.room_id == second.room_id
            assert [p.id for p in second.snapshot.players] == [PLAYER_A, PLAYER_B]
            await registry.shutdown()

        asyncio.run(scenario())

    def test_full_room_is_skipped(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, MAX_PLAYERS=2)
            first = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            third = await registry.join_player(PLAYER_C, "Carol")

            assert third.success
            assert third.room_id != first.room_id
            assert registry.room_count == 2
            await registry.shutdown()

        asyncio.run(scenario())

    def test_started_room_is_skipped(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            first = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.start_game(PLAYER_A)

            third = await registry.join_player(PLAYER_C, "Carol")

            assert third.room_id != first.room_id
            await registry.shutdown()

        asyncio.run(scenario())

    def test_difficulty_preference(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            easy = await registry.join_player(PLAYER_A, "Alice")
            hard = await registry.join_player(PLAYER_B, "Bob", difficulty="hard")

            assert hard.room_id != easy.room_id
            assert (hard.snapshot.width, hard.snapshot.height) == (30, 16)
            await registry.shutdown()

        asyncio.run(scenario())

    def test_explicit_room_not_found(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)

            with pytest.raises(RoomNotFoundError):
                await registry.find_or_create_room("missing")

            result = await registry.join_player(PLAYER_A, "Alice", room_id="missing")

            assert not result.success
            assert result.error_code == ErrorCode.ROOM_NOT_FOUND
            assert registry.get_player_room(PLAYER_A) is None
            assert registry.room_count == 0

        asyncio.run(scenario())

    def test_explicit_full_room_does_not_map_player(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, MAX_PLAYERS=2)
            first = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")

            result = await registry.join_player(PLAYER_C, "Carol", room_id=first.room_id)

            assert result.error_code == ErrorCode.ROOM_FULL
            assert registry.get_player_room(PLAYER_C) is None
            await registry.shutdown()

        asyncio.run(scenario())

    def test_list_rooms(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            joined = await registry.join_player(PLAYER_A, "Alice")

            rooms = registry.list_rooms()

            assert len(rooms) == 1
            assert rooms[0].room_id == joined.room_id
            assert rooms[0].player_count == 1
            assert rooms[0].phase == GamePhase.WAITING
            assert registry.get_snapshot("missing") is None
            await registry.shutdown()

        asyncio.run(scenario())


class TestMembership:
    def test_join_moves_player_between_rooms(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            first = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")

            moved = await registry.join_player(PLAYER_A, "Alice", difficulty="hard")

            assert moved.success
            assert moved.previous is not None
            assert moved.previous.room_id == first.room_id
            assert not moved.previous.room_closed
            assert list(registry.get_room(first.room_id).players) == [PLAYER_B]
            assert registry.get_player_room(PLAYER_A).id == moved.room_id
            await registry.shutdown()

        asyncio.run(scenario())

    def test_leave_deletes_empty_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            joined = await registry.join_player(PLAYER_A, "Alice")

            result = await registry.leave_player(PLAYER_A)

            assert result.success
            assert result.room_closed
            assert registry.get_room(joined.room_id) is None
            assert registry.get_player_room(PLAYER_A) is None
            await registry.shutdown()

        asyncio.run(scenario())

    def test_leave_keeps_occupied_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")

            result = await registry.leave_player(PLAYER_A)

            assert not result.room_closed
            assert [p.id for p in result.snapshot.players] == [PLAYER_B]
            await registry.shutdown()

        asyncio.run(scenario())

    def test_leave_when_not_in_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)

            result = await registry.leave_player(PLAYER_A)

            assert not result.success
            assert result.error_code == ErrorCode.NOT_IN_ANY_ROOM

        asyncio.run(scenario())

    def test_action_when_not_in_room(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)

            result = await registry.reveal_cell(PLAYER_A, 0, 0)

            assert result.error_code == ErrorCode.NOT_IN_ANY_ROOM

        asyncio.run(scenario())


class TestActions:
    def test_start_and_move(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")

            started = await registry.start_game(PLAYER_B)
            assert started.success
            assert started.snapshot.current_player_id == PLAYER_A

            rejected = await registry.toggle_flag(PLAYER_B, 0, 0)
            assert rejected.error_code == ErrorCode.NOT_YOUR_TURN

            flagged = await registry.toggle_flag(PLAYER_A, 0, 0)
            assert flagged.success
            assert flagged.snapshot.current_player_id == PLAYER_B
            await registry.shutdown()

        asyncio.run(scenario())

    def test_start_needs_two_players(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            await registry.join_player(PLAYER_A, "Alice")

            result = await registry.start_game(PLAYER_A)

            assert result.error_code == ErrorCode.NOT_ENOUGH_PLAYERS
            assert not registry.is_turn_timer_armed(registry.get_player_room(PLAYER_A).id)
            await registry.shutdown()

        asyncio.run(scenario())


class TestTurnTimer:
    def test_start_arms_turn_timer(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")

            assert not registry.is_turn_timer_armed(joined.room_id)
            await registry.start_game(PLAYER_A)
            assert registry.is_turn_timer_armed(joined.room_id)
            await registry.shutdown()

        asyncio.run(scenario())

    def test_idle_player_is_skipped(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, TURN_TIME_LIMIT_SECONDS=0.05)
            listener = RecordingListener()
            registry.set_listener(listener)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.start_game(PLAYER_A)

            await asyncio.wait_for(listener.called.wait(), timeout=2.0)

            room_id, events, snapshot = listener.calls[0]
            assert room_id == joined.room_id
            assert isinstance(events[0], TurnSkipped)
            assert events[0].player_id == PLAYER_A
            assert isinstance(events[1], TurnStarted)
            assert events[1].player_id == PLAYER_B
            assert snapshot.current_player_id == PLAYER_B
            assert registry.is_turn_timer_armed(joined.room_id)
            await registry.shutdown()

        asyncio.run(scenario())

    def test_game_end_cancels_turn_timer(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.start_game(PLAYER_A)

            x, y = find_mine(registry.get_room(joined.room_id))
            result = await registry.reveal_cell(PLAYER_A, x, y)

            assert result.game_ended
            assert not registry.is_turn_timer_armed(joined.room_id)
            await registry.shutdown()

        asyncio.run(scenario())

    def test_room_deletion_cancels_turn_timer(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.start_game(PLAYER_A)

            await registry.leave_player(PLAYER_A)
            await registry.leave_player(PLAYER_B)

            assert registry.room_count == 0
            assert not registry.is_turn_timer_armed(joined.room_id)
            await registry.shutdown()

        asyncio.run(scenario())

    def test_leaving_current_player_rearms_timer_for_follower(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, TURN_TIME_LIMIT_SECONDS=0.05)
            listener = RecordingListener()
            registry.set_listener(listener)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.join_player(PLAYER_C, "Carol")
            await registry.start_game(PLAYER_A)

            left = await registry.leave_player(PLAYER_A)

            assert left.snapshot.current_player_id == PLAYER_B
            assert registry.is_turn_timer_armed(joined.room_id)

            await asyncio.wait_for(listener.called.wait(), timeout=2.0)

            _, events, snapshot = listener.calls[0]
            assert isinstance(events[0], TurnSkipped)
            assert events[0].player_id == PLAYER_B
            assert isinstance(events[1], TurnStarted)
            assert events[1].player_id == PLAYER_C
            assert snapshot.current_player_id == PLAYER_C
            await registry.shutdown()

        asyncio.run(scenario())

    def test_timer_waiting_on_lock_does_not_skip_next_turn(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, TURN_TIME_LIMIT_SECONDS=0.05)
            listener = RecordingListener()
            registry.set_listener(listener)
            joined = await registry.join_player(PLAYER_A, "Alice")
            await registry.join_player(PLAYER_B, "Bob")
            await registry.start_game(PLAYER_A)
            room = registry.get_room(joined.room_id)
            turn_number = room.turn_number

            async with room.lock:
                move = asyncio.create_task(registry.toggle_flag(PLAYER_A, 0, 0))
                await asyncio.sleep(0)
                # Long enough for A's timer to fire and queue behind the move
                await asyncio.sleep(0.15)
                assert not registry.is_turn_timer_armed(joined.room_id)

            result = await move
            for _ in range(5):
                await asyncio.sleep(0)

            assert result.success
            assert room.current_player_id == PLAYER_B
            assert room.turn_number == turn_number + 1
            assert listener.calls == []
            await registry.shutdown()

        asyncio.run(scenario())


class TestRoomExpiry:
    def test_room_expires(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, ROOM_EXPIRY_SECONDS=0.05)
            listener = RecordingListener()
            registry.set_listener(listener)
            joined = await registry.join_player(PLAYER_A, "Alice")

            await asyncio.wait_for(listener.called.wait(), timeout=2.0)

            room_id, events, snapshot = listener.calls[0]
            assert room_id == joined.room_id
            assert isinstance(events[0], RoomClosed)
            assert events[0].reason == "expired"
            assert snapshot is None
            assert registry.room_count == 0
            assert registry.get_player_room(PLAYER_A) is None
            await registry.shutdown()

        asyncio.run(scenario())

    def test_listener_errors_are_contained(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings, ROOM_EXPIRY_SECONDS=0.05)
            expired = asyncio.Event()

            async def failing_listener(room_id, events, snapshot):
                expired.set()
                raise RuntimeError("socket gone")

            registry.set_listener(failing_listener)
            await registry.join_player(PLAYER_A, "Alice")

            await asyncio.wait_for(expired.wait(), timeout=2.0)
            await asyncio.sleep(0)

            assert registry.room_count == 0
            await registry.shutdown()

        asyncio.run(scenario())

    def test_shutdown_drops_everything(self, fast_settings):
        async def scenario():
            registry = make_registry(fast_settings)
            await registry.join_player(PLAYER_A, "Alice")

            await registry.shutdown()

            assert registry.room_count == 0
            assert registry.get_player_room(PLAYER_A) is None

        asyncio.run(scenario())
