"""Shared fixtures for game room tests."""

import pytest

from app.config import Settings
from app.schemas.game_engine import Board, Cell
from app.services.game import GameRoom
from app.services.game.engine import neighbors

# Fixed player ids for deterministic testing
PLAYER_A = "player-a"
PLAYER_B = "player-b"
PLAYER_C = "player-c"

# 5x5 board with mines at (1, 1) and (4, 4):
#
#     x: 0 1 2 3 4
#   y=0  1 1 1 0 0
#   y=1  1 * 1 0 0
#   y=2  1 1 1 0 0
#   y=3  0 0 0 1 1
#   y=4  0 0 0 1 *
#
# Revealing any zero cell opens everything except (0,0), (1,0), (0,1) and the mines.
SMALL_MINES = [(1, 1), (4, 4)]
CORNER_CELLS = [(0, 0), (1, 0), (0, 1)]


def build_board(width: int, height: int, mines: list[tuple[int, int]]) -> Board:
    """Build a board with mines at exact coordinates."""
    mine_set = set(mines)
    cells = [[Cell(is_mine=(x, y) in mine_set) for x in range(width)] for y in range(height)]
    for y in range(height):
        for x in range(width):
            if not cells[y][x].is_mine:
                cells[y][x].neighbor_count = sum(
                    1 for nx, ny in neighbors(width, height, x, y) if (nx, ny) in mine_set
                )
    return Board(width=width, height=height, mine_count=len(mine_set), cells=cells)


def create_room(
    player_ids: list[str],
    mines: list[tuple[int, int]] | None = None,
    width: int = 5,
    height: int = 5,
    max_players: int = 10,
    started: bool = False,
) -> GameRoom:
    """Helper to create a room with seated players."""
    board = build_board(width, height, SMALL_MINES if mines is None else mines)
    room = GameRoom("room-1", board, max_players=max_players)
    for player_id in player_ids:
        result = room.add_player(player_id, player_id.upper())
        assert result.success
    if started:
        assert room.start().success
    return room


@pytest.fixture
def small_board() -> Board:
    return build_board(5, 5, SMALL_MINES)


@pytest.fixture
def empty_room() -> GameRoom:
    """Room in WAITING with nobody seated."""
    return create_room([])


@pytest.fixture
def waiting_room() -> GameRoom:
    """Two players seated, game not started."""
    return create_room([PLAYER_A, PLAYER_B])


@pytest.fixture
def playing_room() -> GameRoom:
    """Two-player game in progress, player A to move."""
    return create_room([PLAYER_A, PLAYER_B], started=True)


@pytest.fixture
def three_player_room() -> GameRoom:
    """Three-player game in progress, player A to move."""
    return create_room([PLAYER_A, PLAYER_B, PLAYER_C], started=True)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with timers long enough to never fire during a test."""
    return Settings(
        MAX_PLAYERS=10,
        DEFAULT_DIFFICULTY="easy",
        TURN_TIME_LIMIT_SECONDS=60.0,
        ROOM_EXPIRY_SECONDS=600.0,
    )
