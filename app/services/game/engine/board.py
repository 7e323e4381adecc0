"""Minefield generation."""

import logging
import random
from collections.abc import Iterator

from app.schemas.game_engine import Board, Cell

logger = logging.getLogger(__name__)


def neighbors(width: int, height: int, x: int, y: int) -> Iterator[tuple[int, int]]:
    """Yield the in-bounds Moore neighbours of (x, y)."""
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            nx, ny = x + dx, y + dy
            if 0 <= nx < width and 0 <= ny < height:
                yield nx, ny


def in_bounds(board: Board, x: int, y: int) -> bool:
    return 0 <= x < board.width and 0 <= y < board.height


def generate_board(
    width: int,
    height: int,
    mine_count: int,
    rng: random.Random | None = None,
) -> Board:
    """Create a board with mine_count mines placed uniformly at random.

    Mines are placed by rejection sampling: a random cell is drawn until one
    that is not already a mine comes up. This stays fast as long as
    mine_count is well below width * height.

    Args:
        width: Number of columns (>= 1).
        height: Number of rows (>= 1).
        mine_count: Number of mines, 0 <= mine_count < width * height.
        rng: Random source. Pass a seeded random.Random for reproducible boards.

    Returns:
        A new Board with neighbor counts computed for every non-mine cell.

    Raises:
        ValueError: If the dimensions or mine count are invalid.
    """
    if width < 1 or height < 1:
        raise ValueError("Board width and height must be at least 1")
    if not 0 <= mine_count < width * height:
        raise ValueError(
            f"mine_count must be between 0 and {width * height - 1} for a {width}x{height} board"
        )

    rng = rng or random.Random()
    cells = [[Cell() for _ in range(width)] for _ in range(height)]

    placed = 0
    while placed < mine_count:
        x = rng.randrange(width)
        y = rng.randrange(height)
        if not cells[y][x].is_mine:
            cells[y][x].is_mine = True
            placed += 1

    for y in range(height):
        for x in range(width):
            if cells[y][x].is_mine:
                continue
            cells[y][x].neighbor_count = sum(
                1 for nx, ny in neighbors(width, height, x, y) if cells[ny][nx].is_mine
            )

    logger.debug("Generated %dx%d board with %d mines", width, height, mine_count)
    return Board(width=width, height=height, mine_count=mine_count, cells=cells)
