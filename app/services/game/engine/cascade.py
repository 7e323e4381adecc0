"""Cell reveal and flood-fill propagation."""

import logging

from app.schemas.game_engine import Board

from .board import neighbors

logger = logging.getLogger(__name__)


def reveal_single(board: Board, x: int, y: int, player_id: str) -> None:
    """Mark one cell revealed and credit it to player_id."""
    cell = board.cell(x, y)
    cell.is_revealed = True
    cell.revealed_by = player_id
    if not cell.is_mine:
        board.revealed_safe_count += 1


def cascade_reveal(board: Board, x: int, y: int, player_id: str) -> list[tuple[int, int]]:
    """Reveal the zero-region around an already revealed zero cell.

    Walks outward from (x, y) with an explicit stack. Every unrevealed,
    unflagged, non-mine neighbour is revealed; zero-count cells are expanded
    further. Mines are never revealed here.

    Returns:
        Coordinates revealed by the cascade, excluding the origin cell.
    """
    revealed: list[tuple[int, int]] = []
    visited = {(x, y)}
    stack = [(x, y)]

    while stack:
        cx, cy = stack.pop()
        for nx, ny in neighbors(board.width, board.height, cx, cy):
            if (nx, ny) in visited:
                continue
            visited.add((nx, ny))

            neighbor = board.cell(nx, ny)
            if neighbor.is_revealed or neighbor.is_flagged or neighbor.is_mine:
                continue

            reveal_single(board, nx, ny, player_id)
            revealed.append((nx, ny))
            if neighbor.neighbor_count == 0:
                stack.append((nx, ny))

    logger.debug("Cascade from (%d, %d) revealed %d cells", x, y, len(revealed))
    return revealed


def is_board_cleared(board: Board) -> bool:
    """Every non-mine cell has been revealed."""
    return board.revealed_safe_count == board.safe_cell_count
