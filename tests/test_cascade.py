"""Tests for flood-fill reveal."""

from app.services.game.engine import cascade_reveal, is_board_cleared, reveal_single

from .conftest import CORNER_CELLS, PLAYER_A, SMALL_MINES, build_board


def reveal_from(board, x: int, y: int) -> list[tuple[int, int]]:
    """Reveal (x, y) and cascade the way a room does for a zero cell."""
    reveal_single(board, x, y, PLAYER_A)
    return cascade_reveal(board, x, y, PLAYER_A)


class TestCascadeReveal:
    def test_opens_whole_zero_region(self, small_board):
        cascaded = reveal_from(small_board, 3, 0)

        # 23 safe cells minus the three isolated corner cells, minus the origin
        assert len(cascaded) == 19
        assert len(set(cascaded)) == len(cascaded)
        assert (3, 0) not in cascaded
        assert small_board.revealed_safe_count == 20

        for x, y in CORNER_CELLS:
            assert not small_board.cell(x, y).is_revealed

    def test_never_reveals_mines(self, small_board):
        reveal_from(small_board, 0, 4)

        for x, y in SMALL_MINES:
            assert not small_board.cell(x, y).is_revealed

    def test_numbered_border_is_revealed_but_not_expanded(self, small_board):
        cascaded = reveal_from(small_board, 3, 0)

        assert (2, 1) in cascaded
        assert small_board.cell(2, 1).neighbor_count == 1
        # (1, 0) only touches numbered cells, so it stays hidden
        assert not small_board.cell(1, 0).is_revealed

    def test_flagged_cells_are_skipped(self, small_board):
        small_board.cell(4, 0).is_flagged = True

        cascaded = reveal_from(small_board, 3, 0)

        assert (4, 0) not in cascaded
        assert not small_board.cell(4, 0).is_revealed
        assert small_board.cell(4, 0).is_flagged

    def test_revealed_cells_are_credited(self, small_board):
        cascaded = reveal_from(small_board, 3, 0)

        for x, y in cascaded:
            assert small_board.cell(x, y).revealed_by == PLAYER_A

    def test_cascade_on_large_open_board(self):
        board = build_board(30, 16, [(29, 15)])

        cascaded = reveal_from(board, 0, 0)

        assert len(cascaded) == board.safe_cell_count - 1
        assert is_board_cleared(board)


class TestBoardCleared:
    def test_not_cleared_initially(self, small_board):
        assert not is_board_cleared(small_board)

    def test_cleared_when_every_safe_cell_revealed(self, small_board):
        reveal_from(small_board, 3, 0)
        for x, y in CORNER_CELLS:
            reveal_single(small_board, x, y, PLAYER_A)

        assert is_board_cleared(small_board)

    def test_revealing_a_mine_does_not_count(self, small_board):
        reveal_single(small_board, 1, 1, PLAYER_A)

        assert small_board.revealed_safe_count == 0
