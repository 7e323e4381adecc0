"""Authoritative in-memory state for one game room."""

import asyncio
import logging
import random
from datetime import datetime, timezone

from app.schemas.game_engine import (
    DIFFICULTY_PRESETS,
    PLAYER_COLORS,
    Board,
    ErrorCode,
    GameInvariantError,
    GamePhase,
    Player,
)
from app.schemas.games import CellView, GameSnapshot, PlayerView, RoomSummary

from .engine import (
    AnyGameEvent,
    CellsRevealed,
    FlagToggled,
    GameEnded,
    GameStarted,
    MineHit,
    PlayerJoined,
    PlayerLeft,
    ProcessResult,
    RevealAction,
    ToggleFlagAction,
    TurnSkipped,
    TurnStarted,
    cascade_reveal,
    find_winner,
    generate_board,
    get_index_after_removal,
    get_next_player_index,
    is_board_cleared,
    reveal_single,
    validate_join,
    validate_move,
    validate_start,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PLAYERS = 10


class GameRoom:
    """One game instance: a board, its players and the turn state machine.

    Phase only moves forward: WAITING -> PLAYING -> FINISHED. Players are kept
    in join order, which is also the turn order. Operations are synchronous and
    must run while holding ``lock``; each returns a ProcessResult and leaves the
    room untouched when it fails.
    """

    def __init__(
        self,
        room_id: str,
        board: Board,
        difficulty: str = "custom",
        max_players: int = DEFAULT_MAX_PLAYERS,
    ):
        self.id = room_id
        self.board = board
        self.difficulty = difficulty
        self.max_players = max_players

        self.players: dict[str, Player] = {}
        self.scores: dict[str, int] = {}
        self.current_player_index = 0
        self.phase = GamePhase.WAITING
        self.winner_id: str | None = None
        self.turn_number = 0
        self.event_seq = 0  # Next sequence number for events

        self.created_at = datetime.now(timezone.utc)
        self.lock = asyncio.Lock()

    @property
    def current_player_id(self) -> str | None:
        """The player whose turn it is, or None outside PLAYING.

        Raises:
            GameInvariantError: If the turn pointer does not address a seated player.
        """
        if self.phase != GamePhase.PLAYING:
            return None

        player_ids = list(self.players)
        if not 0 <= self.current_player_index < len(player_ids):
            raise GameInvariantError(
                f"Room {self.id}: turn index {self.current_player_index} "
                f"is invalid for {len(player_ids)} players"
            )
        return player_ids[self.current_player_index]

    # --- Lifecycle ---

    def add_player(self, player_id: str, name: str) -> ProcessResult:
        validation = validate_join(self, player_id)
        if not validation.is_valid:
            return validation.to_process_result()

        player = Player(
            id=player_id,
            name=name,
            color=self._next_color(),
            joined_at=datetime.now(timezone.utc),
        )
        self.players[player_id] = player
        self.scores[player_id] = 0

        logger.info(
            "Player %s (%s) joined room %s as %s (%d/%d)",
            player_id,
            name,
            self.id,
            player.color,
            len(self.players),
            self.max_players,
        )
        return self._commit(
            [PlayerJoined(player_id=player_id, name=name, color=player.color)]
        )

    def remove_player(self, player_id: str) -> ProcessResult:
        """Remove a player and keep the turn pointer on a seated player.

        If the departing player held the turn, it passes to the next player in
        turn order. Otherwise the current player keeps it.
        """
        if player_id not in self.players:
            logger.debug("Player %s not in room %s, nothing to remove", player_id, self.id)
            return ProcessResult.ok(self.snapshot())

        removed_index = list(self.players).index(player_id)
        del self.players[player_id]
        del self.scores[player_id]

        new_index, turn_moved = get_index_after_removal(
            self.current_player_index, removed_index, len(self.players)
        )
        self.current_player_index = new_index

        events: list[AnyGameEvent] = [PlayerLeft(player_id=player_id)]
        if self.phase == GamePhase.PLAYING and turn_moved and self.players:
            self.turn_number += 1
            events.append(
                TurnStarted(player_id=self.current_player_id, turn_number=self.turn_number)
            )

        logger.info(
            "Player %s left room %s (%d remaining, phase=%s)",
            player_id,
            self.id,
            len(self.players),
            self.phase.value,
        )
        return self._commit(events)

    def start(self) -> ProcessResult:
        if self.phase == GamePhase.PLAYING:
            logger.debug("Room %s already playing, start is a no-op", self.id)
            return ProcessResult.ok(self.snapshot())

        validation = validate_start(self)
        if not validation.is_valid:
            return validation.to_process_result()

        self.phase = GamePhase.PLAYING
        self.current_player_index = 0
        self.turn_number = 1

        player_order = list(self.players)
        first_player_id = player_order[0]
        logger.info(
            "Game started in room %s: first_player=%s, player_order=%s",
            self.id,
            first_player_id,
            player_order,
        )
        return self._commit(
            [
                GameStarted(player_order=player_order, first_player_id=first_player_id),
                TurnStarted(player_id=first_player_id, turn_number=self.turn_number),
            ]
        )

    # --- Moves ---

    def reveal_cell(self, x: int, y: int, player_id: str) -> ProcessResult:
        validation = validate_move(self, RevealAction(x=x, y=y), player_id)
        if not validation.is_valid:
            return validation.to_process_result()

        cell = self.board.cell(x, y)
        reveal_single(self.board, x, y, player_id)
        revealed = [(x, y)]
        self.scores[player_id] += 1

        if cell.is_mine:
            logger.info("Player %s hit a mine at (%d, %d) in room %s", player_id, x, y, self.id)
            events: list[AnyGameEvent] = [
                CellsRevealed(player_id=player_id, cells=revealed, score=self.scores[player_id]),
                MineHit(player_id=player_id, x=x, y=y),
            ]
            events.append(self._finish("mine_hit"))
            return self._commit(events)

        if cell.neighbor_count == 0:
            cascaded = cascade_reveal(self.board, x, y, player_id)
            revealed.extend(cascaded)
            self.scores[player_id] += len(cascaded)

        events = [
            CellsRevealed(player_id=player_id, cells=revealed, score=self.scores[player_id])
        ]

        if is_board_cleared(self.board):
            logger.info("Board cleared in room %s", self.id)
            events.append(self._finish("board_cleared"))
            return self._commit(events)

        events.append(self._advance_turn())
        return self._commit(events)

    def toggle_flag(self, x: int, y: int, player_id: str) -> ProcessResult:
        validation = validate_move(self, ToggleFlagAction(x=x, y=y), player_id)
        if not validation.is_valid:
            return validation.to_process_result()

        cell = self.board.cell(x, y)
        cell.is_flagged = not cell.is_flagged
        logger.debug(
            "Player %s %s (%d, %d) in room %s",
            player_id,
            "flagged" if cell.is_flagged else "unflagged",
            x,
            y,
            self.id,
        )

        # Flagging consumes the turn either way
        return self._commit(
            [
                FlagToggled(player_id=player_id, x=x, y=y, flagged=cell.is_flagged),
                self._advance_turn(),
            ]
        )

    def skip_turn(self) -> ProcessResult:
        """Pass the turn without a move (turn timer expired)."""
        if self.phase != GamePhase.PLAYING or not self.players:
            return ProcessResult.failure(ErrorCode.NOT_PLAYING, "Game is not in playing state")

        skipped = self.current_player_id
        logger.info("Turn timed out for player %s in room %s", skipped, self.id)
        return self._commit([TurnSkipped(player_id=skipped), self._advance_turn()])

    # --- Views ---

    def snapshot(self) -> GameSnapshot:
        """Build a broadcast-safe view; hidden cells never expose their contents."""
        board = [
            [
                CellView(
                    is_revealed=cell.is_revealed,
                    is_flagged=cell.is_flagged,
                    is_mine=cell.is_mine if cell.is_revealed else False,
                    neighbor_count=cell.neighbor_count if cell.is_revealed else 0,
                    revealed_by=cell.revealed_by,
                )
                for cell in row
            ]
            for row in self.board.cells
        ]
        return GameSnapshot(
            room_id=self.id,
            phase=self.phase,
            difficulty=self.difficulty,
            players=[
                PlayerView(id=p.id, name=p.name, color=p.color, joined_at=p.joined_at)
                for p in self.players.values()
            ],
            scores=dict(self.scores),
            current_player_id=self.current_player_id if self.players else None,
            winner_id=self.winner_id,
            turn_number=self.turn_number,
            width=self.board.width,
            height=self.board.height,
            mine_count=self.board.mine_count,
            board=board,
        )

    def summary(self) -> RoomSummary:
        return RoomSummary(
            room_id=self.id,
            player_count=len(self.players),
            max_players=self.max_players,
            phase=self.phase,
            difficulty=self.difficulty,
            width=self.board.width,
            height=self.board.height,
            mine_count=self.board.mine_count,
        )

    def is_open(self) -> bool:
        """Accepting new players."""
        return self.phase == GamePhase.WAITING and len(self.players) < self.max_players

    # --- Internals ---

    def _next_color(self) -> str:
        used = {p.color for p in self.players.values()}
        start = len(self.players)
        for offset in range(len(PLAYER_COLORS)):
            color = PLAYER_COLORS[(start + offset) % len(PLAYER_COLORS)]
            if color not in used:
                return color
        return PLAYER_COLORS[start % len(PLAYER_COLORS)]

    def _advance_turn(self) -> TurnStarted:
        self.current_player_index = get_next_player_index(
            self.current_player_index, len(self.players)
        )
        self.turn_number += 1
        return TurnStarted(player_id=self.current_player_id, turn_number=self.turn_number)

    def _finish(self, reason: str) -> GameEnded:
        self.phase = GamePhase.FINISHED
        self.winner_id = find_winner(self.scores)
        logger.info(
            "Game ended in room %s: reason=%s, winner=%s, scores=%s",
            self.id,
            reason,
            self.winner_id,
            self.scores,
        )
        return GameEnded(winner_id=self.winner_id, reason=reason, scores=dict(self.scores))

    def _commit(self, events: list[AnyGameEvent]) -> ProcessResult:
        """Assign monotonically increasing sequence numbers and snapshot the room."""
        for event in events:
            event.seq = self.event_seq
            self.event_seq += 1
        return ProcessResult.ok(self.snapshot(), events)


def create_game_room(
    room_id: str,
    difficulty: str = "medium",
    max_players: int = DEFAULT_MAX_PLAYERS,
    rng: random.Random | None = None,
) -> GameRoom:
    """Build a WAITING room with a fresh board for the given difficulty.

    Raises:
        ValueError: If the difficulty is unknown.
    """
    preset = DIFFICULTY_PRESETS.get(difficulty)
    if preset is None:
        raise ValueError(f"Unknown difficulty: {difficulty}")

    board = generate_board(preset.width, preset.height, preset.mine_count, rng=rng)
    logger.debug("Created room %s (%s, max_players=%d)", room_id, difficulty, max_players)
    return GameRoom(room_id, board, difficulty=difficulty, max_players=max_players)
