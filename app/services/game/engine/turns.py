"""Turn order and winner selection."""

import logging

logger = logging.getLogger(__name__)


def get_next_player_index(current_index: int, num_players: int) -> int:
    """Calculate the next player's index (0-indexed, wrapping)."""
    if num_players <= 0:
        raise ValueError("Cannot rotate turns without players")
    next_index = (current_index + 1) % num_players
    logger.debug(
        "Turn index calculation: current=%d, num_players=%d, next=%d",
        current_index,
        num_players,
        next_index,
    )
    return next_index


def get_index_after_removal(
    current_index: int, removed_index: int, remaining_players: int
) -> tuple[int, bool]:
    """Adjust the turn pointer after the player at removed_index leaves.

    The turn stays with the same player where possible. When the player who
    held the turn leaves, it passes to whoever followed them in turn order.

    Returns:
        (new_index, turn_moved) where turn_moved is True when a different
        player now holds the turn.
    """
    if remaining_players <= 0:
        return 0, False

    if removed_index < current_index:
        return current_index - 1, False

    if removed_index == current_index:
        # The follower has shifted into the vacated slot
        return current_index % remaining_players, True

    return current_index, False


def find_winner(scores: dict[str, int]) -> str | None:
    """Return the player with the strictly highest score.

    scores must be in join order; on a tie the earliest joined player wins.
    """
    winner: str | None = None
    best = -1
    for player_id, score in scores.items():
        if score > best:
            best = score
            winner = player_id
    logger.debug("Winner selection: winner=%s, score=%d", winner, best)
    return winner
