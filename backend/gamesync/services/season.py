from __future__ import annotations

from gamesync.models.game import ENDED_ROUND_STATES
from gamesync.services.game_snapshot import GameSnapshot


def is_season_ended(game: GameSnapshot) -> bool:
    """All rounds played and the last one finished."""
    if not game.total_rounds or game.total_rounds <= 0:
        return False
    if (game.current_round or 0) < game.total_rounds:
        return False
    return (game.round_state or "") in ENDED_ROUND_STATES
