from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from playoff_pickem.models import Game, GameStatus, Pick, User
from playoff_pickem.models.round import FINAL_ROUND_ORDER

logger = logging.getLogger(__name__)


def tiebreaker_difference(guess: Optional[int], actual_total: Optional[int]) -> Optional[int]:
    """|guess - actual|; None when there is no guess or no result yet."""
    if guess is None or actual_total is None:
        return None
    return abs(guess - actual_total)


def final_round_game(db: Session, season: int) -> Optional[Game]:
    games: List[Game] = (
        db.query(Game)
        .filter(Game.season == season, Game.week_number == FINAL_ROUND_ORDER)
        .order_by(Game.scheduled_start_time, Game.id)
        .all()
    )
    if not games:
        return None
    if len(games) > 1:
        logger.warning("Season %s has %d final-round games; using game %s", season, len(games), games[0].id)
    return games[0]


def resolved_total(game: Optional[Game]) -> Optional[int]:
    """Combined score once the game is final, else None."""
    if game is None or game.status != GameStatus.FINAL:
        return None
    if game.home_score is None or game.away_score is None:
        return None
    return game.home_score + game.away_score


def tiebreaker_differences(db: Session, season: int) -> Dict[int, Optional[int]]:
    """Tiebreaker difference for every roster user in a season.

    Every value stays None until the Super Bowl is final; users who never
    guessed stay None afterwards too.
    """
    out: Dict[int, Optional[int]] = {uid: None for (uid,) in db.query(User.id).all()}

    sb = final_round_game(db, season)
    actual = resolved_total(sb)
    if actual is None:
        return out

    guesses = (
        db.query(Pick.user_id, Pick.superbowl_total_points_guess)
        .filter(Pick.game_id == sb.id, Pick.superbowl_total_points_guess.isnot(None))
        .all()
    )
    for user_id, guess in guesses:
        out[user_id] = tiebreaker_difference(guess, actual)
    return out
