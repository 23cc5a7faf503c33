from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playoff_pickem.models import Game, GameStatus, Pick, PickOutcome, PlayoffRound
from playoff_pickem.services.batch import BatchReport

logger = logging.getLogger(__name__)


def points_for(playoff_round: PlayoffRound, outcome: PickOutcome) -> int:
    if outcome == PickOutcome.CORRECT:
        return playoff_round.points_per_correct_pick
    return 0


def score_final_games(db: Session, game_ids: Optional[Iterable[int]] = None) -> BatchReport:
    """Resolve pending picks on final games.

    Only picks still pending are written, so re-running never changes a
    resolved pick. Score corrections after a pick resolved go through
    admin.correct_game_result instead.
    """
    q = db.query(Game).filter(Game.status == GameStatus.FINAL)
    if game_ids is not None:
        ids = list(game_ids)
        if not ids:
            return BatchReport()
        q = q.filter(Game.id.in_(ids))
    games: List[Game] = q.order_by(Game.id).all()

    report = BatchReport()
    for game in games:
        winner = game.winning_team_id
        if winner is None:
            logger.warning(
                "Final game %s has no winner (score %s-%s); leaving picks pending",
                game.id,
                game.home_score,
                game.away_score,
            )
            report.skipped += 1
            continue
        try:
            with db.begin_nested():
                scored = _score_game(db, game, winner)
        except SQLAlchemyError:
            logger.exception("Scoring failed for game %s", game.id)
            report.errored += 1
            continue
        if scored:
            report.succeeded += 1
            report.created += scored
            report.item_ids.append(game.id)
            logger.info("Scored %d picks for game %s", scored, game.id)
        else:
            report.skipped += 1
    return report


def _score_game(db: Session, game: Game, winner: int) -> int:
    pending = (Pick.game_id == game.id, Pick.outcome == PickOutcome.PENDING)
    correct = db.execute(
        update(Pick)
        .where(*pending, Pick.selected_team_id == winner)
        .values(outcome=PickOutcome.CORRECT, points_earned=points_for(game.round, PickOutcome.CORRECT))
        .returning(Pick.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    incorrect = db.execute(
        update(Pick)
        .where(*pending, Pick.selected_team_id != winner)
        .values(outcome=PickOutcome.INCORRECT, points_earned=0)
        .returning(Pick.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    return len(correct) + len(incorrect)


def reopen_game_picks(db: Session, game: Game) -> int:
    """Put every pick on a game back to pending. Admin corrections only."""
    rows = db.execute(
        update(Pick)
        .where(Pick.game_id == game.id)
        .values(outcome=PickOutcome.PENDING, points_earned=0)
        .returning(Pick.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    return len(rows)
