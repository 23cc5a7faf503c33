from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from playoff_pickem.core.errors import GameLockedError, HiddenUntilLockError, NotFoundError, ValidationError
from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.db.session import dialect_insert
from playoff_pickem.models import Game, GameStatus, Pick, User
from playoff_pickem.models.round import FINAL_ROUND_ORDER, PLAYOFF_ROUNDS

logger = logging.getLogger(__name__)

VALID_WEEKS = tuple(order for _, _, _, order in PLAYOFF_ROUNDS)


def validate_week(week_number: Optional[int]) -> None:
    if week_number is not None and week_number not in VALID_WEEKS:
        raise ValidationError(f"Invalid week number {week_number}", week_number=week_number)


def _load_game_fresh(db: Session, game_id: int) -> Optional[Game]:
    # Re-read the row even if the session already holds it; a cached copy may
    # predate the lock engine's last run.
    stmt = (
        select(Game)
        .where(Game.id == game_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def submit_pick(
    db: Session,
    user_id: int,
    game_id: int,
    team_id: int,
    tiebreaker_guess: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Pick:
    """Create or replace the user's pick for a game while the game is open.

    Raises GameLockedError once the game is locked or has kicked off, even if
    the lock engine has not flagged it yet. Concurrent submissions for the same
    (user, game) are arbitrated by the database's upsert.
    """
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)

    game = _load_game_fresh(db, game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found", game_id=game_id)
    if team_id not in (game.home_team_id, game.away_team_id):
        raise ValidationError(
            f"Team {team_id} is not playing in game {game_id}", game_id=game_id, team_id=team_id
        )
    if game.status == GameStatus.CANCELLED:
        raise ValidationError(f"Game {game_id} was cancelled", game_id=game_id)

    is_final_round = game.week_number == FINAL_ROUND_ORDER
    if not is_final_round:
        if tiebreaker_guess is not None:
            logger.debug("Ignoring tiebreaker guess for non-final game %s", game_id)
        tiebreaker_guess = None
    elif tiebreaker_guess is not None and tiebreaker_guess < 0:
        raise ValidationError("Tiebreaker guess must be zero or positive", tiebreaker_guess=tiebreaker_guess)

    now = as_utc(now) or utcnow()
    if not game.is_open_for_picks(now):
        raise GameLockedError(game.id)

    table = Pick.__table__
    ins = dialect_insert(db, Pick).values(
        user_id=user_id,
        game_id=game.id,
        season=game.season,
        week_number=game.week_number,
        selected_team_id=team_id,
        is_auto_pick=False,
        superbowl_total_points_guess=tiebreaker_guess,
        created_at=now,
        updated_at=now,
    )
    set_ = {
        "selected_team_id": ins.excluded.selected_team_id,
        "is_auto_pick": False,
        "updated_at": ins.excluded.updated_at,
    }
    if is_final_round:
        set_["superbowl_total_points_guess"] = ins.excluded.superbowl_total_points_guess
    stmt = ins.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.game_id],
        set_=set_,
        where=table.c.is_locked.is_(False),
    ).returning(table.c.id)

    row = db.execute(stmt).first()
    if row is None:
        # The stored pick was locked between our check and the write
        raise GameLockedError(game.id)

    pick = db.execute(
        select(Pick).where(Pick.id == row[0]).execution_options(populate_existing=True)
    ).scalar_one()
    logger.debug(
        "Saved pick",
        extra={"user_id": user_id, "game_id": game.id, "team_id": team_id, "has_tb": tiebreaker_guess is not None},
    )
    return pick


def get_picks_for(db: Session, user_id: int, season: int, week_number: Optional[int] = None) -> List[Pick]:
    validate_week(week_number)
    q = db.query(Pick).filter(Pick.user_id == user_id, Pick.season == season)
    if week_number is not None:
        q = q.filter(Pick.week_number == week_number)
    return q.order_by(Pick.week_number, Pick.game_id).all()


def get_games(db: Session, season: int, week_number: Optional[int] = None) -> List[Game]:
    validate_week(week_number)
    q = db.query(Game).filter(Game.season == season)
    if week_number is not None:
        q = q.filter(Game.week_number == week_number)
    return q.order_by(Game.week_number, Game.scheduled_start_time, Game.id).all()


@dataclass
class PickDistribution:
    game_id: int
    home_team_id: int
    away_team_id: int
    home_picks: int
    away_picks: int
    auto_picks: int


def pick_distribution(db: Session, game_id: int, now: Optional[datetime] = None) -> PickDistribution:
    """How the pool split on a game. Hidden until the game locks."""
    game = db.get(Game, game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found", game_id=game_id)
    now = as_utc(now) or utcnow()
    if game.is_open_for_picks(now):
        raise HiddenUntilLockError("Pick distribution is hidden until the game locks", game_id=game_id)

    home = away = auto = 0
    for team_id, is_auto in db.query(Pick.selected_team_id, Pick.is_auto_pick).filter(Pick.game_id == game_id).all():
        if team_id == game.home_team_id:
            home += 1
        elif team_id == game.away_team_id:
            away += 1
        if is_auto:
            auto += 1
    return PickDistribution(
        game_id=game.id,
        home_team_id=game.home_team_id,
        away_team_id=game.away_team_id,
        home_picks=home,
        away_picks=away,
        auto_picks=auto,
    )
