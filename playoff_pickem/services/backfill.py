from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.db.session import dialect_insert
from playoff_pickem.models import Game, GameStatus, Pick, User
from playoff_pickem.services.batch import BatchReport

logger = logging.getLogger(__name__)


def backfill_auto_picks(
    db: Session,
    game_ids: Optional[Iterable[int]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> BatchReport:
    """Give every roster user without a pick on a locked game a coin-flip pick.

    Without ``game_ids`` this is the periodic sweep. It skips final games that
    were already backfilled, so picks removed by a season reset stay gone.
    Explicit ``game_ids`` are always processed.

    Safe to run repeatedly and concurrently: the (user, game) unique key decides
    who wins a race and losing inserts are dropped. Games are processed one at a
    time; a failing game is counted and the rest continue.
    """
    rng = rng or random.Random()
    now = as_utc(now) or utcnow()

    q = db.query(Game).filter(Game.is_locked.is_(True), Game.status != GameStatus.CANCELLED)
    if game_ids is not None:
        ids = list(game_ids)
        if not ids:
            return BatchReport()
        q = q.filter(Game.id.in_(ids))
    else:
        q = q.filter(or_(Game.auto_picks_at.is_(None), Game.status != GameStatus.FINAL))
    games: List[Game] = q.order_by(Game.id).all()

    report = BatchReport()
    user_ids = [uid for (uid,) in db.query(User.id).order_by(User.id).all()]
    if not user_ids:
        report.skipped = len(games)
        return report

    for game in games:
        try:
            with db.begin_nested():
                missing = missing_user_ids(db, game, user_ids)
                created = insert_auto_picks(db, game, missing, rng, now)
                game.auto_picks_at = now
        except IntegrityError:
            # Another writer got there first
            logger.info("Auto-picks for game %s already present", game.id)
            report.skipped += 1
            continue
        except SQLAlchemyError:
            logger.exception("Auto-pick backfill failed for game %s", game.id)
            report.errored += 1
            continue

        if created:
            report.succeeded += 1
            report.created += created
            report.item_ids.append(game.id)
            logger.info("Created %d auto-picks for game %s", created, game.id)
        else:
            report.skipped += 1
    return report


def missing_user_ids(db: Session, game: Game, user_ids: Sequence[int]) -> List[int]:
    have = {uid for (uid,) in db.query(Pick.user_id).filter(Pick.game_id == game.id).all()}
    return [uid for uid in user_ids if uid not in have]


def insert_auto_picks(
    db: Session, game: Game, user_ids: Sequence[int], rng: random.Random, now: datetime
) -> int:
    """Insert auto picks for ``user_ids``; returns how many rows were written.

    ``user_ids`` may be stale. A user who picked in the meantime keeps that pick.
    """
    if not user_ids:
        return 0

    rows = [
        {
            "user_id": uid,
            "game_id": game.id,
            "season": game.season,
            "week_number": game.week_number,
            "selected_team_id": coin_flip(game, rng),
            "is_auto_pick": True,
            "is_locked": True,
            "locked_at": now,
            "created_at": now,
            "updated_at": now,
        }
        for uid in user_ids
    ]
    table = Pick.__table__
    stmt = (
        dialect_insert(db, Pick)
        .values(rows)
        .on_conflict_do_nothing(index_elements=[table.c.user_id, table.c.game_id])
        .returning(table.c.id)
    )
    return len(db.execute(stmt).all())


def coin_flip(game: Game, rng: random.Random) -> int:
    return game.home_team_id if rng.random() < 0.5 else game.away_team_id
