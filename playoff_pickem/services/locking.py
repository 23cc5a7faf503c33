from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.models import Game, Pick
from playoff_pickem.models.game import STARTED_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class LockResult:
    locked_game_ids: List[int] = field(default_factory=list)
    picks_locked: int = 0


def lock_due_games(db: Session, now: Optional[datetime] = None) -> LockResult:
    """Lock every open game whose kickoff has passed, then cascade-lock picks.

    Only reads the schedule and game status; never waits on the score feed.
    Locks are never released here.
    """
    now = as_utc(now) or utcnow()
    due: List[Game] = (
        db.query(Game)
        .filter(
            Game.is_locked.is_(False),
            or_(Game.scheduled_start_time <= now, Game.status.in_(STARTED_STATUSES)),
        )
        .all()
    )
    for g in due:
        g.is_locked = True
        g.locked_at = now
    db.flush()

    picks_locked = lock_picks_for_locked_games(db, now)
    result = LockResult(locked_game_ids=[g.id for g in due], picks_locked=picks_locked)
    if due:
        logger.info("Locked %d games %s, %d picks", len(due), result.locked_game_ids, picks_locked)
    return result


def lock_picks_for_locked_games(db: Session, now: Optional[datetime] = None) -> int:
    """Mark picks read-only for every locked game. Returns rows changed."""
    now = as_utc(now) or utcnow()
    locked_games = select(Game.id).where(Game.is_locked.is_(True))
    rows = db.execute(
        update(Pick)
        .where(Pick.is_locked.is_(False), Pick.game_id.in_(locked_games))
        .values(is_locked=True, locked_at=now)
        .returning(Pick.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    return len(rows)


def lock_game(db: Session, game: Game, now: Optional[datetime] = None) -> bool:
    """Lock a single game (and its picks). Returns False if it was already locked."""
    now = as_utc(now) or utcnow()
    if game.is_locked:
        return False
    game.is_locked = True
    game.locked_at = now
    db.flush()
    db.execute(
        update(Pick)
        .where(Pick.game_id == game.id, Pick.is_locked.is_(False))
        .values(is_locked=True, locked_at=now)
        .execution_options(synchronize_session="fetch")
    )
    return True
