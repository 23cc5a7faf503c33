from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playoff_pickem.core.config import get_settings
from playoff_pickem.core.errors import FeedUnavailableError
from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.models import Game, GameStatus, SyncLog
from playoff_pickem.models.game import STARTED_STATUSES
from playoff_pickem.services.feed.base import GameRef, GameUpdate, ScoreFeed

logger = logging.getLogger(__name__)

SYNCABLE_STATUSES = (GameStatus.SCHEDULED, GameStatus.IN_PROGRESS, GameStatus.POSTPONED)
# Statuses a live game may not fall back to
PRE_GAME_STATUSES = (GameStatus.SCHEDULED, GameStatus.POSTPONED)


@dataclass
class SyncReport:
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    finalized_game_ids: List[int] = field(default_factory=list)
    feed_error: Optional[str] = None

    @property
    def status(self) -> str:
        if self.feed_error is not None or (self.errored and not self.updated):
            return "failed"
        if self.errored:
            return "partial"
        return "success"

    def as_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status
        return d


def has_scores(update: GameUpdate) -> bool:
    return update.home_score is not None and update.away_score is not None


def is_malformed(update: GameUpdate) -> bool:
    """A live or final report without both scores cannot be applied."""
    return update.status in STARTED_STATUSES and not has_scores(update)


def apply_game_update(game: Game, update: GameUpdate, now: Optional[datetime] = None) -> bool:
    """Write one feed update onto a game. Returns True if the game became final.

    A game already final is left alone; corrections after that are admin work.
    Malformed updates and a live game reported as scheduled or postponed again
    are ignored, and the game keeps its last known state.
    """
    now = as_utc(now) or utcnow()
    if game.status == GameStatus.FINAL:
        return False
    if is_malformed(update):
        logger.warning("Ignoring %s update without scores for game %s", update.status.value, game.id)
        return False
    if game.status == GameStatus.IN_PROGRESS and update.status in PRE_GAME_STATUSES:
        logger.info("Ignoring %s for live game %s", update.status.value, game.id)
        return False

    started = game.has_kicked_off(now)
    status = update.status
    if not started and status in STARTED_STATUSES:
        # Providers sometimes flag future games as live; trust the schedule
        logger.warning(
            "Feed reported %s for game %s before kickoff (%s); keeping scheduled",
            status.value,
            game.id,
            game.start_time_utc.isoformat(),
        )
        status = GameStatus.SCHEDULED

    was_scheduled = game.status == GameStatus.SCHEDULED
    game.status = status
    if status in STARTED_STATUSES:
        game.home_score = update.home_score
        game.away_score = update.away_score
        game.period = update.period
        game.clock = update.clock
        if was_scheduled and game.actual_start_time is None:
            game.actual_start_time = now
        if not game.is_locked:
            game.is_locked = True
            game.locked_at = now
    game.winning_team_id = game.decide_winner()
    if status == GameStatus.FINAL and game.winning_team_id is None:
        logger.warning("Game %s reported final without a winner (%s-%s)", game.id, game.home_score, game.away_score)

    if update.external_id and not game.external_id:
        game.external_id = update.external_id
    game.last_updated_at = now
    return status == GameStatus.FINAL


def syncable_games(db: Session, now: datetime) -> List[Game]:
    lookahead = timedelta(hours=get_settings().SYNC_LOOKAHEAD_HOURS)
    return (
        db.query(Game)
        .filter(Game.status.in_(SYNCABLE_STATUSES), Game.scheduled_start_time <= now + lookahead)
        .order_by(Game.scheduled_start_time, Game.id)
        .all()
    )


def sync_scores(db: Session, feed: ScoreFeed, now: Optional[datetime] = None) -> SyncReport:
    """Pull feed updates for every active game and write them.

    A feed outage skips the cycle's games and leaves their last known state in
    place; games written before a per-game failure stay written.
    """
    now = as_utc(now) or utcnow()
    started = time.monotonic()
    report = SyncReport()

    games = syncable_games(db, now)
    if games:
        refs = [
            GameRef(
                game_id=g.id,
                home_abbr=g.home_team.abbr,
                away_abbr=g.away_team.abbr,
                scheduled_start_time=g.start_time_utc,
                external_id=g.external_id,
            )
            for g in games
        ]
        try:
            updates = feed.fetch_updates_for(refs)
        except FeedUnavailableError as e:
            logger.warning("Score feed unavailable, skipping %d games: %s", len(games), e)
            report.skipped = len(games)
            report.feed_error = str(e)
        else:
            _apply_updates(db, games, updates, now, report)

    _log_sync(db, feed.name(), report, now, started)
    logger.info(
        "Score sync: %d updated, %d skipped, %d errors, %d finalized",
        report.updated,
        report.skipped,
        report.errored,
        len(report.finalized_game_ids),
    )
    return report


def _apply_updates(
    db: Session, games: List[Game], updates: List[GameUpdate], now: datetime, report: SyncReport
) -> None:
    by_game: Dict[int, GameUpdate] = {u.game_id: u for u in updates if u.game_id is not None}
    for g in games:
        upd = by_game.get(g.id)
        if upd is None:
            report.skipped += 1
            continue
        if is_malformed(upd):
            logger.warning("Skipping %s update without scores for game %s", upd.status.value, g.id)
            report.skipped += 1
            continue
        try:
            with db.begin_nested():
                became_final = apply_game_update(g, upd, now)
                db.flush()
        except SQLAlchemyError:
            logger.exception("Failed to write feed update for game %s", g.id)
            report.errored += 1
            continue
        report.updated += 1
        if became_final:
            report.finalized_game_ids.append(g.id)


def _log_sync(db: Session, provider: str, report: SyncReport, started_at: datetime, t0: float) -> None:
    db.add(
        SyncLog(
            sync_type="scores",
            provider=provider,
            status=report.status,
            records_updated=report.updated,
            error_message=report.feed_error,
            response_time_ms=int((time.monotonic() - t0) * 1000),
            started_at=started_at,
            completed_at=utcnow(),
        )
    )
    db.flush()
