from __future__ import annotations

import logging
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from playoff_pickem.core.config import get_settings
from playoff_pickem.db.session import session_scope
from playoff_pickem.models import Season
from playoff_pickem.services.backfill import backfill_auto_picks
from playoff_pickem.services.feed import get_feed
from playoff_pickem.services.locking import lock_due_games
from playoff_pickem.services.scoring import score_final_games
from playoff_pickem.services.standings import refresh_user_stats
from playoff_pickem.services.sync import sync_scores

logger = logging.getLogger(__name__)

_scheduler: Optional[BackgroundScheduler] = None


def _get_tz():
    settings = get_settings()
    if settings.TIMEZONE and settings.TIMEZONE.lower() != "local":
        try:
            return ZoneInfo(settings.TIMEZONE)
        except (KeyError, ValueError):
            logger.warning("Invalid TIMEZONE '%s', falling back to system local.", settings.TIMEZONE)
    return None  # system local


def _with_session(db: Optional[Session], fn: Callable[[Session], dict]) -> dict:
    if db is not None:
        # A failed job rolls back to here and leaves the caller's session usable
        with db.begin_nested():
            return fn(db)
    with session_scope() as scoped:
        return fn(scoped)


# Job bodies. Each takes an optional session so the admin API can run them
# inside its request transaction; the scheduler always passes none.

def run_lock_games(db: Optional[Session] = None) -> dict:
    """Lock due games, then backfill auto picks.

    The backfill sweep covers the games just locked plus any locked game that
    is not final yet. Finished games that were already backfilled are skipped.
    """

    def _run(s: Session) -> dict:
        locked = lock_due_games(s)
        report = backfill_auto_picks(s)
        return {
            "locked_game_ids": locked.locked_game_ids,
            "picks_locked": locked.picks_locked,
            "backfill": report.as_dict(),
        }

    try:
        return _with_session(db, _run)
    except Exception:
        logger.exception("Lock job failed")
        return {"error": "lock job failed"}


def run_score_sync(db: Optional[Session] = None) -> dict:
    """Pull feed updates, then score final games.

    Scoring runs in its own transaction so a sync failure never blocks it.
    """
    result: dict = {}
    try:
        feed = get_feed()
        result["sync"] = _with_session(db, lambda s: sync_scores(s, feed).as_dict())
    except Exception:
        logger.exception("Score sync failed")
        result["sync"] = {"error": "score sync failed"}

    try:
        result["scoring"] = _with_session(db, lambda s: score_final_games(s).as_dict())
    except Exception:
        logger.exception("Scoring failed")
        result["scoring"] = {"error": "scoring failed"}
    return result


def run_stats_refresh(db: Optional[Session] = None) -> dict:
    """Recompute UserStat rows for every active season."""

    def _run(s: Session) -> dict:
        seasons = [y for (y,) in s.query(Season.year).filter(Season.is_active.is_(True)).order_by(Season.year)]
        return {str(year): refresh_user_stats(s, year) for year in seasons}

    try:
        return _with_session(db, _run)
    except Exception:
        logger.exception("Stats refresh failed")
        return {"error": "stats refresh failed"}


JOBS: Dict[str, Callable[..., dict]] = {
    "lock_games": run_lock_games,
    "score_sync": run_score_sync,
    "stats_refresh": run_stats_refresh,
}


def run_job(name: str, db: Optional[Session] = None) -> dict:
    try:
        job = JOBS[name]
    except KeyError:
        raise ValueError(f"Unknown job '{name}'. Valid: {', '.join(JOBS)}")
    logger.info("Running job on demand", extra={"job": name})
    return job(db)


def _interval_seconds() -> Dict[str, int]:
    settings = get_settings()
    return {
        "lock_games": settings.LOCK_INTERVAL_SECONDS,
        "score_sync": settings.SCORE_SYNC_INTERVAL_SECONDS,
        "stats_refresh": settings.STATS_INTERVAL_SECONDS,
    }


def _ensure_jobs(sched: BackgroundScheduler) -> None:
    tz = _get_tz()
    for job_id, seconds in _interval_seconds().items():
        trigger = IntervalTrigger(seconds=seconds, timezone=tz)
        existing = sched.get_job(job_id)
        if existing is None:
            sched.add_job(
                JOBS[job_id],
                trigger=trigger,
                id=job_id,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            logger.info("Scheduled %s: %s", job_id, trigger)
        else:
            existing.reschedule(trigger=trigger)
            logger.info("Rescheduled %s: %s", job_id, trigger)


def start_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        return
    _scheduler = BackgroundScheduler()
    _ensure_jobs(_scheduler)
    _scheduler.start()
    logger.info("Background scheduler started")


def shutdown_scheduler(wait: bool = True) -> None:
    global _scheduler
    if _scheduler is None:
        return
    try:
        _scheduler.shutdown(wait=wait)
        logger.info("Background scheduler stopped")
    finally:
        _scheduler = None
