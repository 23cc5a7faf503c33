from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.models import Pick, PickOutcome, User, UserStat
from playoff_pickem.models.round import PLAYOFF_ROUNDS, ROUND_SLUG_BY_WEEK
from playoff_pickem.services.picks import validate_week
from playoff_pickem.services.tiebreaker import tiebreaker_differences

logger = logging.getLogger(__name__)

ROUND_SLUGS = tuple(slug for slug, _, _, _ in PLAYOFF_ROUNDS)

# UserStat column for each round's correct-pick count
_ROUND_COLUMNS = {
    "wild_card": "wildcard_correct",
    "divisional": "divisional_correct",
    "conference": "conference_correct",
    "super_bowl": "superbowl_correct",
}


def _empty_rounds() -> Dict[str, int]:
    return {slug: 0 for slug in ROUND_SLUGS}


@dataclass
class StatTotals:
    total_points: int = 0
    total_correct_picks: int = 0
    total_incorrect_picks: int = 0
    total_pending_picks: int = 0
    correct_by_round: Dict[str, int] = field(default_factory=_empty_rounds)
    tiebreaker_difference: Optional[int] = None

    @property
    def picks_made(self) -> int:
        return self.total_correct_picks + self.total_incorrect_picks + self.total_pending_picks


@dataclass
class RankedStanding:
    user_id: int
    username: str
    display_name: str
    totals: StatTotals
    rank: int = 0


def aggregate_picks(picks: Iterable[Pick], tiebreaker_difference: Optional[int] = None) -> StatTotals:
    """Roll a user's picks up into totals. No picks gives all zeros."""
    totals = StatTotals(tiebreaker_difference=tiebreaker_difference)
    for p in picks:
        if p.outcome == PickOutcome.CORRECT:
            totals.total_correct_picks += 1
            slug = ROUND_SLUG_BY_WEEK.get(p.week_number)
            if slug is not None:
                totals.correct_by_round[slug] += 1
        elif p.outcome == PickOutcome.INCORRECT:
            totals.total_incorrect_picks += 1
        else:
            totals.total_pending_picks += 1
        totals.total_points += p.points_earned or 0
    return totals


def standing_sort_key(s: RankedStanding):
    tb = s.totals.tiebreaker_difference
    return (
        -s.totals.total_points,
        -s.totals.total_correct_picks,
        tb is None,  # a missing guess sorts after any guess
        tb if tb is not None else 0,
        s.username.lower(),
        s.user_id,
    )


def _rank_criteria(s: RankedStanding):
    return (s.totals.total_points, s.totals.total_correct_picks, s.totals.tiebreaker_difference)


def rank_standings(rows: Iterable[RankedStanding]) -> List[RankedStanding]:
    """Order rows and assign competition ranks (1, 2, 2, 4)."""
    ordered = sorted(rows, key=standing_sort_key)
    out: List[RankedStanding] = []
    for i, row in enumerate(ordered):
        if out and _rank_criteria(out[-1]) == _rank_criteria(row):
            rank = out[-1].rank
        else:
            rank = i + 1
        out.append(replace(row, rank=rank))
    return out


def totals_from_stat(stat: Optional[UserStat]) -> StatTotals:
    if stat is None:
        return StatTotals()
    return StatTotals(
        total_points=stat.total_points,
        total_correct_picks=stat.total_correct_picks,
        total_incorrect_picks=stat.total_incorrect_picks,
        total_pending_picks=stat.total_pending_picks,
        correct_by_round={slug: getattr(stat, col) for slug, col in _ROUND_COLUMNS.items()},
        tiebreaker_difference=stat.tiebreaker_difference,
    )


def _apply_totals(stat: UserStat, totals: StatTotals) -> bool:
    values = {
        "total_points": totals.total_points,
        "total_correct_picks": totals.total_correct_picks,
        "total_incorrect_picks": totals.total_incorrect_picks,
        "total_pending_picks": totals.total_pending_picks,
        "tiebreaker_difference": totals.tiebreaker_difference,
    }
    for slug, col in _ROUND_COLUMNS.items():
        values[col] = totals.correct_by_round.get(slug, 0)

    changed = False
    for name, value in values.items():
        if getattr(stat, name) != value:
            setattr(stat, name, value)
            changed = True
    return changed


def refresh_user_stats(db: Session, season: int, now: Optional[datetime] = None) -> int:
    """Recompute UserStat for every roster user from picks. Returns rows written.

    Rows whose totals are unchanged are left as they are, so repeated runs
    without new picks write nothing.
    """
    now = as_utc(now) or utcnow()
    diffs = tiebreaker_differences(db, season)

    picks_by_user: Dict[int, List[Pick]] = defaultdict(list)
    for p in db.query(Pick).filter(Pick.season == season).all():
        picks_by_user[p.user_id].append(p)

    existing = {s.user_id: s for s in db.query(UserStat).filter(UserStat.season == season).all()}
    written = 0
    for (user_id,) in db.query(User.id).order_by(User.id).all():
        totals = aggregate_picks(picks_by_user.get(user_id, []), diffs.get(user_id))
        stat = existing.get(user_id)
        if stat is None:
            stat = UserStat(
                user_id=user_id,
                season=season,
                total_points=0,
                total_correct_picks=0,
                total_incorrect_picks=0,
                total_pending_picks=0,
                wildcard_correct=0,
                divisional_correct=0,
                conference_correct=0,
                superbowl_correct=0,
                tiebreaker_difference=None,
            )
            db.add(stat)
            _apply_totals(stat, totals)
            changed = True
        else:
            changed = _apply_totals(stat, totals)
        if changed:
            stat.last_calculated_at = now
            written += 1
    db.flush()
    logger.info("Refreshed user stats for season %s (%d rows written)", season, written)
    return written


def get_standings(db: Session, season: int) -> List[RankedStanding]:
    """Ranked standings for a season. Users without stats appear with zeros."""
    stats = {s.user_id: s for s in db.query(UserStat).filter(UserStat.season == season).all()}
    rows = [
        RankedStanding(
            user_id=u.id,
            username=u.username,
            display_name=u.name,
            totals=totals_from_stat(stats.get(u.id)),
        )
        for u in db.query(User).all()
    ]
    return rank_standings(rows)


@dataclass
class WeeklyPickCount:
    user_id: int
    username: str
    display_name: str
    rank: int
    picks_made: int
    correct_picks: int
    incorrect_picks: int
    pending_picks: int
    total_points: int


def weekly_standings(db: Session, season: int, week_number: int) -> List[RankedStanding]:
    """Rank the whole roster on one week's picks, by points then correct picks.

    Users without picks that week are listed with zeros.
    """
    validate_week(week_number)
    by_user: Dict[int, List[Pick]] = defaultdict(list)
    for p in db.query(Pick).filter(Pick.season == season, Pick.week_number == week_number).all():
        by_user[p.user_id].append(p)

    rows = [
        RankedStanding(
            user_id=u.id,
            username=u.username,
            display_name=u.name,
            totals=aggregate_picks(by_user.get(u.id, [])),
        )
        for u in db.query(User).all()
    ]
    return rank_standings(rows)


def weekly_pick_counts(db: Session, season: int, week_number: int) -> List[WeeklyPickCount]:
    """Weekly standings as counts only, without revealing which teams were picked."""
    return [
        WeeklyPickCount(
            user_id=s.user_id,
            username=s.username,
            display_name=s.display_name,
            rank=s.rank,
            picks_made=s.totals.picks_made,
            correct_picks=s.totals.total_correct_picks,
            incorrect_picks=s.totals.total_incorrect_picks,
            pending_picks=s.totals.total_pending_picks,
            total_points=s.totals.total_points,
        )
        for s in weekly_standings(db, season, week_number)
    ]
