"""Out-of-band administrative operations.

Every operation here writes an AdminAction row. These are the only code paths
allowed to touch a locked pick or a final game.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from playoff_pickem.core.errors import NotFoundError, ValidationError
from playoff_pickem.core.timeutil import as_utc, utcnow
from playoff_pickem.models import AdminAction, Game, GameStatus, Pick, PickOutcome, PlayoffRound, Team, User, UserStat
from playoff_pickem.models.round import FINAL_ROUND_ORDER
from playoff_pickem.services.backfill import backfill_auto_picks
from playoff_pickem.services.batch import BatchReport
from playoff_pickem.services.locking import lock_game
from playoff_pickem.services.scoring import reopen_game_picks, score_final_games
from playoff_pickem.services.seed import ensure_season

logger = logging.getLogger(__name__)


def _get_game(db: Session, game_id: int) -> Game:
    game = db.get(Game, game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found", game_id=game_id)
    return game


def _find_team(db: Session, abbr: str) -> Team:
    key = abbr.strip().upper()
    team = db.query(Team).filter(Team.abbr == key).first()
    if team is not None:
        return team
    for t in db.query(Team).filter(Team.alt_abbrs.isnot(None)).all():
        if key in (a.upper() for a in t.alt_abbreviations()):
            return t
    raise ValidationError(f"Unknown team {abbr}", abbr=abbr)


def register_user(db: Session, username: str, display_name: Optional[str] = None) -> User:
    username = username.strip()
    if not username:
        raise ValidationError("Username is required")
    if db.query(User.id).filter(User.username == username).first() is not None:
        raise ValidationError(f"Username {username} is taken", username=username)
    user = User(username=username, display_name=display_name)
    db.add(user)
    db.flush()
    return user


def schedule_game(
    db: Session,
    season: int,
    round_order: int,
    home_abbr: str,
    away_abbr: str,
    scheduled_start_time: datetime,
    actor: str,
    external_id: Optional[str] = None,
) -> Game:
    playoff_round = db.query(PlayoffRound).filter(PlayoffRound.round_order == round_order).first()
    if playoff_round is None:
        raise ValidationError(f"Invalid week number {round_order}", week_number=round_order)
    home = _find_team(db, home_abbr)
    away = _find_team(db, away_abbr)
    if home.id == away.id:
        raise ValidationError("A team cannot play itself", team_id=home.id)
    start = as_utc(scheduled_start_time)
    if start is None:
        raise ValidationError("Kickoff time is required")

    ensure_season(db, season)
    game = Game(
        season=season,
        round_id=playoff_round.id,
        week_number=playoff_round.round_order,
        home_team_id=home.id,
        away_team_id=away.id,
        scheduled_start_time=start,
        status=GameStatus.SCHEDULED,
        is_locked=False,
        external_id=external_id,
    )
    try:
        with db.begin_nested():
            db.add(game)
            db.flush()
    except IntegrityError:
        raise ValidationError(
            f"{away.abbr}@{home.abbr} is already scheduled for {playoff_round.name} {season}",
            season=season,
        )

    AdminAction.log_action(
        db,
        "schedule_game",
        f"Scheduled {away.abbr}@{home.abbr} ({playoff_round.name} {season}) at {start.isoformat()}",
        actor,
        game_id=game.id,
        season=season,
        action_metadata={"external_id": external_id},
    )
    return game


def override_pick(
    db: Session,
    user_id: int,
    game_id: int,
    team_id: int,
    actor: str,
    reason: str,
    tiebreaker_guess: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Pick:
    """Set a user's pick regardless of lock state.

    The game stays locked throughout. If the game is already final the pick is
    rescored immediately.
    """
    now = as_utc(now) or utcnow()
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)
    game = _get_game(db, game_id)
    if team_id not in (game.home_team_id, game.away_team_id):
        raise ValidationError(f"Team {team_id} is not playing in game {game_id}", game_id=game_id, team_id=team_id)
    if game.week_number != FINAL_ROUND_ORDER:
        tiebreaker_guess = None

    pick = db.query(Pick).filter(Pick.user_id == user_id, Pick.game_id == game_id).first()
    old_team = pick.selected_team_id if pick else None
    if pick is None:
        pick = Pick(
            user_id=user_id,
            game_id=game.id,
            season=game.season,
            week_number=game.week_number,
            selected_team_id=team_id,
            points_earned=0,
        )
        db.add(pick)
    pick.selected_team_id = team_id
    pick.is_auto_pick = False
    pick.outcome = PickOutcome.PENDING
    pick.points_earned = 0
    if tiebreaker_guess is not None:
        pick.superbowl_total_points_guess = tiebreaker_guess
    if game.is_locked:
        pick.is_locked = True
        pick.locked_at = pick.locked_at or now
    db.flush()

    if game.status == GameStatus.FINAL:
        score_final_games(db, [game.id])
        db.refresh(pick)

    AdminAction.log_action(
        db,
        "override_pick",
        f"Set pick for user {user_id} on game {game_id} to team {team_id}: {reason}",
        actor,
        target_user_id=user_id,
        game_id=game.id,
        pick_id=pick.id,
        season=game.season,
        action_metadata={"old_team_id": old_team, "new_team_id": team_id, "reason": reason},
    )
    logger.info("Admin %s overrode pick %s (game %s, user %s)", actor, pick.id, game.id, user_id)
    return pick


def correct_game_result(
    db: Session,
    game_id: int,
    home_score: int,
    away_score: int,
    actor: str,
    reason: str,
    now: Optional[datetime] = None,
) -> BatchReport:
    """Record or correct a final score, then rescore every pick on the game."""
    now = as_utc(now) or utcnow()
    if home_score < 0 or away_score < 0:
        raise ValidationError("Scores must be zero or positive")
    if home_score == away_score:
        raise ValidationError("Playoff games cannot end tied", home_score=home_score, away_score=away_score)
    game = _get_game(db, game_id)
    old = {"status": game.status.value, "home_score": game.home_score, "away_score": game.away_score}

    game.status = GameStatus.FINAL
    game.home_score = home_score
    game.away_score = away_score
    game.winning_team_id = game.decide_winner()
    game.last_updated_at = now
    lock_game(db, game, now)
    db.flush()

    reopened = reopen_game_picks(db, game)
    report = score_final_games(db, [game.id])

    AdminAction.log_action(
        db,
        "correct_game_result",
        f"Set game {game.id} final {home_score}-{away_score}: {reason}",
        actor,
        game_id=game.id,
        season=game.season,
        action_metadata={"previous": old, "reopened_picks": reopened, "reason": reason},
    )
    logger.info("Admin %s corrected game %s to %s-%s; rescored %d picks", actor, game.id, home_score, away_score, report.created)
    return report


def force_lock_game(db: Session, game_id: int, actor: str, reason: str, now: Optional[datetime] = None) -> BatchReport:
    """Lock one game ahead of kickoff and backfill its missing picks."""
    now = as_utc(now) or utcnow()
    game = _get_game(db, game_id)
    changed = lock_game(db, game, now)
    report = backfill_auto_picks(db, [game.id], now=now)

    AdminAction.log_action(
        db,
        "force_lock",
        f"Locked game {game.id}: {reason}",
        actor,
        game_id=game.id,
        season=game.season,
        action_metadata={"was_locked": not changed, "auto_picks": report.created, "reason": reason},
    )
    return report


def reset_season(db: Session, season: int, actor: str, reason: str) -> dict:
    """Delete every pick and stat row for a season."""
    picks = db.execute(
        delete(Pick)
        .where(Pick.season == season)
        .returning(Pick.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    stats = db.execute(
        delete(UserStat)
        .where(UserStat.season == season)
        .returning(UserStat.id)
        .execution_options(synchronize_session="fetch")
    ).all()
    result = {"picks_deleted": len(picks), "stats_deleted": len(stats)}

    AdminAction.log_action(
        db,
        "reset_season",
        f"Reset season {season}: {reason}",
        actor,
        season=season,
        action_metadata={**result, "reason": reason},
    )
    logger.warning("Admin %s reset season %s: %s", actor, season, result)
    return result


def recent_actions(db: Session, season: Optional[int] = None, limit: int = 50) -> list[AdminAction]:
    q = db.query(AdminAction)
    if season is not None:
        q = q.filter(or_(AdminAction.season == season, AdminAction.season.is_(None)))
    return q.order_by(AdminAction.created_at.desc(), AdminAction.id.desc()).limit(limit).all()
