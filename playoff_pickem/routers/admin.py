from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from playoff_pickem.db.session import get_db
from playoff_pickem.deps.auth import require_admin
from playoff_pickem.models import AdminAction
from playoff_pickem.schemas import (
    AdminActionOut,
    BatchReportOut,
    GameOut,
    GameResultIn,
    OverridePickIn,
    PickOut,
    ReasonIn,
    ScheduleGameIn,
    UserIn,
    UserOut,
)
from playoff_pickem.services import admin as admin_service
from playoff_pickem.services.scheduler import JOBS, run_job
from playoff_pickem.services.seed import ensure_season

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.post("/users", response_model=UserOut)
def create_user(body: UserIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    user = admin_service.register_user(db, body.username, body.display_name)
    db.commit()
    logger.info("Admin %s added user %s", actor, user.username)
    return user


@router.post("/seasons/{season}")
def activate_season(season: int, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    row = ensure_season(db, season)
    row.is_active = True
    db.commit()
    return {"season": row.year, "is_active": row.is_active}


@router.post("/games", response_model=GameOut)
def schedule_game(body: ScheduleGameIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    game = admin_service.schedule_game(
        db,
        season=body.season,
        round_order=body.week_number,
        home_abbr=body.home_abbr,
        away_abbr=body.away_abbr,
        scheduled_start_time=body.scheduled_start_time,
        actor=actor,
        external_id=body.external_id,
    )
    db.commit()
    return game


@router.post("/picks/override", response_model=PickOut)
def override_pick(body: OverridePickIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    pick = admin_service.override_pick(
        db, body.user_id, body.game_id, body.team_id, actor, body.reason, tiebreaker_guess=body.tiebreaker_guess
    )
    db.commit()
    return pick


@router.post("/games/{game_id}/result", response_model=BatchReportOut)
def correct_result(
    game_id: int, body: GameResultIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)
):
    report = admin_service.correct_game_result(db, game_id, body.home_score, body.away_score, actor, body.reason)
    db.commit()
    return report.as_dict()


@router.post("/games/{game_id}/lock", response_model=BatchReportOut)
def force_lock(game_id: int, body: ReasonIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    report = admin_service.force_lock_game(db, game_id, actor, body.reason)
    db.commit()
    return report.as_dict()


@router.post("/seasons/{season}/reset")
def reset_season(season: int, body: ReasonIn, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    result = admin_service.reset_season(db, season, actor, body.reason)
    db.commit()
    return result


@router.post("/jobs/{name}")
def trigger_job(name: str, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    if name not in JOBS:
        raise HTTPException(status_code=404, detail=f"Unknown job '{name}'")
    result = run_job(name, db)
    AdminAction.log_action(db, "run_job", f"Ran job {name}", actor, action_metadata={"job": name})
    db.commit()
    return {"job": name, "result": result}


@router.get("/actions", response_model=List[AdminActionOut])
def list_actions(
    season: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    actor: str = Depends(require_admin),
):
    return admin_service.recent_actions(db, season=season, limit=min(max(limit, 1), 500))
