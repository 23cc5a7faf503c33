from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from playoff_pickem.db.session import get_db
from playoff_pickem.schemas import (
    DistributionOut,
    GameOut,
    PickIn,
    PickOut,
    StandingOut,
    WeeklyPickCountOut,
)
from playoff_pickem.services import picks as picks_service
from playoff_pickem.services.standings import get_standings, weekly_pick_counts

router = APIRouter(prefix="/api", tags=["pickem"])
logger = logging.getLogger(__name__)


@router.get("/seasons/{season}/standings", response_model=List[StandingOut])
def standings(season: int, db: Session = Depends(get_db)):
    out = []
    for row in get_standings(db, season):
        t = row.totals
        out.append(
            StandingOut(
                rank=row.rank,
                user_id=row.user_id,
                username=row.username,
                display_name=row.display_name,
                total_points=t.total_points,
                total_correct_picks=t.total_correct_picks,
                total_incorrect_picks=t.total_incorrect_picks,
                total_pending_picks=t.total_pending_picks,
                correct_by_round=t.correct_by_round,
                tiebreaker_difference=t.tiebreaker_difference,
            )
        )
    return out


@router.get("/seasons/{season}/games", response_model=List[GameOut])
def games(season: int, week: Optional[int] = None, db: Session = Depends(get_db)):
    return picks_service.get_games(db, season, week)


@router.get("/seasons/{season}/users/{user_id}/picks", response_model=List[PickOut])
def user_picks(season: int, user_id: int, week: Optional[int] = None, db: Session = Depends(get_db)):
    return picks_service.get_picks_for(db, user_id, season, week)


@router.post("/picks", response_model=PickOut)
def submit_pick(body: PickIn, db: Session = Depends(get_db)):
    pick = picks_service.submit_pick(db, body.user_id, body.game_id, body.team_id, body.tiebreaker_guess)
    db.commit()
    return pick


@router.get("/seasons/{season}/weeks/{week}/pick-counts", response_model=List[WeeklyPickCountOut])
def pick_counts(season: int, week: int, db: Session = Depends(get_db)):
    return weekly_pick_counts(db, season, week)


@router.get("/games/{game_id}/distribution", response_model=DistributionOut)
def distribution(game_id: int, db: Session = Depends(get_db)):
    return picks_service.pick_distribution(db, game_id)
