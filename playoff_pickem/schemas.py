from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from playoff_pickem.models import GameStatus, PickOutcome


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TeamOut(ORMModel):
    id: int
    abbr: str
    name: str
    location: str
    conference: Optional[str] = None


class GameOut(ORMModel):
    id: int
    season: int
    week_number: int
    external_id: Optional[str] = None
    home_team: TeamOut
    away_team: TeamOut
    scheduled_start_time: datetime
    actual_start_time: Optional[datetime] = None
    status: GameStatus
    is_locked: bool
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    winning_team_id: Optional[int] = None
    period: Optional[int] = None
    clock: Optional[str] = None


class PickOut(ORMModel):
    id: int
    user_id: int
    game_id: int
    season: int
    week_number: int
    selected_team_id: int
    is_auto_pick: bool
    is_locked: bool
    outcome: PickOutcome
    is_correct: Optional[bool] = None
    points_earned: int
    superbowl_total_points_guess: Optional[int] = None
    updated_at: Optional[datetime] = None


class PickIn(BaseModel):
    user_id: int
    game_id: int
    team_id: int
    tiebreaker_guess: Optional[int] = Field(default=None, ge=0)


class StandingOut(BaseModel):
    rank: int
    user_id: int
    username: str
    display_name: str
    total_points: int
    total_correct_picks: int
    total_incorrect_picks: int
    total_pending_picks: int
    correct_by_round: Dict[str, int]
    tiebreaker_difference: Optional[int] = None


class WeeklyPickCountOut(ORMModel):
    rank: int
    user_id: int
    username: str
    display_name: str
    picks_made: int
    correct_picks: int
    incorrect_picks: int
    pending_picks: int
    total_points: int


class DistributionOut(ORMModel):
    game_id: int
    home_team_id: int
    away_team_id: int
    home_picks: int
    away_picks: int
    auto_picks: int


# Admin

class OverridePickIn(BaseModel):
    user_id: int
    game_id: int
    team_id: int
    reason: str = Field(min_length=1)
    tiebreaker_guess: Optional[int] = Field(default=None, ge=0)


class GameResultIn(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    reason: str = Field(min_length=1)


class ReasonIn(BaseModel):
    reason: str = Field(min_length=1)


class ScheduleGameIn(BaseModel):
    season: int
    week_number: int
    home_abbr: str
    away_abbr: str
    scheduled_start_time: datetime
    external_id: Optional[str] = None


class UserIn(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    display_name: Optional[str] = Field(default=None, max_length=100)


class UserOut(ORMModel):
    id: int
    username: str
    display_name: Optional[str] = None


class AdminActionOut(ORMModel):
    id: int
    action_type: str
    description: str
    actor: str
    target_user_id: Optional[int] = None
    game_id: Optional[int] = None
    pick_id: Optional[int] = None
    season: Optional[int] = None
    action_metadata: Optional[dict] = None
    created_at: datetime


class BatchReportOut(BaseModel):
    succeeded: int
    skipped: int
    errored: int
    created: int
    item_ids: List[int]
