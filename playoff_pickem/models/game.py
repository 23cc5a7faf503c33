from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from playoff_pickem.core.timeutil import as_utc
from playoff_pickem.db.session import Base


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


STARTED_STATUSES = (GameStatus.IN_PROGRESS, GameStatus.FINAL)


class Game(Base):
    __tablename__ = "games"
    __table_args__ = (
        UniqueConstraint("season", "home_team_id", "away_team_id", "round_id", name="uq_game_matchup"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    season: Mapped[int] = mapped_column(Integer, index=True)
    round_id: Mapped[int] = mapped_column(ForeignKey("playoff_rounds.id"), index=True)
    week_number: Mapped[int] = mapped_column(Integer, index=True)

    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), index=True)
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), index=True)

    scheduled_start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    actual_start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[GameStatus] = mapped_column(SAEnum(GameStatus), default=GameStatus.SCHEDULED)

    is_locked: Mapped[bool] = mapped_column(default=False, index=True)
    locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # Set once the roster has been backfilled; the periodic sweep skips these
    auto_picks_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    home_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    winning_team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    # Display only
    period: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    clock: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    round: Mapped["PlayoffRound"] = relationship()
    home_team: Mapped["Team"] = relationship(foreign_keys=[home_team_id])
    away_team: Mapped["Team"] = relationship(foreign_keys=[away_team_id])

    @property
    def start_time_utc(self) -> datetime:
        return as_utc(self.scheduled_start_time)

    def has_kicked_off(self, now: datetime) -> bool:
        return now >= self.start_time_utc

    def is_open_for_picks(self, now: datetime) -> bool:
        return not self.is_locked and not self.has_kicked_off(now)

    def decide_winner(self) -> Optional[int]:
        """Winner per the stored scores; None unless final with differing scores."""
        if self.status != GameStatus.FINAL or self.home_score is None or self.away_score is None:
            return None
        if self.home_score > self.away_score:
            return self.home_team_id
        if self.away_score > self.home_score:
            return self.away_team_id
        return None

    @property
    def matchup(self) -> str:
        away = self.away_team.abbr if self.away_team else str(self.away_team_id)
        home = self.home_team.abbr if self.home_team else str(self.home_team_id)
        return f"{away}@{home}"
