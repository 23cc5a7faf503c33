from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from playoff_pickem.db.session import Base


class PickOutcome(str, Enum):
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class Pick(Base):
    __tablename__ = "picks"
    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_pick_user_game"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id", ondelete="CASCADE"), index=True)
    # Denormalized from the game
    season: Mapped[int] = mapped_column(Integer, index=True)
    week_number: Mapped[int] = mapped_column(Integer, index=True)

    selected_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), index=True)
    is_auto_pick: Mapped[bool] = mapped_column(default=False)
    is_locked: Mapped[bool] = mapped_column(default=False)
    locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    outcome: Mapped[PickOutcome] = mapped_column(SAEnum(PickOutcome), default=PickOutcome.PENDING, index=True)
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    superbowl_total_points_guess: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship(back_populates="picks")
    game: Mapped["Game"] = relationship()

    @property
    def is_correct(self) -> Optional[bool]:
        if self.outcome == PickOutcome.CORRECT:
            return True
        if self.outcome == PickOutcome.INCORRECT:
            return False
        return None

    @property
    def is_pending(self) -> bool:
        return self.outcome == PickOutcome.PENDING
