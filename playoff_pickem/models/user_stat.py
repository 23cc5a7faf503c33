from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from playoff_pickem.db.session import Base


class UserStat(Base):
    """Per-season totals derived from picks. Recomputable at any time."""

    __tablename__ = "user_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "season", name="uq_user_stat_season"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    season: Mapped[int] = mapped_column(Integer, index=True)

    total_points: Mapped[int] = mapped_column(Integer, default=0)
    total_correct_picks: Mapped[int] = mapped_column(Integer, default=0)
    total_incorrect_picks: Mapped[int] = mapped_column(Integer, default=0)
    total_pending_picks: Mapped[int] = mapped_column(Integer, default=0)
    wildcard_correct: Mapped[int] = mapped_column(Integer, default=0)
    divisional_correct: Mapped[int] = mapped_column(Integer, default=0)
    conference_correct: Mapped[int] = mapped_column(Integer, default=0)
    superbowl_correct: Mapped[int] = mapped_column(Integer, default=0)
    tiebreaker_difference: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    last_calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship()
