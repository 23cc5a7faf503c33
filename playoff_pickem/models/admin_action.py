from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, Session, mapped_column

from playoff_pickem.db.session import Base


class AdminAction(Base):
    __tablename__ = "admin_actions"
    __table_args__ = (
        Index("idx_admin_action_type", "action_type"),
        Index("idx_admin_action_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # 'override_pick', 'correct_game_result', 'force_lock', 'reset_season', 'run_job'
    action_type: Mapped[str] = mapped_column(String(50))
    description: Mapped[str] = mapped_column(String(500))
    actor: Mapped[str] = mapped_column(String(100))

    target_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    game_id: Mapped[Optional[int]] = mapped_column(ForeignKey("games.id", ondelete="SET NULL"), nullable=True)
    pick_id: Mapped[Optional[int]] = mapped_column(ForeignKey("picks.id", ondelete="SET NULL"), nullable=True)
    season: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    action_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @staticmethod
    def log_action(
        db: Session,
        action_type: str,
        description: str,
        actor: str,
        target_user_id: Optional[int] = None,
        game_id: Optional[int] = None,
        pick_id: Optional[int] = None,
        season: Optional[int] = None,
        action_metadata: Optional[dict[str, Any]] = None,
    ) -> "AdminAction":
        action = AdminAction(
            action_type=action_type,
            description=description,
            actor=actor,
            target_user_id=target_user_id,
            game_id=game_id,
            pick_id=pick_id,
            season=season,
            action_metadata=action_metadata or {},
        )
        db.add(action)
        return action
