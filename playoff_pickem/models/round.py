from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from playoff_pickem.db.session import Base


# slug, name, points per correct pick, order (== week number)
PLAYOFF_ROUNDS = (
    ("wild_card", "Wild Card", 2, 1),
    ("divisional", "Divisional", 3, 2),
    ("conference", "Conference", 4, 3),
    ("super_bowl", "Super Bowl", 5, 4),
)
FINAL_ROUND_ORDER = 4
ROUND_SLUG_BY_WEEK = {order: slug for slug, _, _, order in PLAYOFF_ROUNDS}


class PlayoffRound(Base):
    __tablename__ = "playoff_rounds"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(40))
    points_per_correct_pick: Mapped[int] = mapped_column(Integer)
    round_order: Mapped[int] = mapped_column(Integer, unique=True)

    @property
    def is_final_round(self) -> bool:
        return self.round_order == FINAL_ROUND_ORDER
