from __future__ import annotations

import json
from typing import List, Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from playoff_pickem.db.session import Base


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    abbr: Mapped[str] = mapped_column(String(8), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(80))
    location: Mapped[str] = mapped_column(String(80))
    conference: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    alt_abbrs: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON string of alt abbreviations

    def alt_abbreviations(self) -> List[str]:
        if not self.alt_abbrs:
            return []
        try:
            return list(json.loads(self.alt_abbrs))
        except ValueError:
            return []

    @property
    def display_name(self) -> str:
        return f"{self.location} {self.name}"
