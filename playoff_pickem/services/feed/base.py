from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from playoff_pickem.models.game import GameStatus


@dataclass(frozen=True)
class GameRef:
    """What the feed needs to know to find one of our games."""

    game_id: int
    home_abbr: str
    away_abbr: str
    scheduled_start_time: datetime  # must be timezone-aware UTC
    external_id: Optional[str] = None


@dataclass(frozen=True)
class GameUpdate:
    """Canonical game state reported by a provider."""

    external_id: str
    status: GameStatus
    home_score: Optional[int]
    away_score: Optional[int]
    period: Optional[int] = None
    clock: Optional[str] = None
    game_id: Optional[int] = None  # GameRef.game_id this update was matched to


class ScoreFeed:
    """Abstract provider interface for fetching live game state.

    Implementations must not write to storage. Refs the provider has no data
    for are omitted from the result; malformed records are skipped.
    """

    def name(self) -> str:
        raise NotImplementedError

    def fetch_updates_for(self, refs: Sequence[GameRef]) -> List[GameUpdate]:
        raise NotImplementedError
