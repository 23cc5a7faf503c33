from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .base import GameRef, GameUpdate, ScoreFeed


class StaticScoreFeed(ScoreFeed):
    """Offline provider serving updates registered in memory.

    Keyed by GameRef.game_id. With nothing registered it reports nothing, which
    leaves every game at its last known state.
    """

    def __init__(self, updates: Optional[Dict[int, GameUpdate]] = None) -> None:
        self._updates: Dict[int, GameUpdate] = dict(updates or {})

    def name(self) -> str:
        return "static"

    def set_update(self, game_id: int, update: GameUpdate) -> None:
        self._updates[game_id] = update

    def fetch_updates_for(self, refs: Sequence[GameRef]) -> List[GameUpdate]:
        out: List[GameUpdate] = []
        for ref in refs:
            upd = self._updates.get(ref.game_id)
            if upd is None:
                continue
            out.append(
                GameUpdate(
                    external_id=upd.external_id,
                    status=upd.status,
                    home_score=upd.home_score,
                    away_score=upd.away_score,
                    period=upd.period,
                    clock=upd.clock,
                    game_id=ref.game_id,
                )
            )
        return out
