from __future__ import annotations

import logging
import time
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from playoff_pickem.core.config import get_settings
from playoff_pickem.core.errors import FeedUnavailableError
from playoff_pickem.models.game import GameStatus
from playoff_pickem.services.seed import NFL_TEAMS
from .base import GameRef, GameUpdate, ScoreFeed

logger = logging.getLogger(__name__)

ESPN_SCOREBOARD_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl/scoreboard"
POSTSEASON = 3  # ESPN seasontype: 1=Preseason, 2=Regular, 3=Postseason

# Provider spellings -> our canonical abbreviations, from the seeded team list
TEAM_ABBR_ALIASES: Dict[str, str] = {alt: t.abbr for t in NFL_TEAMS for alt in (t.alt_abbrs or [])}

_POSTPONED_NAMES = {"STATUS_POSTPONED", "STATUS_SUSPENDED", "STATUS_DELAYED"}
_CANCELLED_NAMES = {"STATUS_CANCELED", "STATUS_CANCELLED", "STATUS_FORFEIT"}


def normalize_abbr(abbr: Optional[str]) -> str:
    a = (abbr or "").strip().upper()
    return TEAM_ABBR_ALIASES.get(a, a)


def map_espn_status(state: Optional[str], type_name: Optional[str]) -> GameStatus:
    name = (type_name or "").upper()
    # Postponed/cancelled events report state "post", so check names first
    if name in _POSTPONED_NAMES:
        return GameStatus.POSTPONED
    if name in _CANCELLED_NAMES:
        return GameStatus.CANCELLED
    s = (state or "").lower()
    if s == "in":
        return GameStatus.IN_PROGRESS
    if s == "post":
        return GameStatus.FINAL
    return GameStatus.SCHEDULED


@dataclass
class _Event:
    external_id: str
    home_abbr: str
    away_abbr: str
    status: GameStatus
    home_score: Optional[int]
    away_score: Optional[int]
    period: Optional[int]
    clock: Optional[str]


class ESPNScoreboardFeed(ScoreFeed):
    """ESPN public scoreboard-based feed.

    - One request per calendar date, issued sequentially with a pause between
      requests; each request has a bounded timeout.
    - A game is looked up on its UTC kickoff date and the day before, since
      evening kickoffs in US time land on the next UTC date.
    - Matching prefers the stored ESPN event id and falls back to the
      home/away abbreviations (also tried swapped).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        request_delay: Optional[float] = None,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings = get_settings()
        self._base = base_url or settings.FEED_API_BASE or ESPN_SCOREBOARD_URL
        self._timeout = settings.FEED_TIMEOUT_SECONDS if timeout is None else timeout
        self._delay = settings.FEED_REQUEST_DELAY_SECONDS if request_delay is None else request_delay
        self._client = client
        self._sleep = sleep

    def name(self) -> str:
        return "espn"

    def fetch_updates_for(self, refs: Sequence[GameRef]) -> List[GameUpdate]:
        if not refs:
            return []

        days = sorted({d for ref in refs for d in _candidate_dates(ref)})
        raw_events: List[dict] = []
        failures = 0
        last_exc: Optional[Exception] = None
        client_ctx = nullcontext(self._client) if self._client is not None else httpx.Client(timeout=self._timeout)
        with client_ctx as client:
            for i, day in enumerate(days):
                if i and self._delay > 0:
                    self._sleep(self._delay)
                try:
                    raw_events.extend(self._fetch_day(client, day))
                except FeedUnavailableError as e:
                    failures += 1
                    last_exc = e
                    logger.warning("ESPN scoreboard fetch failed for %s: %s", day.isoformat(), e)

        if failures == len(days):
            raise FeedUnavailableError(f"ESPN scoreboard unavailable for all {failures} dates: {last_exc}")

        by_id: Dict[str, _Event] = {}
        for ev in raw_events:
            try:
                parsed = _parse_event(ev)
            except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
                logger.debug("Skipping ESPN event due to parse error: %s", e)
                continue
            by_id[parsed.external_id] = parsed

        updates: List[GameUpdate] = []
        for ref in refs:
            upd = _match(ref, by_id)
            if upd is None:
                logger.debug("No ESPN match for %s@%s", ref.away_abbr, ref.home_abbr)
                continue
            updates.append(upd)
        return updates

    def _fetch_day(self, client: httpx.Client, day: date) -> List[dict]:
        params = {"dates": day.strftime("%Y%m%d"), "seasontype": str(POSTSEASON)}
        try:
            resp = client.get(self._base, params=params, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise FeedUnavailableError(f"timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            raise FeedUnavailableError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FeedUnavailableError(f"transport error: {e}") from e
        except ValueError as e:
            raise FeedUnavailableError("malformed body (not JSON)") from e

        if not isinstance(data, dict) or not isinstance(data.get("events", []), list):
            raise FeedUnavailableError("malformed body (no events list)")
        events = data.get("events") or []
        logger.debug("ESPN scoreboard params=%s returned %d events", params, len(events))
        return events


def _candidate_dates(ref: GameRef) -> List[date]:
    d = ref.scheduled_start_time.date()
    return [d - timedelta(days=1), d]


def _parse_score(raw) -> Optional[int]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        raw = raw.get("value", raw.get("displayValue"))
    return int(float(raw))


def _parse_event(ev: dict) -> _Event:
    external_id = str(ev["id"])
    comp = ev["competitions"][0]
    status = comp.get("status") or ev.get("status") or {}
    stype = status.get("type") or {}
    game_status = map_espn_status(stype.get("state"), stype.get("name"))

    home = away = None
    for c in comp["competitors"]:
        if c.get("homeAway") == "home":
            home = c
        elif c.get("homeAway") == "away":
            away = c
    if home is None or away is None:
        raise ValueError(f"event {external_id} lacks home/away competitors")

    home_abbr = normalize_abbr(home["team"]["abbreviation"])
    away_abbr = normalize_abbr(away["team"]["abbreviation"])
    if not home_abbr or not away_abbr:
        raise ValueError(f"event {external_id} lacks team abbreviations")

    if game_status == GameStatus.SCHEDULED:
        return _Event(external_id, home_abbr, away_abbr, game_status, None, None, None, None)

    home_score = _parse_score(home.get("score"))
    away_score = _parse_score(away.get("score"))
    if game_status in (GameStatus.IN_PROGRESS, GameStatus.FINAL) and (home_score is None or away_score is None):
        raise ValueError(f"event {external_id} is {game_status.value} without scores")

    period = status.get("period")
    return _Event(
        external_id=external_id,
        home_abbr=home_abbr,
        away_abbr=away_abbr,
        status=game_status,
        home_score=home_score,
        away_score=away_score,
        period=int(period) if isinstance(period, (int, float)) else None,
        clock=status.get("displayClock"),
    )


def _match(ref: GameRef, by_id: Dict[str, _Event]) -> Optional[GameUpdate]:
    ev = by_id.get(ref.external_id) if ref.external_id else None
    home = normalize_abbr(ref.home_abbr)
    away = normalize_abbr(ref.away_abbr)
    swapped = False
    if ev is None:
        for cand in by_id.values():
            if cand.home_abbr == home and cand.away_abbr == away:
                ev = cand
                break
            if cand.home_abbr == away and cand.away_abbr == home:
                ev = cand
                swapped = True
                break
    elif ev.home_abbr == away and ev.away_abbr == home:
        swapped = True
    if ev is None:
        return None

    return GameUpdate(
        external_id=ev.external_id,
        status=ev.status,
        home_score=ev.away_score if swapped else ev.home_score,
        away_score=ev.home_score if swapped else ev.away_score,
        period=ev.period,
        clock=ev.clock,
        game_id=ref.game_id,
    )
