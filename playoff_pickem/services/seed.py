from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from playoff_pickem.models import PlayoffRound, Season, Team
from playoff_pickem.models.round import PLAYOFF_ROUNDS

logger = logging.getLogger(__name__)


@dataclass
class TeamSeed:
    abbr: str
    name: str
    location: str
    conference: str
    alt_abbrs: Optional[List[str]] = None


NFL_TEAMS: List[TeamSeed] = [
    TeamSeed("ARI", "Cardinals", "Arizona", "NFC", alt_abbrs=["ARZ"]),
    TeamSeed("ATL", "Falcons", "Atlanta", "NFC"),
    TeamSeed("BAL", "Ravens", "Baltimore", "AFC"),
    TeamSeed("BUF", "Bills", "Buffalo", "AFC"),
    TeamSeed("CAR", "Panthers", "Carolina", "NFC"),
    TeamSeed("CHI", "Bears", "Chicago", "NFC"),
    TeamSeed("CIN", "Bengals", "Cincinnati", "AFC"),
    TeamSeed("CLE", "Browns", "Cleveland", "AFC"),
    TeamSeed("DAL", "Cowboys", "Dallas", "NFC"),
    TeamSeed("DEN", "Broncos", "Denver", "AFC"),
    TeamSeed("DET", "Lions", "Detroit", "NFC"),
    TeamSeed("GB", "Packers", "Green Bay", "NFC", alt_abbrs=["GNB"]),
    TeamSeed("HOU", "Texans", "Houston", "AFC"),
    TeamSeed("IND", "Colts", "Indianapolis", "AFC"),
    TeamSeed("JAX", "Jaguars", "Jacksonville", "AFC", alt_abbrs=["JAC"]),
    TeamSeed("KC", "Chiefs", "Kansas City", "AFC", alt_abbrs=["KAN"]),
    TeamSeed("LAC", "Chargers", "Los Angeles", "AFC", alt_abbrs=["SD"]),
    TeamSeed("LAR", "Rams", "Los Angeles", "NFC", alt_abbrs=["LA", "STL"]),
    TeamSeed("LV", "Raiders", "Las Vegas", "AFC", alt_abbrs=["OAK"]),
    TeamSeed("MIA", "Dolphins", "Miami", "AFC"),
    TeamSeed("MIN", "Vikings", "Minnesota", "NFC"),
    TeamSeed("NE", "Patriots", "New England", "AFC", alt_abbrs=["NWE"]),
    TeamSeed("NO", "Saints", "New Orleans", "NFC", alt_abbrs=["NOR"]),
    TeamSeed("NYG", "Giants", "New York", "NFC"),
    TeamSeed("NYJ", "Jets", "New York", "AFC"),
    TeamSeed("PHI", "Eagles", "Philadelphia", "NFC"),
    TeamSeed("PIT", "Steelers", "Pittsburgh", "AFC"),
    TeamSeed("SEA", "Seahawks", "Seattle", "NFC"),
    TeamSeed("SF", "49ers", "San Francisco", "NFC", alt_abbrs=["SFO"]),
    TeamSeed("TB", "Buccaneers", "Tampa Bay", "NFC", alt_abbrs=["TAM"]),
    TeamSeed("TEN", "Titans", "Tennessee", "AFC"),
    TeamSeed("WAS", "Commanders", "Washington", "NFC", alt_abbrs=["WSH"]),
]


def seed_rounds(db: Session) -> int:
    """Insert missing playoff rounds. Existing rows are left untouched."""
    existing = {r.slug for r in db.query(PlayoffRound).all()}
    inserted = 0
    for slug, name, points, order in PLAYOFF_ROUNDS:
        if slug in existing:
            continue
        db.add(PlayoffRound(slug=slug, name=name, points_per_correct_pick=points, round_order=order))
        inserted += 1
    db.flush()
    return inserted


def seed_teams(db: Session, teams: Optional[List[TeamSeed]] = None) -> Tuple[int, int]:
    """Insert missing teams. Returns (inserted, skipped)."""
    existing = {t.abbr.upper() for t in db.query(Team).all()}
    inserted = 0
    skipped = 0
    for ts in teams or NFL_TEAMS:
        abbr = ts.abbr.upper()
        if abbr in existing:
            skipped += 1
            continue
        db.add(
            Team(
                abbr=abbr,
                name=ts.name,
                location=ts.location,
                conference=ts.conference,
                alt_abbrs=json.dumps(ts.alt_abbrs or []),
            )
        )
        inserted += 1
    db.flush()
    return inserted, skipped


def ensure_season(db: Session, year: int, is_active: bool = True) -> Season:
    season = db.query(Season).filter(Season.year == year).first()
    if season is None:
        season = Season(year=year, is_active=is_active)
        db.add(season)
        db.flush()
    return season


def seed_reference_data(db: Session) -> None:
    rounds = seed_rounds(db)
    teams, _ = seed_teams(db)
    if rounds or teams:
        logger.info("Seeded %d playoff rounds and %d teams", rounds, teams)
