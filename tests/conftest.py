"""Shared pytest fixtures for the playoff_pickem test suite.

Every test gets a fresh in-memory SQLite database seeded with the four
playoff rounds and the 32 NFL teams. Settings are pinned through PICKEMS_*
environment variables before the package is imported.
"""

from __future__ import annotations

import os

os.environ.setdefault("PICKEMS_DATABASE_URL", "sqlite://")
os.environ.setdefault("PICKEMS_ENABLE_SCHEDULER", "false")
os.environ.setdefault("PICKEMS_FEED_PROVIDER", "static")
os.environ.setdefault("PICKEMS_ENV", "test")

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from playoff_pickem import models  # noqa: F401
from playoff_pickem.db.session import Base, enable_sqlite_savepoints
from playoff_pickem.models import Game, GameStatus, PlayoffRound, Team, User
from playoff_pickem.services.seed import ensure_season, seed_rounds, seed_teams

SEASON = 2024
# Saturday of Wild Card weekend, 4:30pm ET
WILD_CARD_KICKOFF = datetime(2025, 1, 11, 21, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    """Session over a database holding rounds, teams and the test season."""
    session = session_factory()
    seed_rounds(session)
    seed_teams(session)
    ensure_season(session, SEASON)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def team(db) -> Callable[[str], Team]:
    def _team(abbr: str) -> Team:
        return db.query(Team).filter(Team.abbr == abbr).one()

    return _team


@pytest.fixture
def users(db) -> list[User]:
    """Three pool members: alice, bob, carol."""
    rows = [User(username=name, display_name=name.title()) for name in ("alice", "bob", "carol")]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def make_game(db, team) -> Callable[..., Game]:
    """Factory for games; defaults to a Wild Card game at WILD_CARD_KICKOFF."""

    def _make(
        home: str = "KC",
        away: str = "BUF",
        week: int = 1,
        start: Optional[datetime] = None,
        season: int = SEASON,
        status: GameStatus = GameStatus.SCHEDULED,
        external_id: Optional[str] = None,
        **fields,
    ) -> Game:
        playoff_round = db.query(PlayoffRound).filter(PlayoffRound.round_order == week).one()
        game = Game(
            season=season,
            round_id=playoff_round.id,
            week_number=week,
            home_team_id=team(home).id,
            away_team_id=team(away).id,
            scheduled_start_time=start or WILD_CARD_KICKOFF,
            status=status,
            is_locked=False,
            external_id=external_id,
            **fields,
        )
        db.add(game)
        db.commit()
        return game

    return _make


@pytest.fixture
def before_kickoff() -> datetime:
    return WILD_CARD_KICKOFF - timedelta(hours=2)


@pytest.fixture
def after_kickoff() -> datetime:
    return WILD_CARD_KICKOFF + timedelta(minutes=1)
