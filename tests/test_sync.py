"""Tests for writing feed updates onto games."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import WILD_CARD_KICKOFF

from playoff_pickem.core.errors import FeedUnavailableError
from playoff_pickem.models import GameStatus, SyncLog
from playoff_pickem.services.feed.base import GameUpdate, ScoreFeed
from playoff_pickem.services.feed.static import StaticScoreFeed
from playoff_pickem.services.sync import apply_game_update, sync_scores


class _DownFeed(ScoreFeed):
    def name(self) -> str:
        return "down"

    def fetch_updates_for(self, refs):
        raise FeedUnavailableError("timeout")


def _update(status: GameStatus, home=None, away=None, **kw) -> GameUpdate:
    return GameUpdate(external_id="401", status=status, home_score=home, away_score=away, **kw)


class TestApplyGameUpdate:
    def test_in_progress_locks_and_sets_scores(self, db, make_game, after_kickoff) -> None:
        game = make_game()
        became_final = apply_game_update(game, _update(GameStatus.IN_PROGRESS, 7, 3, period=1, clock="5:00"), after_kickoff)

        assert became_final is False
        assert game.status == GameStatus.IN_PROGRESS
        assert (game.home_score, game.away_score) == (7, 3)
        assert game.is_locked
        assert game.actual_start_time == after_kickoff
        assert game.winning_team_id is None
        assert game.external_id == "401"

    def test_final_sets_winner(self, db, make_game, after_kickoff) -> None:
        game = make_game()
        assert apply_game_update(game, _update(GameStatus.FINAL, 17, 24), after_kickoff) is True
        assert game.winning_team_id == game.away_team_id

    def test_live_status_before_kickoff_is_ignored(self, db, make_game, before_kickoff) -> None:
        game = make_game()
        apply_game_update(game, _update(GameStatus.IN_PROGRESS, 7, 0), before_kickoff)
        assert game.status == GameStatus.SCHEDULED
        assert game.home_score is None
        assert not game.is_locked

    def test_final_without_scores_is_ignored(self, db, make_game, after_kickoff) -> None:
        game = make_game()
        assert apply_game_update(game, _update(GameStatus.FINAL), after_kickoff) is False
        assert game.status == GameStatus.SCHEDULED
        assert not game.is_locked

    @pytest.mark.parametrize("status", [GameStatus.SCHEDULED, GameStatus.POSTPONED])
    def test_live_game_does_not_fall_back(self, db, make_game, after_kickoff, status) -> None:
        game = make_game()
        apply_game_update(game, _update(GameStatus.IN_PROGRESS, 14, 10, period=2, clock="1:10"), after_kickoff)

        assert apply_game_update(game, _update(status), after_kickoff + timedelta(minutes=5)) is False
        assert game.status == GameStatus.IN_PROGRESS
        assert (game.home_score, game.away_score, game.clock) == (14, 10, "1:10")

    def test_final_game_is_left_alone(self, db, make_game, after_kickoff) -> None:
        game = make_game(status=GameStatus.FINAL, home_score=30, away_score=20)
        assert apply_game_update(game, _update(GameStatus.FINAL, 0, 0), after_kickoff) is False
        assert (game.home_score, game.away_score) == (30, 20)


class TestSyncScores:
    def test_updates_due_games(self, db, make_game, after_kickoff) -> None:
        game = make_game()
        far = make_game(home="DET", away="MIN", week=2, start=WILD_CARD_KICKOFF + timedelta(days=7))
        feed = StaticScoreFeed({game.id: _update(GameStatus.FINAL, 31, 10), far.id: _update(GameStatus.SCHEDULED)})

        report = sync_scores(db, feed, now=after_kickoff)

        assert report.updated == 1
        assert report.finalized_game_ids == [game.id]
        assert report.status == "success"
        assert game.status == GameStatus.FINAL
        assert far.status == GameStatus.SCHEDULED
        log = db.query(SyncLog).one()
        assert (log.provider, log.status, log.records_updated) == ("static", "success", 1)

    def test_missing_update_counts_as_skipped(self, db, make_game, after_kickoff) -> None:
        make_game()
        report = sync_scores(db, StaticScoreFeed(), now=after_kickoff)
        assert (report.updated, report.skipped) == (0, 1)

    def test_final_without_scores_waits_for_the_real_score(self, db, make_game, after_kickoff) -> None:
        game = make_game()
        feed = StaticScoreFeed({game.id: _update(GameStatus.FINAL)})

        first = sync_scores(db, feed, now=after_kickoff + timedelta(hours=3))
        assert (first.updated, first.skipped) == (0, 1)
        assert game.status == GameStatus.SCHEDULED
        assert game.winning_team_id is None

        feed.set_update(game.id, _update(GameStatus.FINAL, 24, 17))
        second = sync_scores(db, feed, now=after_kickoff + timedelta(hours=3, minutes=2))
        assert second.finalized_game_ids == [game.id]
        assert game.winning_team_id == game.home_team_id

    def test_feed_outage_keeps_last_known_state(self, db, make_game, after_kickoff) -> None:
        game = make_game(status=GameStatus.IN_PROGRESS, home_score=14, away_score=7)

        report = sync_scores(db, _DownFeed(), now=after_kickoff)

        assert report.status == "failed"
        assert report.skipped == 1
        assert (game.status, game.home_score, game.away_score) == (GameStatus.IN_PROGRESS, 14, 7)
        assert db.query(SyncLog).one().error_message == "timeout"
