"""Tests for pick scoring."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import WILD_CARD_KICKOFF

from playoff_pickem.models import GameStatus, Pick, PickOutcome, PlayoffRound
from playoff_pickem.services.locking import lock_due_games
from playoff_pickem.services.picks import submit_pick
from playoff_pickem.services.scoring import points_for, score_final_games


def _finish(db, game, home_score: int, away_score: int) -> None:
    game.status = GameStatus.FINAL
    game.home_score = home_score
    game.away_score = away_score
    game.is_locked = True
    game.winning_team_id = game.decide_winner()
    db.commit()


@pytest.mark.parametrize("week, points", [(1, 2), (2, 3), (3, 4), (4, 5)])
def test_points_per_round(db, week: int, points: int) -> None:
    playoff_round = db.query(PlayoffRound).filter(PlayoffRound.round_order == week).one()
    assert points_for(playoff_round, PickOutcome.CORRECT) == points
    assert points_for(playoff_round, PickOutcome.INCORRECT) == 0


class TestScoreFinalGames:
    def test_scores_correct_and_incorrect(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        submit_pick(db, users[1].id, game.id, game.away_team_id, now=before_kickoff)
        _finish(db, game, 27, 24)

        report = score_final_games(db)

        assert report.succeeded == 1
        assert report.created == 2
        picks = {p.user_id: p for p in db.query(Pick).all()}
        assert picks[users[0].id].outcome == PickOutcome.CORRECT
        assert picks[users[0].id].points_earned == 2
        assert picks[users[1].id].outcome == PickOutcome.INCORRECT
        assert picks[users[1].id].points_earned == 0

    def test_super_bowl_worth_five(self, db, make_game, users) -> None:
        start = WILD_CARD_KICKOFF + timedelta(days=28)
        game = make_game(home="PHI", away="KC", week=4, start=start)
        submit_pick(db, users[0].id, game.id, game.away_team_id, tiebreaker_guess=50, now=start - timedelta(hours=1))
        _finish(db, game, 22, 40)

        score_final_games(db)
        assert db.query(Pick).one().points_earned == 5

    def test_rerun_changes_nothing(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        _finish(db, game, 27, 24)

        score_final_games(db)
        again = score_final_games(db)

        assert again.created == 0
        assert again.skipped == 1
        assert db.query(Pick).one().points_earned == 2

    def test_non_final_games_stay_pending(self, db, make_game, users, before_kickoff, after_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        lock_due_games(db, now=after_kickoff)
        game.status = GameStatus.IN_PROGRESS
        game.home_score, game.away_score = 14, 3
        db.commit()

        report = score_final_games(db)
        assert report.total == 0
        assert db.query(Pick).one().outcome == PickOutcome.PENDING

    def test_final_without_winner_is_skipped(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        _finish(db, game, 20, 20)

        report = score_final_games(db)
        assert report.skipped == 1
        assert db.query(Pick).one().is_pending
