"""Tests for pick submission and pick visibility."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import SEASON, WILD_CARD_KICKOFF

from playoff_pickem.core.errors import GameLockedError, HiddenUntilLockError, NotFoundError, ValidationError
from playoff_pickem.models import GameStatus, Pick, PickOutcome
from playoff_pickem.services.locking import lock_due_games
from playoff_pickem.services.picks import get_games, get_picks_for, pick_distribution, submit_pick


# ---------------------------------------------------------------------------
# submit_pick
# ---------------------------------------------------------------------------


class TestSubmitPick:
    def test_creates_pending_pick(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        pick = submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)

        assert pick.selected_team_id == game.home_team_id
        assert pick.outcome == PickOutcome.PENDING
        assert pick.is_correct is None
        assert pick.points_earned == 0
        assert not pick.is_auto_pick
        assert not pick.is_locked
        assert pick.season == SEASON
        assert pick.week_number == 1

    def test_resubmit_replaces_team(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        first = submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        second = submit_pick(db, users[0].id, game.id, game.away_team_id, now=before_kickoff)

        assert first.id == second.id
        assert second.selected_team_id == game.away_team_id
        assert db.query(Pick).count() == 1

    def test_rejects_team_not_in_game(self, db, make_game, users, team, before_kickoff) -> None:
        game = make_game()
        with pytest.raises(ValidationError):
            submit_pick(db, users[0].id, game.id, team("DAL").id, now=before_kickoff)

    def test_unknown_user_and_game(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        with pytest.raises(NotFoundError):
            submit_pick(db, 9999, game.id, game.home_team_id, now=before_kickoff)
        with pytest.raises(NotFoundError):
            submit_pick(db, users[0].id, 9999, game.home_team_id, now=before_kickoff)

    def test_rejects_locked_game(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        game.is_locked = True
        db.commit()
        with pytest.raises(GameLockedError) as exc:
            submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        assert exc.value.code == "picks_locked"
        assert exc.value.to_dict()["detail"] == "Picks are locked for this game"

    def test_rejects_after_kickoff_even_if_lock_job_has_not_run(self, db, make_game, users) -> None:
        game = make_game()
        assert not game.is_locked
        with pytest.raises(GameLockedError):
            submit_pick(db, users[0].id, game.id, game.home_team_id, now=WILD_CARD_KICKOFF)
        assert db.query(Pick).count() == 0

    def test_locked_pick_row_is_not_overwritten(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        db.commit()
        # Pick locked underneath a stale game row
        db.query(Pick).update({Pick.is_locked: True})
        db.commit()

        with pytest.raises(GameLockedError):
            submit_pick(db, users[0].id, game.id, game.away_team_id, now=before_kickoff)
        db.rollback()
        pick = db.query(Pick).one()
        db.refresh(pick)
        assert pick.selected_team_id == game.home_team_id

    def test_rejects_cancelled_game(self, db, make_game, users, before_kickoff) -> None:
        game = make_game(status=GameStatus.CANCELLED)
        with pytest.raises(ValidationError):
            submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)


class TestTiebreakerGuess:
    def test_stored_for_super_bowl(self, db, make_game, users) -> None:
        start = WILD_CARD_KICKOFF + timedelta(days=28)
        game = make_game(home="PHI", away="KC", week=4, start=start)
        pick = submit_pick(db, users[0].id, game.id, game.home_team_id, tiebreaker_guess=45, now=start - timedelta(days=1))
        assert pick.superbowl_total_points_guess == 45

    def test_ignored_for_earlier_rounds(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        pick = submit_pick(db, users[0].id, game.id, game.home_team_id, tiebreaker_guess=45, now=before_kickoff)
        assert pick.superbowl_total_points_guess is None

    def test_negative_guess_rejected(self, db, make_game, users) -> None:
        start = WILD_CARD_KICKOFF + timedelta(days=28)
        game = make_game(home="PHI", away="KC", week=4, start=start)
        with pytest.raises(ValidationError):
            submit_pick(db, users[0].id, game.id, game.home_team_id, tiebreaker_guess=-3, now=start - timedelta(days=1))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_picks_for_filters_by_week(self, db, make_game, users, before_kickoff) -> None:
        wc = make_game()
        div = make_game(home="BAL", away="HOU", week=2, start=WILD_CARD_KICKOFF + timedelta(days=7))
        submit_pick(db, users[0].id, wc.id, wc.home_team_id, now=before_kickoff)
        submit_pick(db, users[0].id, div.id, div.home_team_id, now=before_kickoff)

        assert len(get_picks_for(db, users[0].id, SEASON)) == 2
        assert [p.game_id for p in get_picks_for(db, users[0].id, SEASON, 2)] == [div.id]
        assert get_picks_for(db, users[1].id, SEASON) == []

    def test_invalid_week_rejected(self, db) -> None:
        with pytest.raises(ValidationError):
            get_games(db, SEASON, 5)

    def test_get_games_orders_by_kickoff(self, db, make_game) -> None:
        late = make_game(home="PHI", away="GB", start=WILD_CARD_KICKOFF + timedelta(hours=4))
        early = make_game()
        assert [g.id for g in get_games(db, SEASON, 1)] == [early.id, late.id]


class TestPickDistribution:
    def test_hidden_until_lock(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        with pytest.raises(HiddenUntilLockError):
            pick_distribution(db, game.id, now=before_kickoff)

    def test_counts_after_lock(self, db, make_game, users, before_kickoff, after_kickoff) -> None:
        game = make_game()
        submit_pick(db, users[0].id, game.id, game.home_team_id, now=before_kickoff)
        submit_pick(db, users[1].id, game.id, game.home_team_id, now=before_kickoff)
        submit_pick(db, users[2].id, game.id, game.away_team_id, now=before_kickoff)
        lock_due_games(db, now=after_kickoff)

        dist = pick_distribution(db, game.id, now=after_kickoff)
        assert (dist.home_picks, dist.away_picks, dist.auto_picks) == (2, 1, 0)


# ---------------------------------------------------------------------------
# Two sessions writing the same pick
# ---------------------------------------------------------------------------


class TestConcurrentSubmits:
    def test_second_writer_updates_the_single_row(self, db, session_factory, make_game, users, before_kickoff) -> None:
        game = make_game()
        user_id, game_id = users[0].id, game.id
        first, second = session_factory(), session_factory()

        # The second writer saw no pick before the first one saved
        assert get_picks_for(second, user_id, SEASON) == []
        second.commit()

        submit_pick(first, user_id, game_id, game.home_team_id, now=before_kickoff)
        first.commit()
        pick = submit_pick(second, user_id, game_id, game.away_team_id, now=before_kickoff)
        second.commit()

        rows = db.query(Pick).filter(Pick.user_id == user_id, Pick.game_id == game_id).all()
        assert [r.id for r in rows] == [pick.id]
        assert rows[0].selected_team_id == game.away_team_id
        first.close()
        second.close()

    def test_pick_locked_after_game_was_read_is_not_overwritten(self, db, make_game, users, before_kickoff) -> None:
        game = make_game()
        db.add(Pick(user_id=users[0].id, game_id=game.id, season=SEASON, week_number=1,
                    selected_team_id=game.home_team_id, is_locked=True, points_earned=0))
        db.commit()

        with pytest.raises(GameLockedError):
            submit_pick(db, users[0].id, game.id, game.away_team_id, now=before_kickoff)
        db.rollback()
        assert db.query(Pick).one().selected_team_id == game.home_team_id
