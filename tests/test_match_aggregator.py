"""Integration tests for MatchAggregator against a real store.

Test Strategy:
1. Outcome, clean sheet and streak rules for win / draw / 0-0 draw
2. Goal and assist tallies flow into career stats and performance rows
3. Own goals are written immediately, unattributed goals change nothing
4. Final score resolution order and the missing-score abort
5. Stop is idempotent; a failed commit writes nothing

Each test follows the pattern:
- Given: players in the store and a started match
- When: goals / result / stop are recorded
- Then: career stats and match rows in the store
"""
import logging

import pytest

from matchstats.models import Match, MatchPlayer, Side
from matchstats.repositories import PlayerRepository
from matchstats.services.match_aggregator import MatchAggregator, Outcome
from matchstats.services.touch_tracker import TouchTracker
from tests.helpers import make_player, participants, touch

RED_A = ("a", "Ania", Side.RED)
RED_B = ("b", "Bartek", Side.RED)
BLUE_C = ("c", "Czarek", Side.BLUE)
BLUE_D = ("d", "Darek", Side.BLUE)


@pytest.fixture
def lineup(store):
    for pid, name, _ in (RED_A, RED_B, BLUE_C, BLUE_D):
        make_player(store, pid, name)
    return participants(RED_A, RED_B, BLUE_C, BLUE_D)


def count_rows(store, model) -> int:
    with store.session_scope() as db:
        return db.query(model).count()


class TestOutcomes:
    """Career deltas at match end."""

    def test_win_to_nil(self, store, aggregator, lineup, clock):
        """3-0: winners get win, clean sheet and streak; losers get a loss and streak reset."""
        make_player(store, "c", "Czarek", current_streak=4, best_streak=4)
        aggregator.start(lineup)
        clock.advance(200)
        aggregator.record_terminal_result(3, 0)

        summary = aggregator.stop()

        assert summary.outcomes == {Side.RED: Outcome.WIN, Side.BLUE: Outcome.LOSS}
        for pid in ("a", "b"):
            p = store.get_player(pid)
            assert (p.games, p.wins, p.clean_sheets, p.current_streak, p.best_streak) == (1, 1, 1, 1, 1)
        for pid in ("c", "d"):
            p = store.get_player(pid)
            assert (p.games, p.losses, p.clean_sheets, p.current_streak) == (1, 1, 0, 0)
        assert store.get_player("c").best_streak == 4

    def test_scoring_draw(self, store, aggregator, lineup):
        """2-2: everybody draws, nobody keeps a clean sheet, streaks reset."""
        make_player(store, "a", "Ania", current_streak=3, best_streak=3)
        aggregator.start(lineup)
        aggregator.record_terminal_result(2, 2)

        aggregator.stop()

        for pid in ("a", "b", "c", "d"):
            p = store.get_player(pid)
            assert (p.games, p.draws, p.clean_sheets, p.current_streak) == (1, 1, 0, 0)
        assert store.get_player("a").best_streak == 3

    def test_goalless_draw_credits_both_clean_sheets(self, store, aggregator, lineup):
        """0-0: both sides draw and keep a clean sheet."""
        aggregator.start(lineup)
        aggregator.record_terminal_result(0, 0)

        aggregator.stop()

        for pid in ("a", "b", "c", "d"):
            p = store.get_player(pid)
            assert (p.draws, p.clean_sheets) == (1, 1)

    def test_streak_extends_without_beating_best(self, store, aggregator, lineup):
        """Should increment the streak and leave a higher best streak alone."""
        make_player(store, "a", "Ania", current_streak=2, best_streak=5)
        aggregator.start(lineup)
        aggregator.record_terminal_result(1, 0)

        aggregator.stop()

        p = store.get_player("a")
        assert (p.current_streak, p.best_streak) == (3, 5)

    def test_games_equal_wins_losses_draws(self, store, aggregator, lineup):
        """Should keep games == wins + losses + draws over several matches."""
        for red, blue in [(1, 0), (0, 2), (1, 1)]:
            aggregator.start(lineup)
            aggregator.record_terminal_result(red, blue)
            aggregator.stop()

        for pid in ("a", "b", "c", "d"):
            p = store.get_player(pid)
            assert p.games == 3
            assert p.games == p.wins + p.losses + p.draws

    def test_minutes_and_duration(self, store, aggregator, lineup, clock):
        """Should credit floor(duration / 60) minutes to every participant."""
        aggregator.start(lineup)
        clock.advance(185.7)
        aggregator.record_terminal_result(1, 0)

        summary = aggregator.stop()

        assert summary.duration == 185
        assert store.get_player("a").minutes_played == 3
        assert store.get_player("d").minutes_played == 3


class TestGoals:
    """Attribution during the match."""

    def test_goal_and_assist_tallied(self, store, aggregator, lineup):
        """Should add goals and assists to career stats and performance rows."""
        aggregator.start(lineup)
        touch(aggregator, 1000, "b", Side.RED)
        touch(aggregator, 2000, "a", Side.RED)
        aggregator.record_goal(Side.RED, (1, 0))
        aggregator.record_terminal_result(1, 0)

        summary = aggregator.stop()

        a, b = store.get_player("a"), store.get_player("b")
        assert (a.goals, a.assists) == (1, 0)
        assert (b.goals, b.assists) == (0, 1)
        assert summary.scorers == {Side.RED: [("Ania", 1)], Side.BLUE: []}

        match = store.last_match()
        rows = {row.player_auth: (row.team, row.goals, row.assists) for row in match.players}
        assert rows == {"a": (1, 1, 0), "b": (1, 0, 1), "c": (2, 0, 0), "d": (2, 0, 0)}

    def test_own_goal_written_immediately(self, store, aggregator, lineup):
        """Should increment own_goals before the match ends and not count a goal."""
        aggregator.start(lineup)
        touch(aggregator, 1000, "c", Side.BLUE)

        result = aggregator.record_goal(Side.RED)

        assert result.is_own_goal is True
        assert store.get_player("c").own_goals == 1
        assert aggregator.state.participants["c"].goals == 0

    def test_unattributed_goal_changes_nothing(self, store, aggregator, lineup, caplog):
        """Should log and skip a goal with no recorded touches."""
        aggregator.start(lineup)

        with caplog.at_level(logging.INFO):
            result = aggregator.record_goal(Side.BLUE)

        assert result.is_attributed is False
        assert all(p.goals == 0 for p in aggregator.state.participants.values())
        assert "Unattributed goal" in caplog.text

    def test_goal_when_idle_is_ignored(self, aggregator):
        """Should return None outside a running match."""
        assert aggregator.record_goal(Side.RED) is None

    def test_start_resets_touches(self, aggregator, lineup):
        """Should not attribute a goal to a touch from the previous match."""
        aggregator.start(lineup)
        touch(aggregator, 1000, "a", Side.RED)
        aggregator.start(lineup)

        assert aggregator.record_goal(Side.RED).is_attributed is False


class TestParticipants:

    def test_spectators_and_unidentified_excluded(self, store, aggregator):
        """Should snapshot only identified players on a side."""
        make_player(store, "a", "Ania")
        lineup = participants(RED_A, ("s", "Spec", Side.SPECTATORS), (None, "Guest", Side.BLUE))

        state = aggregator.start(lineup)
        aggregator.record_terminal_result(1, 0)
        aggregator.stop()

        assert list(state.participants) == ["a"]
        assert count_rows(store, MatchPlayer) == 1

    def test_player_who_left_is_scored_from_snapshot(self, store, engine, lineup, clock):
        """Should credit a scorer who left mid-match with their side, tally, outcome and minutes."""
        engine.start_match(lineup)
        touch(engine, 1000, "b", Side.RED)
        touch(engine, 2000, "a", Side.RED)
        engine.record_goal(Side.RED, 1, 0)
        engine.record_leave("a")
        clock.advance(150)
        engine.record_terminal_result(1, 0)

        engine.stop_match()

        a = store.get_player("a")
        assert (a.goals, a.games, a.wins, a.clean_sheets, a.minutes_played) == (1, 1, 1, 1, 2)
        assert (a.current_streak, a.best_streak) == (1, 1)
        row = next(r for r in store.last_match().players if r.player_auth == "a")
        assert (row.team, row.goals, row.assists) == (Side.RED, 1, 0)

    def test_participant_missing_from_store_is_created(self, store, aggregator):
        """Should create a player row for a participant who never joined."""
        aggregator.start(participants(("z", "Zenek", Side.BLUE)))
        aggregator.record_terminal_result(0, 1)

        aggregator.stop()

        p = store.get_player("z")
        assert p.name == "Zenek"
        assert (p.games, p.wins) == (1, 1)


class TestStop:
    """Score resolution, idempotence and atomicity."""

    def test_stop_twice_commits_once(self, store, aggregator, lineup):
        """Should make the second stop a no-op."""
        aggregator.start(lineup)
        aggregator.record_terminal_result(2, 1)

        assert aggregator.stop() is not None
        assert aggregator.stop() is None
        assert count_rows(store, Match) == 1
        assert store.get_player("a").games == 1

    def test_missing_score_aborts_commit(self, store, aggregator, lineup, caplog):
        """Should write nothing and warn when no score is known."""
        aggregator.start(lineup)

        with caplog.at_level(logging.WARNING):
            assert aggregator.stop() is None

        assert count_rows(store, Match) == 0
        assert store.get_player("a").games == 0
        assert aggregator.is_running is False
        assert "No final score" in caplog.text

    def test_terminal_result_beats_goal_score(self, store, aggregator, lineup):
        """Should prefer the official result over the last goal's score."""
        aggregator.start(lineup)
        touch(aggregator, 1000, "a", Side.RED)
        aggregator.record_goal(Side.RED, (1, 0))
        aggregator.record_terminal_result(1, 2)

        summary = aggregator.stop()

        assert (summary.score_red, summary.score_blue) == (1, 2)

    def test_score_provider_before_goal_score(self, store, clock, lineup):
        """Should ask the live score provider when no official result arrived."""
        aggregator = MatchAggregator(store, TouchTracker(), clock=clock, score_provider=lambda: (4, 4))
        aggregator.start(lineup)
        touch(aggregator, 1000, "a", Side.RED)
        aggregator.record_goal(Side.RED, (1, 0))

        summary = aggregator.stop()

        assert (summary.score_red, summary.score_blue) == (4, 4)

    def test_goal_score_as_last_resort(self, store, clock, lineup):
        """Should fall back to the latest goal score when the provider has none."""
        aggregator = MatchAggregator(store, TouchTracker(), clock=clock, score_provider=lambda: None)
        aggregator.start(lineup)
        touch(aggregator, 1000, "c", Side.BLUE)
        aggregator.record_goal(Side.BLUE, (0, 1))

        summary = aggregator.stop()

        assert (summary.score_red, summary.score_blue) == (0, 1)
        assert store.get_player("c").goals == 1

    def test_failed_commit_writes_nothing(self, store, aggregator, lineup, monkeypatch):
        """Should roll back the match and every delta when one update fails."""
        original = PlayerRepository.apply_delta
        calls = []

        def failing_apply_delta(self, auth, delta, seen_at):
            calls.append(auth)
            if len(calls) == 3:
                raise RuntimeError("disk went away")
            return original(self, auth, delta, seen_at)

        monkeypatch.setattr(PlayerRepository, "apply_delta", failing_apply_delta)
        aggregator.start(lineup)
        aggregator.record_terminal_result(1, 0)

        with pytest.raises(RuntimeError):
            aggregator.stop()

        monkeypatch.undo()
        assert count_rows(store, Match) == 0
        assert count_rows(store, MatchPlayer) == 0
        assert all(store.get_player(pid).games == 0 for pid in ("a", "b", "c", "d"))
