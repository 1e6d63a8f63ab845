"""Tests for the event-feed facade.

Test Strategy:
1. Raw payloads go through parse_event and dispatch to the right handler
2. A full match replayed from payloads lands in the store
3. Chat events return replies; other events return None
4. Admin operations honour the running-match guard and the synthetic prefix
"""
import pytest
from pydantic import ValidationError

from matchstats.core.config import Settings
from matchstats.core.exceptions import RestoreNotAllowedError
from matchstats.models import Side
from matchstats.schemas.events import Goal, MatchStarted, PlayerJoined, Sample, parse_event
from matchstats.services.stats_engine import StatsEngine
from tests.helpers import make_player


def feed(engine, payloads):
    return [engine.dispatch(parse_event(payload)) for payload in payloads]


def sample(timestamp, player_id, side):
    return {
        "type": "sample",
        "timestamp": timestamp,
        "ball": {"x": 0, "y": 0},
        "players": [{"player_id": player_id, "side": side, "x": 3, "y": 4}],
    }


MATCH = [
    {"type": "player_joined", "player_id": "a", "name": "Ania"},
    {"type": "player_joined", "player_id": "b", "name": "Bartek"},
    {"type": "player_joined", "player_id": "c", "name": "Czarek"},
    {
        "type": "match_started",
        "participants": [
            {"player_id": "a", "name": "Ania", "side": 1},
            {"player_id": "b", "name": "Bartek", "side": 1},
            {"player_id": "c", "name": "Czarek", "side": 2},
        ],
    },
    sample(1000, "b", 1),
    sample(1500, "a", 1),
    {"type": "goal", "side": 1, "score_red": 1, "score_blue": 0},
    sample(4000, "c", 2),
    {"type": "goal", "side": 1, "score_red": 2, "score_blue": 0},
    {"type": "terminal_result", "score_red": 2, "score_blue": 0},
    {"type": "match_stopped"},
]


class TestParseEvent:

    def test_payloads_become_typed_events(self):
        """Should pick the model from the type tag and coerce sides."""
        assert isinstance(parse_event({"type": "player_joined", "player_id": "a", "name": "A"}), PlayerJoined)
        goal = parse_event({"type": "goal", "side": 2})
        assert isinstance(goal, Goal)
        assert goal.side is Side.BLUE
        assert (goal.score_red, goal.score_blue) == (None, None)
        started = parse_event({"type": "match_started", "participants": [{"player_id": None, "side": 0}]})
        assert isinstance(started, MatchStarted)
        assert started.participants[0].side is Side.SPECTATORS
        assert isinstance(parse_event({"type": "sample", "timestamp": 5}), Sample)

    @pytest.mark.parametrize("payload", [
        {"type": "kickoff"},
        {"name": "no type"},
        {"type": "goal", "side": 7},
        {"type": "player_joined", "player_id": "", "name": "Empty"},
        {"type": "terminal_result", "score_red": -1, "score_blue": 0},
    ])
    def test_invalid_payloads_rejected(self, payload):
        with pytest.raises(ValidationError):
            parse_event(payload)


class TestDispatch:

    def test_full_match_from_payloads(self, engine, store, clock):
        """Should attribute goals, the assist and the own goal, then commit at stop."""
        feed(engine, MATCH[:8])
        clock.advance(130)
        replies = feed(engine, MATCH[8:])

        assert replies == [None, None, None]
        assert engine.match_running is False
        a, b, c = (store.get_player(pid) for pid in ("a", "b", "c"))
        assert (a.goals, a.assists, a.wins, a.clean_sheets, a.minutes_played) == (1, 0, 1, 1, 2)
        assert (b.goals, b.assists, b.wins) == (0, 1, 1)
        assert (c.goals, c.own_goals, c.losses) == (0, 1, 1)
        match = store.last_match()
        assert (match.score_red, match.score_blue, match.duration) == (2, 0, 130)

    def test_chat_reply(self, engine):
        """Should return the reply for a command and None for plain chat."""
        feed(engine, MATCH[:1])

        assert engine.dispatch(parse_event({"type": "chat_message", "player_id": "a", "text": "!me"})).startswith(
            "📊 Statystyki: Ania"
        )
        assert engine.dispatch(parse_event({"type": "chat_message", "player_id": "a", "text": "gg"})) is None

    def test_join_updates_display_name(self, engine, store):
        feed(engine, [
            {"type": "player_joined", "player_id": "a", "name": "Ania"},
            {"type": "player_left", "player_id": "a"},
            {"type": "player_joined", "player_id": "a", "name": "Anna"},
        ])

        assert store.get_player("a").name == "Anna"

    def test_unknown_event_object(self, engine):
        with pytest.raises(TypeError):
            engine.dispatch(object())


class TestAdministration:

    def test_restore_refused_while_running(self, engine):
        """Should refuse a restore during a match and leave the match running."""
        backup = engine.create_backup()
        feed(engine, MATCH[:4])

        with pytest.raises(RestoreNotAllowedError):
            engine.restore_backup(backup.name)

        assert engine.match_running is True

    def test_restore_when_idle(self, engine, store):
        backup = engine.create_backup()
        make_player(store, "a", "Ania")

        engine.restore_backup(backup.name)

        assert store.get_player("a") is None

    def test_purge_uses_configured_prefix(self, store, aggregator, engine):
        """Should purge only names starting with the engine's prefix."""
        make_player(store, "t1", "bot_one")
        make_player(store, "t2", "___test_two")
        custom = StatsEngine(store, aggregator, engine.commands, synthetic_prefix="bot_")

        assert custom.purge_synthetic_players() == 1
        assert store.get_player("t1") is None
        assert store.get_player("t2") is not None

    def test_from_settings_wires_tunables(self, tmp_path):
        """Should build tracker, aggregator and commands from settings."""
        settings = Settings(
            DATABASE_PATH=str(tmp_path / "stats.db"),
            BACKUP_DIR=str(tmp_path / "backups"),
            TOUCH_RADIUS=30.0,
            TOUCH_HISTORY_SIZE=3,
            ASSIST_WINDOW_MS=1500,
            RANK_LIMIT=5,
            COMMAND_LOCALE="en",
            SYNTHETIC_PLAYER_PREFIX="bot_",
        )

        engine = StatsEngine.from_settings(settings)

        assert engine.aggregator.tracker.radius == 30.0
        assert engine.aggregator.assist_window_ms == 1500
        assert engine.commands.rank_limit == 5
        assert engine.commands.messages.locale == "en"
        assert engine.synthetic_prefix == "bot_"
        assert engine.store.is_open is False
