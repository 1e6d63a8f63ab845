"""Tests for the chat command interpreter.

Test Strategy:
1. Only !stats / !me / !rank / !last are intercepted
2. Replies match the room's wording exactly (pl) and the English catalogue
3. Empty lookups render short messages instead of raising
"""
from datetime import datetime

import pytest

from matchstats.repositories import MatchRepository
from matchstats.services.commands import CommandInterpreter
from matchstats.services.messages import MessageCatalog
from tests.helpers import make_player


@pytest.fixture
def commands(store):
    return CommandInterpreter(store, rank_limit=10, locale="pl")


def add_match(store, score_red, score_blue, rows):
    with store.session_scope() as db:
        matches = MatchRepository(db)
        match = matches.create_match(score_red, score_blue, 300, datetime(2025, 1, 18, 21, 30))
        for auth, team, goals in rows:
            matches.add_performance(match.id, auth, team, goals, 0)


class TestRouting:

    @pytest.mark.parametrize("text", ["hello", "", "   ", "!statsy", "rank", "!help", "gg !rank"])
    def test_non_commands_are_not_intercepted(self, commands, text):
        """Should return None for ordinary chat."""
        assert commands.handle("a1", text) is None

    def test_commands_are_case_insensitive(self, commands):
        assert commands.handle("a1", "!RANK") == "❌ Brak graczy w rankingu"


class TestStats:

    def test_me_renders_summary(self, store, commands):
        """Should render the full multi-line summary for the caller."""
        make_player(
            store, "a1", "Lewy",
            goals=3, assists=2, own_goals=1, games=4, wins=2, losses=1, draws=1,
            clean_sheets=1, minutes_played=12, current_streak=1, best_streak=2,
        )

        reply = commands.handle("a1", "!me")

        assert reply == (
            "📊 Statystyki: Lewy\n"
            "⚽ Bramki: 3 | Asysty: 2 | Samobóje: 1\n"
            "🎮 Mecze: 4 (2W-1L-1D) | Win Rate: 62.5%\n"
            "🏆 Clean Sheets: 1 | Minuty: 12\n"
            "📈 Streak: 1 (best: 2) | Goals/Match: 0.75"
        )

    def test_bare_stats_is_callers_own(self, store, commands):
        make_player(store, "a1", "Lewy")

        assert commands.handle("a1", "!stats").startswith("📊 Statystyki: Lewy")

    def test_stats_by_name_with_spaces(self, store, commands):
        """Should look up multi-word names case-insensitively."""
        make_player(store, "k1", "Kuba Junior")

        assert commands.handle("a1", "!stats kuba junior").startswith("📊 Statystyki: Kuba Junior")

    def test_no_games_rates(self, store, commands):
        """Should show 0.0% win rate and 0.00 goals per match with no games."""
        make_player(store, "a1", "Nowy")

        reply = commands.handle("a1", "!me")

        assert "Win Rate: 0.0%" in reply
        assert "Goals/Match: 0.00" in reply

    def test_unknown_player(self, commands):
        assert commands.handle("a1", "!stats Nikt") == "❌ Gracz nie znaleziony"

    def test_me_without_identity(self, commands):
        assert commands.handle(None, "!me") == "❌ Gracz nie znaleziony"


class TestRank:

    def test_rank_lines_and_plurals(self, store, commands):
        """Should list players 1-indexed with Polish goal wording."""
        for auth, name, goals in [
            ("p1", "Adam", 22), ("p2", "Bartek", 12), ("p3", "Czesiek", 5),
            ("p4", "Darek", 3), ("p5", "Edek", 1), ("p6", "Franek", 0),
        ]:
            make_player(store, auth, name, goals=goals)

        reply = commands.handle("a1", "!rank")

        assert reply.split("\n") == [
            "🏆 TOP 6 STRZELCÓW:",
            "1. Adam - 22 gole",
            "2. Bartek - 12 goli",
            "3. Czesiek - 5 goli",
            "4. Darek - 3 gole",
            "5. Edek - 1 gol",
            "6. Franek - 0 goli",
        ]

    def test_rank_respects_limit(self, store):
        for i in range(4):
            make_player(store, f"p{i}", f"P{i}", goals=i)

        reply = CommandInterpreter(store, rank_limit=2).handle("a1", "!rank")

        assert reply.split("\n")[0] == "🏆 TOP 2 STRZELCÓW:"
        assert len(reply.split("\n")) == 3


class TestLast:

    def test_no_matches(self, commands):
        assert commands.handle("a1", "!last") == "❌ Brak zapisanych meczów"

    def test_scorers_per_side(self, store, commands):
        """Should list scorers per side and mark a side without scorers."""
        make_player(store, "a1", "Lewy")
        make_player(store, "b1", "Kuba")
        make_player(store, "c1", "Zieli")
        add_match(store, 3, 0, [("a1", 1, 2), ("b1", 1, 1), ("c1", 2, 0)])

        assert commands.handle("a1", "!last") == (
            "🏁 Ostatni mecz: 🔴 Red 3 - 0 Blue 🔵\n"
            "⚽ Strzelcy 🔴 Red: Lewy (2), Kuba (1)\n"
            "⚽ Strzelcy 🔵 Blue: Brak"
        )

    def test_goalless_match(self, store, commands):
        make_player(store, "a1", "Lewy")
        make_player(store, "c1", "Zieli")
        add_match(store, 0, 0, [("a1", 1, 0), ("c1", 2, 0)])

        reply = commands.handle("a1", "!last")

        assert reply.endswith("⚽ Strzelcy 🔴 Red: Brak\n⚽ Strzelcy 🔵 Blue: Brak")


class TestEnglish:

    def test_english_catalogue(self, store):
        make_player(store, "p1", "Adam", goals=1)
        make_player(store, "p2", "Bob", goals=2)
        commands = CommandInterpreter(store, locale="en")

        assert commands.handle("p1", "!rank") == "🏆 TOP 2 SCORERS:\n1. Bob - 2 goals\n2. Adam - 1 goal"
        assert commands.handle("p1", "!stats nobody") == "❌ Player not found"

    def test_unknown_locale(self):
        with pytest.raises(ValueError):
            MessageCatalog("de")
