"""
Reply wording for chat commands, per locale.

``pl`` is the room's native wording; ``en`` is provided for English rooms.
"""
from typing import Callable, Dict

MESSAGES: Dict[str, Dict[str, str]] = {
    "pl": {
        "player_not_found": "❌ Gracz nie znaleziony",
        "rank_empty": "❌ Brak graczy w rankingu",
        "no_matches": "❌ Brak zapisanych meczów",
        "stats": (
            "📊 Statystyki: {name}\n"
            "⚽ Bramki: {goals} | Asysty: {assists} | Samobóje: {own_goals}\n"
            "🎮 Mecze: {games} ({wins}W-{losses}L-{draws}D) | Win Rate: {win_rate}%\n"
            "🏆 Clean Sheets: {clean_sheets} | Minuty: {minutes_played}\n"
            "📈 Streak: {current_streak} (best: {best_streak}) | Goals/Match: {goals_per_game}"
        ),
        "rank_header": "🏆 TOP {count} STRZELCÓW:",
        "rank_line": "{position}. {name} - {goals} {goal_word}",
        "last_header": "🏁 Ostatni mecz: 🔴 Red {score_red} - {score_blue} Blue 🔵",
        "last_red": "⚽ Strzelcy 🔴 Red: {scorers}",
        "last_blue": "⚽ Strzelcy 🔵 Blue: {scorers}",
        "no_scorers": "Brak",
    },
    "en": {
        "player_not_found": "❌ Player not found",
        "rank_empty": "❌ No ranked players yet",
        "no_matches": "❌ No matches recorded",
        "stats": (
            "📊 Stats: {name}\n"
            "⚽ Goals: {goals} | Assists: {assists} | Own goals: {own_goals}\n"
            "🎮 Games: {games} ({wins}W-{losses}L-{draws}D) | Win Rate: {win_rate}%\n"
            "🏆 Clean Sheets: {clean_sheets} | Minutes: {minutes_played}\n"
            "📈 Streak: {current_streak} (best: {best_streak}) | Goals/Match: {goals_per_game}"
        ),
        "rank_header": "🏆 TOP {count} SCORERS:",
        "rank_line": "{position}. {name} - {goals} {goal_word}",
        "last_header": "🏁 Last match: 🔴 Red {score_red} - {score_blue} Blue 🔵",
        "last_red": "⚽ Scorers 🔴 Red: {scorers}",
        "last_blue": "⚽ Scorers 🔵 Blue: {scorers}",
        "no_scorers": "None",
    },
}


def _goal_word_pl(count: int) -> str:
    if count == 1:
        return "gol"
    if 2 <= count % 10 <= 4 and not 12 <= count % 100 <= 14:
        return "gole"
    return "goli"


def _goal_word_en(count: int) -> str:
    return "goal" if count == 1 else "goals"


GOAL_WORDS: Dict[str, Callable[[int], str]] = {
    "pl": _goal_word_pl,
    "en": _goal_word_en,
}


class MessageCatalog:
    """Templates and plural rule for one locale."""

    def __init__(self, locale: str = "pl"):
        if locale not in MESSAGES:
            raise ValueError(f"Unsupported locale: {locale}")
        self.locale = locale
        self._messages = MESSAGES[locale]
        self._goal_word = GOAL_WORDS[locale]

    def render(self, key: str, **params) -> str:
        return self._messages[key].format(**params)

    def text(self, key: str) -> str:
        return self._messages[key]

    def goal_word(self, count: int) -> str:
        return self._goal_word(count)
