"""
Chat command interpreter.

Recognised commands (first token, case-insensitive):

    !stats [name]   career summary of ``name`` (or the caller)
    !me             career summary of the caller
    !rank           top scorers
    !last           score and scorers of the most recent match

Anything else is not a command and ``handle()`` returns None so the host
can treat it as ordinary chat. Lookups that find nothing reply with a
short message instead of raising.
"""
import logging
from typing import List, Optional

from matchstats.models import Match, Player, Side
from matchstats.services.messages import MessageCatalog
from matchstats.services.stats_store import StatsStore

logger = logging.getLogger(__name__)


def win_rate(player: Player) -> float:
    """Percentage of games won, a draw counting as half a win (0 with no games)."""
    total = player.wins + player.losses + player.draws
    if total == 0:
        return 0.0
    return (player.wins + 0.5 * player.draws) / total * 100


def goals_per_game(player: Player) -> float:
    return player.goals / player.games if player.games > 0 else 0.0


class CommandInterpreter:
    """
    Turns chat commands into reply text using the committed store.

    Args:
        store: Persistent store (read-only use)
        rank_limit: Number of players listed by ``!rank``
        locale: Reply language (``pl`` or ``en``)
    """

    def __init__(self, store: StatsStore, rank_limit: int = 10, locale: str = "pl"):
        self.store = store
        self.rank_limit = rank_limit
        self.messages = MessageCatalog(locale)

    def handle(self, player_id: Optional[str], text: str) -> Optional[str]:
        """
        Reply to a chat line.

        Returns:
            Reply text, or None if the line is not a command
        """
        tokens = (text or "").split()
        if not tokens:
            return None

        command = tokens[0].lower()
        if command in ("!stats", "!me", "!rank", "!last"):
            logger.debug(f"Chat command {command} from {player_id}")
        if command == "!stats":
            name = " ".join(tokens[1:])
            return self.stats(player_id, name or None)
        if command == "!me":
            return self.stats(player_id, None)
        if command == "!rank":
            return self.rank()
        if command == "!last":
            return self.last()
        return None

    # ========================================================================
    # Commands
    # ========================================================================

    def stats(self, player_id: Optional[str], name: Optional[str] = None) -> str:
        if name:
            player = self.store.get_player_by_name(name)
        elif player_id:
            player = self.store.get_player(player_id)
        else:
            player = None

        if player is None:
            return self.messages.text("player_not_found")
        return self.format_stats(player)

    def rank(self) -> str:
        players = self.store.top_players(self.rank_limit)
        if not players:
            return self.messages.text("rank_empty")
        return self.format_rank(players)

    def last(self) -> str:
        match = self.store.last_match()
        if match is None:
            return self.messages.text("no_matches")
        return self.format_last_match(match)

    # ========================================================================
    # Formatting
    # ========================================================================

    def format_stats(self, player: Player) -> str:
        return self.messages.render(
            "stats",
            name=player.name,
            goals=player.goals,
            assists=player.assists,
            own_goals=player.own_goals,
            games=player.games,
            wins=player.wins,
            losses=player.losses,
            draws=player.draws,
            win_rate=f"{win_rate(player):.1f}",
            clean_sheets=player.clean_sheets,
            minutes_played=player.minutes_played,
            current_streak=player.current_streak,
            best_streak=player.best_streak,
            goals_per_game=f"{goals_per_game(player):.2f}",
        )

    def format_rank(self, players: List[Player]) -> str:
        lines = [self.messages.render("rank_header", count=len(players))]
        for position, player in enumerate(players, start=1):
            lines.append(
                self.messages.render(
                    "rank_line",
                    position=position,
                    name=player.name,
                    goals=player.goals,
                    goal_word=self.messages.goal_word(player.goals),
                )
            )
        return "\n".join(lines)

    def format_last_match(self, match: Match) -> str:
        return "\n".join([
            self.messages.render("last_header", score_red=match.score_red, score_blue=match.score_blue),
            self.messages.render("last_red", scorers=self._scorers(match, Side.RED)),
            self.messages.render("last_blue", scorers=self._scorers(match, Side.BLUE)),
        ])

    def _scorers(self, match: Match, side: Side) -> str:
        rows = [row for row in match.players if row.team == side and row.goals > 0]
        rows.sort(key=lambda row: (-row.goals, _display_name(row).lower()))
        scorers = [f"{_display_name(row)} ({row.goals})" for row in rows]
        return ", ".join(scorers) or self.messages.text("no_scorers")


def _display_name(row) -> str:
    return row.player.name if row.player is not None else row.player_auth
