"""
Event-feed facade of the statistics engine.

The host (game room bridge, replay CLI, HTTP admin surface) talks only to
``StatsEngine``. Every call takes one re-entrant lock, so events from
several threads are applied one at a time in arrival order.

Usage:
    engine = StatsEngine.from_settings(settings)
    engine.open()
    engine.dispatch(parse_event({"type": "player_joined", "player_id": "a1", "name": "Lewy"}))
    reply = engine.handle_chat("a1", "!me")
"""
import logging
import threading
from typing import Iterable, List, Optional

from matchstats.core.exceptions import RestoreNotAllowedError
from matchstats.models import Side
from matchstats.schemas.events import (
    BallPosition,
    ChatMessage,
    Event,
    Goal,
    MatchStarted,
    MatchStopped,
    Participant,
    PlayerJoined,
    PlayerLeft,
    PlayerPosition,
    Sample,
    TerminalResult,
)
from matchstats.services.backups import BackupInfo
from matchstats.services.commands import CommandInterpreter
from matchstats.services.goal_attribution import GoalAttribution
from matchstats.services.match_aggregator import MatchAggregator, MatchSummary
from matchstats.services.stats_store import StatsStore
from matchstats.services.touch_tracker import Touch, TouchTracker

logger = logging.getLogger(__name__)


class StatsEngine:
    """
    One room's statistics engine: store, match aggregator and chat commands.

    Args:
        store: Persistent store (opened by ``open()``)
        aggregator: Match aggregator bound to the same store
        commands: Chat command interpreter bound to the same store
        synthetic_prefix: Display-name prefix of players removed by the purge
    """

    def __init__(
        self,
        store: StatsStore,
        aggregator: MatchAggregator,
        commands: CommandInterpreter,
        synthetic_prefix: str = "___test",
    ):
        self.store = store
        self.aggregator = aggregator
        self.commands = commands
        self.synthetic_prefix = synthetic_prefix
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings, store: Optional[StatsStore] = None, **aggregator_kwargs) -> "StatsEngine":
        store = store or StatsStore.from_settings(settings)
        tracker = TouchTracker(
            radius=settings.TOUCH_RADIUS,
            debounce_ms=settings.TOUCH_DEBOUNCE_MS,
            size=settings.TOUCH_HISTORY_SIZE,
        )
        aggregator = MatchAggregator(
            store,
            tracker=tracker,
            assist_window_ms=settings.ASSIST_WINDOW_MS,
            **aggregator_kwargs,
        )
        commands = CommandInterpreter(store, rank_limit=settings.RANK_LIMIT, locale=settings.COMMAND_LOCALE)
        return cls(store, aggregator, commands, synthetic_prefix=settings.SYNTHETIC_PLAYER_PREFIX)

    def open(self) -> int:
        """Open the store; migrations finish before any event is accepted."""
        with self._lock:
            return self.store.open()

    def close(self) -> None:
        with self._lock:
            self.store.close()

    @property
    def match_running(self) -> bool:
        return self.aggregator.is_running

    # ========================================================================
    # Event feed
    # ========================================================================

    def record_join(self, player_id: str, name: str) -> None:
        with self._lock:
            self.store.upsert_player(player_id, name)
            logger.info(f"Player joined: {name} ({player_id})")

    def record_leave(self, player_id: str) -> None:
        with self._lock:
            player = self.store.get_player(player_id)
            if player is not None:
                logger.info(f"Player left: {player.name} ({player_id})")

    def start_match(self, participants: Iterable[Participant]) -> None:
        with self._lock:
            self.aggregator.start(participants)

    def record_goal(
        self,
        side: Side,
        score_red: Optional[int] = None,
        score_blue: Optional[int] = None,
    ) -> Optional[GoalAttribution]:
        score = None
        if score_red is not None and score_blue is not None:
            score = (score_red, score_blue)
        with self._lock:
            return self.aggregator.record_goal(side, score)

    def record_terminal_result(self, score_red: int, score_blue: int) -> None:
        with self._lock:
            self.aggregator.record_terminal_result(score_red, score_blue)

    def sample(
        self,
        timestamp: int,
        ball: Optional[BallPosition],
        players: Iterable[PlayerPosition],
    ) -> Optional[Touch]:
        with self._lock:
            return self.aggregator.sample(timestamp, ball, players)

    def stop_match(self) -> Optional[MatchSummary]:
        with self._lock:
            return self.aggregator.stop()

    def handle_chat(self, player_id: Optional[str], text: str) -> Optional[str]:
        with self._lock:
            return self.commands.handle(player_id, text)

    def dispatch(self, event: Event) -> Optional[str]:
        """
        Apply one parsed event.

        Returns:
            The chat reply for a ``chat_message`` event, else None
        """
        if isinstance(event, PlayerJoined):
            self.record_join(event.player_id, event.name)
        elif isinstance(event, PlayerLeft):
            self.record_leave(event.player_id)
        elif isinstance(event, MatchStarted):
            self.start_match(event.participants)
        elif isinstance(event, Goal):
            self.record_goal(event.side, event.score_red, event.score_blue)
        elif isinstance(event, TerminalResult):
            self.record_terminal_result(event.score_red, event.score_blue)
        elif isinstance(event, MatchStopped):
            self.stop_match()
        elif isinstance(event, Sample):
            self.sample(event.timestamp, event.ball, event.players)
        elif isinstance(event, ChatMessage):
            return self.handle_chat(event.player_id, event.text)
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")
        return None

    # ========================================================================
    # Administration
    # ========================================================================

    def clear_all_stats(self) -> BackupInfo:
        with self._lock:
            return self.store.clear_all_stats()

    def purge_synthetic_players(self) -> int:
        with self._lock:
            return self.store.purge_synthetic_players(self.synthetic_prefix)

    def delete_player(self, name: str) -> bool:
        with self._lock:
            return self.store.delete_player(name)

    def create_backup(self, reason: str = "manual") -> BackupInfo:
        with self._lock:
            return self.store.create_backup(reason)

    def list_backups(self) -> List[BackupInfo]:
        return self.store.list_backups()

    def restore_backup(self, name: str) -> BackupInfo:
        """
        Restore a backup; refused while a match is running.

        Raises:
            RestoreNotAllowedError: A match is in progress
        """
        with self._lock:
            if self.aggregator.is_running:
                raise RestoreNotAllowedError("Cannot restore a backup while a match is running")
            return self.store.restore_backup(name)
