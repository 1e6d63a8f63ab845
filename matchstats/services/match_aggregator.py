"""
Lifecycle of one match: Idle -> Running -> Idle.

While running, goals are attributed from the touch history and tallied per
participant. At stop the final score is resolved, every participant gets a
career delta (games, outcome, streak, clean sheet, minutes, goals,
assists), and the match row, its performance rows and all deltas are
committed in one transaction.

Own goals are the exception: they are written to the player's career
immediately when the goal happens.
"""
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from matchstats.core.logging import match_context
from matchstats.models import Player, Side
from matchstats.repositories import MatchRepository, PlayerRepository
from matchstats.schemas.events import BallPosition, Participant, PlayerPosition
from matchstats.services.deltas import PlayerStatDelta
from matchstats.services.goal_attribution import GoalAttribution, attribute_goal
from matchstats.services.stats_store import StatsStore, utcnow
from matchstats.services.touch_tracker import Touch, TouchTracker

logger = logging.getLogger(__name__)

Score = Tuple[int, int]  # (red, blue)
ScoreProvider = Callable[[], Optional[Score]]


class Outcome(str, enum.Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


@dataclass
class MatchParticipant:
    """A player snapshotted at match start, with their running tally."""
    player_id: str
    name: str
    side: Side
    goals: int = 0
    assists: int = 0


@dataclass
class MatchWorkingState:
    key: str  # log correlation only; the database id is assigned at commit
    started_at: float
    participants: Dict[str, MatchParticipant] = field(default_factory=dict)
    latest_score: Optional[Score] = None
    final_score: Optional[Score] = None


@dataclass(frozen=True)
class MatchSummary:
    """What was committed for a finished match."""
    match_id: int
    score_red: int
    score_blue: int
    duration: int  # seconds
    outcomes: Dict[Side, Outcome]
    scorers: Dict[Side, List[Tuple[str, int]]]  # (name, goals), scorers only

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "score_red": self.score_red,
            "score_blue": self.score_blue,
            "duration": self.duration,
            "outcomes": {side.name.lower(): outcome.value for side, outcome in self.outcomes.items()},
            "scorers": {
                side.name.lower(): [{"name": name, "goals": goals} for name, goals in scorers]
                for side, scorers in self.scorers.items()
            },
        }


# ============================================================================
# Outcome rules
# ============================================================================

def match_outcomes(score_red: int, score_blue: int) -> Dict[Side, Outcome]:
    """Outcome per side: higher score wins, equal scores are a draw for both."""
    if score_red > score_blue:
        return {Side.RED: Outcome.WIN, Side.BLUE: Outcome.LOSS}
    if score_blue > score_red:
        return {Side.RED: Outcome.LOSS, Side.BLUE: Outcome.WIN}
    return {Side.RED: Outcome.DRAW, Side.BLUE: Outcome.DRAW}


def clean_sheets(score_red: int, score_blue: int) -> Dict[Side, bool]:
    """
    A side keeps a clean sheet when its opponent did not score.

    That is a win to nil, or a 0-0 draw (both sides).
    """
    return {Side.RED: score_blue == 0, Side.BLUE: score_red == 0}


def participant_delta(
    participant: MatchParticipant,
    outcome: Outcome,
    clean_sheet: bool,
    duration: int,
    current_streak: int = 0,
    best_streak: int = 0,
) -> PlayerStatDelta:
    """Career delta for one participant of a finished match."""
    wins = losses = draws = 0
    best = None
    if outcome is Outcome.WIN:
        wins = 1
        streak = current_streak + 1
        if streak > best_streak:
            best = streak
    elif outcome is Outcome.LOSS:
        losses = 1
        streak = 0
    else:
        draws = 1
        streak = 0

    return PlayerStatDelta(
        goals=participant.goals,
        assists=participant.assists,
        games=1,
        wins=wins,
        losses=losses,
        draws=draws,
        clean_sheets=1 if clean_sheet else 0,
        minutes_played=duration // 60,
        current_streak=streak,
        best_streak=best,
    )


# ============================================================================
# Aggregator
# ============================================================================

class MatchAggregator:
    """
    Owns the working state of the match in progress.

    Not thread-safe; the caller serializes events (see ``StatsEngine``).

    Args:
        store: Persistent store the finished match is committed to
        tracker: Touch tracker fed by game-state samples
        assist_window_ms: Maximum gap between assisting and scoring touch
        clock: Seconds clock used for match duration
        now: Wall-clock timestamp for the match row
        score_provider: Optional live score query used when no official result arrived
    """

    def __init__(
        self,
        store: StatsStore,
        tracker: Optional[TouchTracker] = None,
        assist_window_ms: int = 3000,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utcnow,
        score_provider: Optional[ScoreProvider] = None,
    ):
        self.store = store
        self.tracker = tracker or TouchTracker()
        self.assist_window_ms = assist_window_ms
        self.clock = clock
        self.now = now
        self.score_provider = score_provider
        self._state: Optional[MatchWorkingState] = None

    @property
    def is_running(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> Optional[MatchWorkingState]:
        return self._state

    # ========================================================================
    # Transitions
    # ========================================================================

    def start(self, participants: Iterable[Participant]) -> MatchWorkingState:
        """Snapshot the identified, team-assigned players and enter Running."""
        if self._state is not None:
            logger.warning(
                "Match started while another was running; discarding unfinished match",
                extra={"discarded_match": self._state.key},
            )

        state = MatchWorkingState(key=uuid.uuid4().hex[:12], started_at=self.clock())
        for p in participants:
            if not p.player_id or p.side == Side.SPECTATORS:
                continue
            if p.player_id not in state.participants:
                state.participants[p.player_id] = MatchParticipant(
                    player_id=p.player_id,
                    name=p.name or p.player_id,
                    side=Side(p.side),
                )

        self.tracker.reset()
        self._state = state
        with match_context(state.key):
            logger.info(f"Match started with {len(state.participants)} players")
        return state

    def sample(
        self,
        timestamp: int,
        ball: Optional[BallPosition],
        players: Iterable[PlayerPosition],
    ) -> Optional[Touch]:
        if self._state is None:
            return None
        return self.tracker.sample(timestamp, ball, players)

    def record_goal(self, side: Side, score: Optional[Score] = None) -> Optional[GoalAttribution]:
        """
        Attribute a goal and update the tallies.

        Args:
            side: Side credited with the point
            score: Score after the goal, if the host knows it

        Returns:
            The attribution, or None when no match is running
        """
        state = self._state
        if state is None:
            return None

        if score is not None:
            state.latest_score = score

        attribution = attribute_goal(self.tracker.history(), Side(side), self.assist_window_ms)

        with match_context(state.key):
            if not attribution.is_attributed:
                logger.info(f"Unattributed goal for {Side(side).name.lower()} (no touches recorded)")
                return attribution

            scorer = attribution.scorer
            if attribution.is_own_goal:
                if self.store.apply_player_delta(scorer.player_id, PlayerStatDelta(own_goals=1)):
                    logger.info(f"Own goal by {scorer.player_id}")
                else:
                    logger.info(f"Own goal by unknown player {scorer.player_id}; not recorded")
            elif scorer.player_id in state.participants:
                state.participants[scorer.player_id].goals += 1

            assister = attribution.assister
            if assister is not None and assister.player_id in state.participants:
                state.participants[assister.player_id].assists += 1

            logger.info(
                f"Goal for {Side(side).name.lower()}: scorer={scorer.player_id} "
                f"assister={assister.player_id if assister else None} own_goal={attribution.is_own_goal}"
            )
        return attribution

    def record_terminal_result(self, score_red: int, score_blue: int) -> None:
        """Keep the official final score; it takes precedence at stop."""
        if self._state is None:
            return
        self._state.final_score = (score_red, score_blue)
        with match_context(self._state.key):
            logger.info(f"Final result: red {score_red} - {score_blue} blue")

    def stop(self) -> Optional[MatchSummary]:
        """
        Finish the running match and commit it.

        A stop with no running match is a no-op. The working state is
        discarded even when the commit is aborted or fails.

        Returns:
            The committed match summary, or None (no match / no score)
        """
        state = self._state
        if state is None:
            return None
        self._state = None
        self.tracker.reset()

        with match_context(state.key):
            score = self._resolve_score(state)
            if score is None:
                logger.warning("No final score available; match not recorded")
                return None

            duration = max(0, int(self.clock() - state.started_at))
            summary = self._commit(state, score, duration)
            logger.info(
                f"Match {summary.match_id} recorded: red {score[0]} - {score[1]} blue ({duration}s)"
            )
            return summary

    # ========================================================================
    # Helpers
    # ========================================================================

    def _resolve_score(self, state: MatchWorkingState) -> Optional[Score]:
        if state.final_score is not None:
            return state.final_score
        if self.score_provider is not None:
            live = self.score_provider()
            if live is not None:
                return live
        return state.latest_score

    def _commit(self, state: MatchWorkingState, score: Score, duration: int) -> MatchSummary:
        score_red, score_blue = score
        outcomes = match_outcomes(score_red, score_blue)
        sheets = clean_sheets(score_red, score_blue)
        played_at = self.now()

        with self.store.session_scope() as db:
            players = PlayerRepository(db)
            matches = MatchRepository(db)
            match = matches.create_match(score_red, score_blue, duration, played_at)

            for p in state.participants.values():
                players.ensure_exists(p.player_id, p.name, seen_at=played_at)
                record: Player = players.find_by_auth(p.player_id)
                delta = participant_delta(
                    p,
                    outcomes[p.side],
                    sheets[p.side],
                    duration,
                    current_streak=record.current_streak or 0,
                    best_streak=record.best_streak or 0,
                )
                players.apply_delta(p.player_id, delta, seen_at=played_at)
                matches.add_performance(match.id, p.player_id, int(p.side), p.goals, p.assists)

            match_id = match.id

        scorers = {Side.RED: [], Side.BLUE: []}
        for p in state.participants.values():
            if p.goals > 0:
                scorers[p.side].append((p.name, p.goals))

        return MatchSummary(
            match_id=match_id,
            score_red=score_red,
            score_blue=score_blue,
            duration=duration,
            outcomes=outcomes,
            scorers=scorers,
        )
