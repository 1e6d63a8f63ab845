"""
Ball-touch tracking for the running match.

On every game-state sample the first participating player whose disc is
within ``radius`` of the ball is taken as the current toucher. Players are
checked in the order the sample lists them, so that order is the tie-break
when several discs are close to the ball.
"""
import math
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional

from matchstats.models import Side
from matchstats.schemas.events import BallPosition, PlayerPosition


@dataclass(frozen=True)
class Touch:
    """One recorded ball touch."""
    player_id: str
    side: Side
    timestamp: int  # ms


class TouchTracker:
    """
    Bounded, oldest-first history of recent ball touches.

    Args:
        radius: Touch distance (player radius + ball radius); strictly closer counts
        debounce_ms: Minimum gap before the same player's touch is recorded again
        size: Number of touches kept
    """

    def __init__(self, radius: float = 25.0, debounce_ms: int = 50, size: int = 5):
        self.radius = radius
        self.debounce_ms = debounce_ms
        self._touches = deque(maxlen=size)

    def reset(self) -> None:
        self._touches.clear()

    @property
    def last(self) -> Optional[Touch]:
        return self._touches[-1] if self._touches else None

    def history(self) -> List[Touch]:
        """Touches oldest first."""
        return list(self._touches)

    def sample(
        self,
        timestamp: int,
        ball: Optional[BallPosition],
        players: Iterable[PlayerPosition],
    ) -> Optional[Touch]:
        """
        Process one game-state sample.

        Returns:
            The touch appended to the history, or None
        """
        if ball is None:
            return None

        for player in players:
            if not player.player_id or player.side == Side.SPECTATORS:
                continue
            if player.x is None or player.y is None:
                continue

            distance = math.hypot(player.x - ball.x, player.y - ball.y)
            if distance < self.radius:
                return self._record(Touch(player.player_id, Side(player.side), timestamp))

        return None

    def _record(self, touch: Touch) -> Optional[Touch]:
        last = self.last
        if (
            last is not None
            and last.player_id == touch.player_id
            and touch.timestamp - last.timestamp < self.debounce_ms
        ):
            return None
        self._touches.append(touch)
        return touch
