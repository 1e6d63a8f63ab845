"""
Goal attribution from the touch history.

The scorer is the last toucher. If the last toucher is not on the side
credited with the point, the goal is an own goal. The previous touch is an
assist when it is by a different player of the scorer's side and happened
no more than ``assist_window_ms`` before the scoring touch.

Assists are evaluated independently of the own-goal check, so an own goal
preceded by a teammate's touch still reports that teammate as assister.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from matchstats.models import Side
from matchstats.services.touch_tracker import Touch


@dataclass(frozen=True)
class GoalAttribution:
    scorer: Optional[Touch] = None
    is_own_goal: bool = False
    assister: Optional[Touch] = None

    @property
    def is_attributed(self) -> bool:
        return self.scorer is not None


def attribute_goal(
    history: Sequence[Touch],
    receiving_side: Side,
    assist_window_ms: int = 3000,
) -> GoalAttribution:
    """
    Decide scorer, own-goal flag and assister.

    Args:
        history: Recent touches, oldest first
        receiving_side: Side credited with the point
        assist_window_ms: Maximum gap between the assisting and the scoring touch

    Returns:
        GoalAttribution (without scorer when the history is empty)
    """
    if not history:
        return GoalAttribution()

    scorer = history[-1]
    is_own_goal = scorer.side != receiving_side

    assister = None
    if len(history) > 1:
        candidate = history[-2]
        if (
            scorer.timestamp - candidate.timestamp <= assist_window_ms
            and candidate.player_id != scorer.player_id
            and candidate.side == scorer.side
        ):
            assister = candidate

    return GoalAttribution(scorer=scorer, is_own_goal=is_own_goal, assister=assister)
