"""
Typed player stat updates.

Every updatable career field is listed once. Additive fields are applied
as ``column = column + value``; absolute fields (streak counters) are
overwritten when set and left untouched when ``None``.
"""
from dataclasses import dataclass, fields
from typing import Dict, Optional

ADDITIVE_FIELDS = (
    "goals",
    "assists",
    "own_goals",
    "games",
    "wins",
    "losses",
    "draws",
    "clean_sheets",
    "minutes_played",
)

ABSOLUTE_FIELDS = (
    "current_streak",
    "best_streak",
)


@dataclass(frozen=True)
class PlayerStatDelta:
    """Change to one player's career stats."""

    goals: int = 0
    assists: int = 0
    own_goals: int = 0
    games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    clean_sheets: int = 0
    minutes_played: int = 0
    current_streak: Optional[int] = None
    best_streak: Optional[int] = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) == 0 for name in ADDITIVE_FIELDS) and all(
            getattr(self, name) is None for name in ABSOLUTE_FIELDS
        )

    def as_params(self) -> Dict[str, Optional[int]]:
        """Bind parameters for the fixed player UPDATE statement."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
