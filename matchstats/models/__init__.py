"""
Models for the match statistics store.

Usage:
    from matchstats.models import Player, Match, MatchPlayer
"""
from matchstats.models.models import (
    Base,
    Player,
    Match,
    MatchPlayer,
    Side,
)

__all__ = [
    "Base",
    "Player",
    "Match",
    "MatchPlayer",
    "Side",
]
