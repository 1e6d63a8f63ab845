"""
Repository layer for data access.

Usage:
    from matchstats.repositories import PlayerRepository, MatchRepository

    with store.session_scope() as db:
        player = PlayerRepository(db).find_by_auth("a1b2c3")
"""

from matchstats.repositories.base import BaseRepository
from matchstats.repositories.player_repository import PlayerRepository
from matchstats.repositories.match_repository import MatchRepository

__all__ = [
    "BaseRepository",
    "PlayerRepository",
    "MatchRepository",
]
