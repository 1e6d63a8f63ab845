"""
Match Repository for completed matches and per-match performances.

Usage:
    repo = MatchRepository(db)
    match = repo.create_match(score_red=3, score_blue=1, duration=180, played_at=now)
    repo.add_performance(match.id, "a1b2c3", team=1, goals=2, assists=0)
    last = repo.find_latest_with_players()
"""
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from matchstats.models import Match, MatchPlayer
from matchstats.repositories.base import BaseRepository


class MatchRepository(BaseRepository[Match]):
    """Repository for matches and their participant rows."""

    def __init__(self, db):
        """Initialize the match repository."""
        super().__init__(Match, db)

    def create_match(self, score_red: int, score_blue: int, duration: int, played_at: datetime) -> Match:
        """Insert a match row and flush so its id is available."""
        match = self.create(
            score_red=score_red,
            score_blue=score_blue,
            duration=duration,
            timestamp=played_at,
        )
        self.flush()
        return match

    def add_performance(self, match_id: int, player_auth: str, team: int, goals: int, assists: int) -> MatchPlayer:
        performance = MatchPlayer(
            match_id=match_id,
            player_auth=player_auth,
            team=team,
            goals=goals,
            assists=assists,
        )
        self.db.add(performance)
        return performance

    def find_latest_with_players(self) -> Optional[Match]:
        """Most recent match with participant rows and their players loaded."""
        return (
            self.query()
            .options(selectinload(Match.players).joinedload(MatchPlayer.player))
            .order_by(Match.timestamp.desc(), Match.id.desc())
            .first()
        )

    # ========================================================================
    # Deletes (only reached through backup-guarded store operations)
    # ========================================================================

    def delete_performances_for(self, player_auths: Iterable[str]) -> int:
        auths = list(player_auths)
        if not auths:
            return 0
        return (
            self.db.query(MatchPlayer)
            .filter(MatchPlayer.player_auth.in_(auths))
            .delete(synchronize_session=False)
        )

    def delete_empty_matches(self) -> int:
        """Delete matches that have no participant rows left."""
        with_players = select(MatchPlayer.match_id)
        return self.query().filter(Match.id.notin_(with_players)).delete(synchronize_session=False)

    def delete_all(self) -> int:
        """Delete every match and every performance row; returns the match count."""
        self.db.query(MatchPlayer).delete(synchronize_session=False)
        return self.query().delete(synchronize_session=False)
