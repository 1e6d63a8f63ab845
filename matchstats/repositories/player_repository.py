"""
Player Repository for career stats data access.

Usage:
    repo = PlayerRepository(db)
    player = repo.find_by_auth("a1b2c3")
    repo.upsert_on_join("a1b2c3", "Lewy", seen_at=now)
    repo.apply_delta("a1b2c3", PlayerStatDelta(goals=2, games=1), seen_at=now)
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.dialects.sqlite import insert

from matchstats.models import Player
from matchstats.repositories.base import BaseRepository
from matchstats.services.deltas import PlayerStatDelta

# One fixed statement for every stat change; absolute fields fall back to
# the stored value when the delta leaves them unset.
_APPLY_DELTA_SQL = text(
    """
    UPDATE players SET
        goals = goals + :goals,
        assists = assists + :assists,
        own_goals = own_goals + :own_goals,
        games = games + :games,
        wins = wins + :wins,
        losses = losses + :losses,
        draws = draws + :draws,
        clean_sheets = clean_sheets + :clean_sheets,
        minutes_played = minutes_played + :minutes_played,
        current_streak = COALESCE(:current_streak, current_streak),
        best_streak = COALESCE(:best_streak, best_streak),
        last_seen = :last_seen
    WHERE auth = :auth
    """
).bindparams(bindparam("last_seen", type_=DateTime()))


class PlayerRepository(BaseRepository[Player]):
    """Repository for player career stats."""

    def __init__(self, db):
        """Initialize the player repository."""
        super().__init__(Player, db)

    # ========================================================================
    # Lookups
    # ========================================================================

    def find_by_auth(self, auth: str) -> Optional[Player]:
        """Find a player by stable identity."""
        return self.get(auth)

    def find_by_name(self, name: str) -> Optional[Player]:
        """
        Find a player by display name (case-insensitive).

        Display names are not unique; the most recently seen player wins.
        """
        return (
            self.query()
            .filter(Player.name.collate("NOCASE") == name.strip())
            .order_by(Player.last_seen.desc())
            .first()
        )

    def top_by_goals(self, limit: int = 10) -> List[Player]:
        """
        Players ranked by goals.

        Ties are broken by fewer games played, then by name for a stable order.
        """
        return (
            self.query()
            .order_by(Player.goals.desc(), Player.games.asc(), Player.name.collate("NOCASE").asc())
            .limit(limit)
            .all()
        )

    def find_synthetic(self, prefix: str) -> List[Player]:
        """Players whose display name starts with ``prefix`` (wildcards escaped)."""
        return self.query().filter(Player.name.startswith(prefix, autoescape=True)).all()

    # ========================================================================
    # Writes
    # ========================================================================

    def upsert_on_join(self, auth: str, name: str, seen_at: datetime) -> None:
        """Create the player if absent, else refresh display name and last seen."""
        stmt = insert(Player).values(auth=auth, name=name, last_seen=seen_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Player.auth],
            set_={"name": stmt.excluded.name, "last_seen": stmt.excluded.last_seen},
        )
        self.db.execute(stmt)

    def ensure_exists(self, auth: str, name: str, seen_at: datetime) -> None:
        """Create the player if absent without touching an existing row."""
        stmt = insert(Player).values(auth=auth, name=name, last_seen=seen_at)
        self.db.execute(stmt.on_conflict_do_nothing(index_elements=[Player.auth]))

    def apply_delta(self, auth: str, delta: PlayerStatDelta, seen_at: datetime) -> bool:
        """
        Apply a stat delta to one player.

        Returns:
            True if the player exists and was updated, False otherwise
        """
        params = delta.as_params()
        params.update(auth=auth, last_seen=seen_at)
        result = self.db.execute(_APPLY_DELTA_SQL, params)
        return result.rowcount > 0

    def delete_by_auths(self, auths: Iterable[str]) -> int:
        auths = list(auths)
        if not auths:
            return 0
        return self.query().filter(Player.auth.in_(auths)).delete(synchronize_session=False)

    def delete_all(self) -> int:
        return self.query().delete(synchronize_session=False)
