"""
Database models for the match statistics store.

The schema itself is owned by the versioned SQL migrations in
``matchstats/migrations``; these models mirror the schema as it stands
after the latest migration and are never used to create tables.
"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class Side(enum.IntEnum):
    """Team a player is on. Spectators are never persisted."""
    SPECTATORS = 0
    RED = 1
    BLUE = 2


class Player(Base):
    """Career statistics of one player, keyed by a stable auth identity."""
    __tablename__ = "players"

    auth = Column(String, primary_key=True)  # Stable per-person identity, not the display name
    name = Column(String, nullable=False)  # Last seen display name
    goals = Column(Integer, default=0, server_default=text("0"))
    assists = Column(Integer, default=0, server_default=text("0"))
    own_goals = Column(Integer, default=0, server_default=text("0"))
    games = Column(Integer, default=0, server_default=text("0"))
    wins = Column(Integer, default=0, server_default=text("0"))
    losses = Column(Integer, default=0, server_default=text("0"))
    draws = Column(Integer, default=0, server_default=text("0"))
    clean_sheets = Column(Integer, default=0, server_default=text("0"))
    minutes_played = Column(Integer, default=0, server_default=text("0"))
    current_streak = Column(Integer, default=0, server_default=text("0"))
    best_streak = Column(Integer, default=0, server_default=text("0"))
    last_seen = Column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    performances = relationship("MatchPlayer", back_populates="player", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Player {self.auth} {self.name!r}>"


class Match(Base):
    """One completed match. Written once, never updated."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    score_red = Column(Integer, nullable=False)
    score_blue = Column(Integer, nullable=False)
    duration = Column(Integer, default=0, server_default=text("0"))  # seconds

    # Relationships
    players = relationship(
        "MatchPlayer",
        back_populates="match",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_matches_timestamp", "timestamp"),
    )


class MatchPlayer(Base):
    """Per-match performance of one participant."""
    __tablename__ = "match_players"

    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), primary_key=True)
    player_auth = Column(String, ForeignKey("players.auth", ondelete="CASCADE"), primary_key=True)
    team = Column(Integer, nullable=False)  # 1 = red, 2 = blue
    goals = Column(Integer, default=0, server_default=text("0"))
    assists = Column(Integer, default=0, server_default=text("0"))

    # Relationships
    match = relationship("Match", back_populates="players")
    player = relationship("Player", back_populates="performances")

    __table_args__ = (
        CheckConstraint("team IN (1, 2)", name="ck_match_players_team"),
        Index("idx_match_players_match", "match_id"),
        Index("idx_match_players_player", "player_auth"),
    )
