"""Typed payloads exchanged with the game-session host."""
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
    parse_event,
)

__all__ = [
    "BallPosition",
    "ChatMessage",
    "Event",
    "Goal",
    "MatchStarted",
    "MatchStopped",
    "Participant",
    "PlayerJoined",
    "PlayerLeft",
    "PlayerPosition",
    "Sample",
    "TerminalResult",
    "parse_event",
]
