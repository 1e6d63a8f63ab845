"""
Events delivered by the game-session host.

Each event is a pydantic model tagged by a literal ``type`` field, so a raw
JSON payload can be validated in one step:

    event = parse_event({"type": "goal", "side": 1})

Player identities (``player_id``) are the stable auth ids, not display
names. A player without an identity is sent with ``player_id`` null and
is ignored for stats.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from matchstats.models import Side


class PlayerJoined(BaseModel):
    """A player entered the room."""
    type: Literal["player_joined"] = "player_joined"
    player_id: str = Field(..., min_length=1)
    name: str


class PlayerLeft(BaseModel):
    """A player left the room."""
    type: Literal["player_left"] = "player_left"
    player_id: str = Field(..., min_length=1)


class Participant(BaseModel):
    """A player on a side when the match started."""
    player_id: Optional[str] = None
    name: str = ""
    side: Side


class MatchStarted(BaseModel):
    type: Literal["match_started"] = "match_started"
    participants: List[Participant] = Field(default_factory=list)


class Goal(BaseModel):
    """
    A goal was scored.

    ``side`` is the side credited with the point. The score after the goal
    is optional; when present it is kept as the latest known score.
    """
    type: Literal["goal"] = "goal"
    side: Side
    score_red: Optional[int] = Field(None, ge=0)
    score_blue: Optional[int] = Field(None, ge=0)


class TerminalResult(BaseModel):
    """Official final score (e.g. a victory condition), sent before the stop."""
    type: Literal["terminal_result"] = "terminal_result"
    score_red: int = Field(..., ge=0)
    score_blue: int = Field(..., ge=0)


class MatchStopped(BaseModel):
    type: Literal["match_stopped"] = "match_stopped"


class BallPosition(BaseModel):
    x: float
    y: float


class PlayerPosition(BaseModel):
    """Position of one player's disc; coordinates are null when unknown."""
    player_id: Optional[str] = None
    side: Side = Side.SPECTATORS
    x: Optional[float] = None
    y: Optional[float] = None


class Sample(BaseModel):
    """Periodic game-state sample used for touch tracking."""
    type: Literal["sample"] = "sample"
    timestamp: int = Field(..., description="Milliseconds, monotonic within a match")
    ball: Optional[BallPosition] = None
    players: List[PlayerPosition] = Field(default_factory=list)


class ChatMessage(BaseModel):
    type: Literal["chat_message"] = "chat_message"
    player_id: Optional[str] = None
    text: str


Event = Annotated[
    Union[
        PlayerJoined,
        PlayerLeft,
        MatchStarted,
        Goal,
        TerminalResult,
        MatchStopped,
        Sample,
        ChatMessage,
    ],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(Event)


def parse_event(payload: dict) -> Event:
    """
    Validate a raw event payload.

    Raises:
        pydantic.ValidationError: Unknown ``type`` or invalid fields
    """
    return _event_adapter.validate_python(payload)
