"""Test helpers shared across test modules."""
from matchstats.models import Side
from matchstats.schemas.events import BallPosition, Participant, PlayerPosition
from matchstats.services.deltas import PlayerStatDelta
from matchstats.services.stats_store import StatsStore


class FakeClock:
    """Controllable seconds clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_player(store: StatsStore, auth: str, name: str, **stats) -> None:
    """Create a player and give them the given career stats."""
    store.upsert_player(auth, name)
    if stats:
        store.apply_player_delta(auth, PlayerStatDelta(**stats))


def participants(*players) -> list:
    """Build Participant models from (player_id, name, side) tuples."""
    return [Participant(player_id=pid, name=name, side=side) for pid, name, side in players]


def touch(target, timestamp: int, player_id: str, side: Side):
    """Feed one sample in which ``player_id`` is on the ball."""
    return target.sample(
        timestamp,
        BallPosition(x=0.0, y=0.0),
        [PlayerPosition(player_id=player_id, side=side, x=5.0, y=0.0)],
    )
