"""Shared pytest fixtures for matchstats tests."""
import sys
from pathlib import Path
from typing import Generator

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from matchstats.services.commands import CommandInterpreter  # noqa: E402
from matchstats.services.match_aggregator import MatchAggregator  # noqa: E402
from matchstats.services.stats_engine import StatsEngine  # noqa: E402
from matchstats.services.stats_store import StatsStore  # noqa: E402
from matchstats.services.touch_tracker import TouchTracker  # noqa: E402
from tests.helpers import FakeClock  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def store(tmp_path: Path) -> Generator[StatsStore, None, None]:
    """File-backed store in a temporary directory, migrated to the latest schema."""
    stats_store = StatsStore(tmp_path / "stats.db", backup_dir=tmp_path / "backups", backup_keep=0)
    stats_store.open()

    yield stats_store

    stats_store.close()


@pytest.fixture
def aggregator(store: StatsStore, clock: FakeClock) -> MatchAggregator:
    return MatchAggregator(store, tracker=TouchTracker(), assist_window_ms=3000, clock=clock)


@pytest.fixture
def engine(store: StatsStore, aggregator: MatchAggregator) -> StatsEngine:
    """Engine wired to the temporary store and the fake clock."""
    return StatsEngine(store, aggregator, CommandInterpreter(store, rank_limit=10, locale="pl"))
