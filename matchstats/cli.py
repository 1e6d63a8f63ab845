"""
Operator CLI for the stats store.

Run: python -m matchstats.cli migrate
     python -m matchstats.cli backup --reason before-season
     python -m matchstats.cli list-backups
     python -m matchstats.cli restore stats-20250118-213004-512345-manual.db
     python -m matchstats.cli clear-stats --yes
     python -m matchstats.cli purge-synthetic
     python -m matchstats.cli delete-player "Lewy"
     python -m matchstats.cli replay events.jsonl
"""
import argparse
import json
import sys
from typing import List, Optional

from pydantic import ValidationError

from matchstats.core.config import settings
from matchstats.core.exceptions import MigrationError, StatsError
from matchstats.core.logging import configure_logging
from matchstats.schemas.events import MatchStarted, MatchStopped, Sample, parse_event
from matchstats.services.stats_engine import StatsEngine


def _print_summary(summary) -> None:
    print(f"🏁 Match {summary.match_id}: 🔴 Red {summary.score_red} - {summary.score_blue} Blue 🔵 ({summary.duration}s)")


def cmd_migrate(engine: StatsEngine, args) -> int:
    print(f"✅ Schema at version {engine.store.schema_version()} ({engine.store.db_path})")
    return 0


def cmd_backup(engine: StatsEngine, args) -> int:
    info = engine.create_backup(args.reason)
    print(f"✅ Backup created: {info.name} ({info.size} bytes)")
    return 0


def cmd_list_backups(engine: StatsEngine, args) -> int:
    backups = engine.list_backups()
    if not backups:
        print("No backups found")
        return 0
    for info in backups:
        print(f"{info.name}  {info.size:>10d} bytes  {info.created_at.isoformat()}")
    print(f"Total: {len(backups)}")
    return 0


def cmd_restore(engine: StatsEngine, args) -> int:
    safety = engine.restore_backup(args.name)
    print(f"✅ Restored {args.name} (previous data saved as {safety.name})")
    return 0


def cmd_clear_stats(engine: StatsEngine, args) -> int:
    if not args.yes:
        print("Refusing to clear all stats without --yes")
        return 1
    backup = engine.clear_all_stats()
    print(f"✅ All stats cleared (backup: {backup.name})")
    return 0


def cmd_purge_synthetic(engine: StatsEngine, args) -> int:
    count = engine.purge_synthetic_players()
    print(f"✅ Purged {count} synthetic player(s)")
    return 0


def cmd_delete_player(engine: StatsEngine, args) -> int:
    if not engine.delete_player(args.name):
        print(f"❌ Player not found: {args.name}")
        return 1
    print(f"✅ Deleted player {args.name}")
    return 0


class ReplayClock:
    """
    Match clock driven by sample timestamps instead of wall time.

    Reads 0 at match start and then the seconds elapsed since the first
    sample of the match, so durations and minutes follow the recording.
    """

    def __init__(self):
        self._first_ms: Optional[int] = None
        self._elapsed = 0.0

    def __call__(self) -> float:
        return self._elapsed

    def reset(self) -> None:
        self._first_ms = None
        self._elapsed = 0.0

    def observe(self, timestamp_ms: int) -> None:
        if self._first_ms is None:
            self._first_ms = timestamp_ms
        self._elapsed = max(self._elapsed, (timestamp_ms - self._first_ms) / 1000)


def cmd_replay(engine: StatsEngine, args) -> int:
    """Feed a JSON Lines event file through the engine, printing chat replies."""
    clock = ReplayClock()
    engine.aggregator.clock = clock
    errors = 0
    with open(args.file, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = parse_event(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as e:
                errors += 1
                print(f"❌ Line {line_no}: invalid event ({e.__class__.__name__})", file=sys.stderr)
                continue

            if isinstance(event, MatchStarted):
                clock.reset()
            elif isinstance(event, Sample):
                clock.observe(event.timestamp)

            if isinstance(event, MatchStopped):
                summary = engine.stop_match()
                if summary is not None:
                    _print_summary(summary)
                continue

            reply = engine.dispatch(event)
            if reply:
                print(reply)

    if errors:
        print(f"Replay finished with {errors} invalid line(s)", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="matchstats", description="Match stats store maintenance")
    parser.add_argument("--database", help="SQLite file (defaults to DATABASE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("migrate", help="Apply pending schema migrations").set_defaults(func=cmd_migrate)

    p = sub.add_parser("backup", help="Take a manual backup")
    p.add_argument("--reason", default="manual", help="Label added to the backup name")
    p.set_defaults(func=cmd_backup)

    sub.add_parser("list-backups", help="List backups, newest first").set_defaults(func=cmd_list_backups)

    p = sub.add_parser("restore", help="Restore a backup by name")
    p.add_argument("name")
    p.set_defaults(func=cmd_restore)

    p = sub.add_parser("clear-stats", help="Delete all players and matches (backup first)")
    p.add_argument("--yes", action="store_true", help="Confirm the delete")
    p.set_defaults(func=cmd_clear_stats)

    sub.add_parser(
        "purge-synthetic", help="Delete synthetic (test) players (backup first)"
    ).set_defaults(func=cmd_purge_synthetic)

    p = sub.add_parser("delete-player", help="Delete one player by display name (backup first)")
    p.add_argument("name")
    p.set_defaults(func=cmd_delete_player)

    p = sub.add_parser("replay", help="Feed a JSON Lines event file through the engine")
    p.add_argument("file")
    p.set_defaults(func=cmd_replay)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    config = settings
    if args.database:
        config = settings.model_copy(update={"DATABASE_PATH": args.database, "BACKUP_DIR": None})
    engine = StatsEngine.from_settings(config)

    try:
        engine.open()
    except MigrationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    try:
        return args.func(engine, args)
    except StatsError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    finally:
        engine.close()


if __name__ == "__main__":
    sys.exit(main())
