"""
Point-in-time backups of the stats database.

Backups are full copies taken with SQLite's online backup API (safe while
the database is in WAL mode and other connections are open), written to
a temporary file and atomically renamed into the backups directory:

    <backup_dir>/stats-20250118-213004-512345-before-clear-stats.db

The timestamp in the name is the creation time (UTC).
"""
import logging
import os
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from matchstats.core.exceptions import BackupError, BackupNotFoundError

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^stats-(\d{8}-\d{6}-\d{6})(?:-[a-z0-9_-]+)?\.db$")
_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"


@dataclass(frozen=True)
class BackupInfo:
    """A backup artifact on disk."""
    name: str
    size: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
        }


def _slug(reason: str) -> str:
    slug = re.sub(r"[^a-z0-9_-]+", "-", reason.lower()).strip("-")
    return slug[:40] or "manual"


class BackupManager:
    """
    Creates, lists, locates and prunes backup files.

    Args:
        backup_dir: Directory holding the backups (created on demand)
        keep: Maximum number of backups kept after each new one (0 = all)
    """

    def __init__(self, backup_dir: Path, keep: int = 30):
        self.backup_dir = Path(backup_dir)
        self.keep = keep

    # ========================================================================
    # Create
    # ========================================================================

    def create(self, engine: Engine, reason: str = "manual", prune: bool = True) -> BackupInfo:
        """
        Write a full copy of the database behind ``engine``.

        With ``prune`` false the retention pass is left to the caller.

        Raises:
            BackupError: If the copy could not be produced
        """
        now = datetime.now(timezone.utc)
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            target = self._unique_target(now, _slug(reason))
            tmp = target.with_name(target.name + ".tmp")
            try:
                self._copy_database(engine, tmp)
                os.replace(tmp, target)
            finally:
                if tmp.exists():
                    tmp.unlink()
        except (sqlite3.Error, SQLAlchemyError, OSError) as e:
            logger.error(f"Backup failed ({reason}): {e}")
            raise BackupError(f"Backup failed: {e}") from e

        info = self._info(target)
        logger.info(f"Backup created: {info.name} ({info.size} bytes)", extra={"reason": reason})
        if prune:
            self.prune()
        return info

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(sqlite3.OperationalError),
        reraise=True,
    )
    def _copy_database(self, engine: Engine, target: Path) -> None:
        """Copy the live database into ``target`` (retried while locked)."""
        raw = engine.raw_connection()
        try:
            dest = sqlite3.connect(str(target))
            try:
                raw.driver_connection.backup(dest)
            finally:
                dest.close()
        finally:
            raw.close()

    def _unique_target(self, now: datetime, slug: str) -> Path:
        stamp = now.strftime(_TIMESTAMP_FORMAT)
        target = self.backup_dir / f"stats-{stamp}-{slug}.db"
        counter = 2
        while target.exists():
            target = self.backup_dir / f"stats-{stamp}-{slug}-{counter}.db"
            counter += 1
        return target

    # ========================================================================
    # Enumerate / locate
    # ========================================================================

    def list(self) -> List[BackupInfo]:
        """All backups, newest first."""
        if not self.backup_dir.is_dir():
            return []
        backups = [
            self._info(path)
            for path in self.backup_dir.glob("stats-*.db")
            if _NAME_RE.match(path.name)
        ]
        backups.sort(key=lambda b: (b.created_at, b.name), reverse=True)
        return backups

    def path_for(self, name: str) -> Path:
        """
        Resolve a backup name to its file.

        Raises:
            BackupNotFoundError: If the name is malformed or no such backup exists
        """
        if not _NAME_RE.match(name or ""):
            raise BackupNotFoundError(f"Not a backup name: {name!r}")
        path = self.backup_dir / name
        if not path.is_file():
            raise BackupNotFoundError(f"Backup not found: {name}")
        return path

    def _info(self, path: Path) -> BackupInfo:
        stat = path.stat()
        match = _NAME_RE.match(path.name)
        try:
            created_at = datetime.strptime(match.group(1), _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        except (AttributeError, ValueError):
            created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return BackupInfo(name=path.name, size=stat.st_size, created_at=created_at)

    # ========================================================================
    # Retention
    # ========================================================================

    def prune(self, protect: Iterable[str] = ()) -> List[str]:
        """
        Delete the oldest backups beyond ``keep``; returns the removed names.

        Names in ``protect`` are never deleted, even when they are the oldest.
        """
        if self.keep <= 0:
            return []

        protected = set(protect)
        removed = []
        for info in self.list()[self.keep:]:
            if info.name in protected:
                continue
            try:
                (self.backup_dir / info.name).unlink()
                removed.append(info.name)
            except OSError as e:
                logger.warning(f"Could not prune backup {info.name}: {e}")

        if removed:
            logger.info(f"Pruned {len(removed)} old backup(s)")
        return removed
