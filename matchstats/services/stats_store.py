"""
Persistent store for career stats and match records.

The store owns the SQLite engine. On ``open()`` it applies every pending
migration before anything else may touch the data. All writes go through
``session_scope()`` transactions; destructive operations are two-phase:

    phase 1: full backup of the database (must succeed)
    phase 2: the deletes, in one transaction

If phase 1 fails the deletes never run and ``BackupError`` propagates.
"""
import logging
import os
import shutil
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from matchstats.core.database import create_session_factory, create_sqlite_engine
from matchstats.core.exceptions import RestoreError, StatsError
from matchstats.migrations.runner import apply_migrations, get_schema_version
from matchstats.models import Match, Player
from matchstats.repositories import MatchRepository, PlayerRepository
from matchstats.services.backups import BackupInfo, BackupManager
from matchstats.services.deltas import PlayerStatDelta

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching SQLite's CURRENT_TIMESTAMP."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StatsStore:
    """
    Owner of the stats database file, its schema and its backups.

    Args:
        db_path: SQLite database file
        backup_dir: Backups directory (defaults to ``<db dir>/backups``)
        backup_keep: Maximum number of backups kept (0 = all)
    """

    def __init__(self, db_path: Path, backup_dir: Optional[Path] = None, backup_keep: int = 30):
        self.db_path = Path(db_path)
        self.backups = BackupManager(
            Path(backup_dir) if backup_dir else self.db_path.parent / "backups",
            keep=backup_keep,
        )
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        # Held by every unit of work so a restore never swaps the file under one
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings) -> "StatsStore":
        return cls(
            db_path=settings.database_file,
            backup_dir=settings.backup_dir,
            backup_keep=settings.BACKUP_KEEP,
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def open(self) -> int:
        """
        Connect and bring the schema up to date.

        Returns:
            Schema version after migrations

        Raises:
            MigrationError: If any migration fails (the store stays closed)
        """
        with self._lock:
            return self._connect()

    def close(self) -> None:
        with self._lock:
            self._dispose()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StatsError("Stats store is not open")
        return self._engine

    def _connect(self) -> int:
        engine = create_sqlite_engine(self.db_path)
        try:
            version = apply_migrations(engine)
        except StatsError:
            engine.dispose()
            raise
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        logger.info(f"Stats store open at {self.db_path} (schema version {version})")
        return version

    def _dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Transactional unit of work.

        Commits on normal exit, rolls back and re-raises on error.
        """
        with self._lock:
            if self._session_factory is None:
                raise StatsError("Stats store is not open")
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def schema_version(self) -> int:
        with self.engine.connect() as conn:
            return get_schema_version(conn)

    # ========================================================================
    # Reads
    # ========================================================================

    def get_player(self, auth: str) -> Optional[Player]:
        with self.session_scope() as db:
            return PlayerRepository(db).find_by_auth(auth)

    def get_player_by_name(self, name: str) -> Optional[Player]:
        with self.session_scope() as db:
            return PlayerRepository(db).find_by_name(name)

    def top_players(self, limit: int = 10) -> List[Player]:
        with self.session_scope() as db:
            return PlayerRepository(db).top_by_goals(limit)

    def last_match(self) -> Optional[Match]:
        """Most recent match with its participant rows (and their players) loaded."""
        with self.session_scope() as db:
            return MatchRepository(db).find_latest_with_players()

    # ========================================================================
    # Writes
    # ========================================================================

    def upsert_player(self, auth: str, name: str) -> None:
        with self.session_scope() as db:
            PlayerRepository(db).upsert_on_join(auth, name, seen_at=utcnow())

    def apply_player_delta(self, auth: str, delta: PlayerStatDelta) -> bool:
        """Apply one stat delta in its own transaction; False if the player is unknown."""
        if delta.is_empty():
            return False
        with self.session_scope() as db:
            return PlayerRepository(db).apply_delta(auth, delta, seen_at=utcnow())

    # ========================================================================
    # Destructive operations (backup-guarded)
    # ========================================================================

    def _guarded(self, reason: str, mutate: Callable[[Session], T]) -> Tuple[BackupInfo, T]:
        with self._lock:
            backup = self.backups.create(self.engine, reason=f"before-{reason}")
            with self.session_scope() as db:
                result = mutate(db)
            logger.info(f"{reason} completed (backup {backup.name})")
            return backup, result

    def clear_all_stats(self) -> BackupInfo:
        """
        Delete every player, match and performance row.

        Returns:
            The backup taken before the delete
        """
        def _clear(db: Session) -> None:
            MatchRepository(db).delete_all()
            PlayerRepository(db).delete_all()

        backup, _ = self._guarded("clear-stats", _clear)
        return backup

    def purge_synthetic_players(self, prefix: str) -> int:
        """
        Delete players whose name starts with ``prefix`` and their history.

        Matches left with no remaining participant are deleted too.

        Returns:
            Number of players purged
        """
        with self._lock:
            with self.session_scope() as db:
                auths = [p.auth for p in PlayerRepository(db).find_synthetic(prefix)]
            if not auths:
                logger.info("No synthetic players found to purge")
                return 0

            def _purge(db: Session) -> int:
                matches = MatchRepository(db)
                matches.delete_performances_for(auths)
                matches.delete_empty_matches()
                return PlayerRepository(db).delete_by_auths(auths)

            _, count = self._guarded("purge-synthetic", _purge)
            logger.info(f"Purged {count} synthetic player(s) and their data")
            return count

    def delete_player(self, name: str) -> bool:
        """
        Delete one player (by display name) and their match history.

        Returns:
            False if no player has that name (nothing is backed up or deleted)
        """
        with self._lock:
            player = self.get_player_by_name(name)
            if player is None:
                return False
            auth = player.auth

            def _delete(db: Session) -> bool:
                matches = MatchRepository(db)
                matches.delete_performances_for([auth])
                matches.delete_empty_matches()
                return PlayerRepository(db).delete_by_auths([auth]) > 0

            _, deleted = self._guarded("delete-player", _delete)
            return deleted

    # ========================================================================
    # Backups
    # ========================================================================

    def create_backup(self, reason: str = "manual") -> BackupInfo:
        with self._lock:
            return self.backups.create(self.engine, reason=reason)

    def list_backups(self) -> List[BackupInfo]:
        return self.backups.list()

    def restore_backup(self, name: str) -> BackupInfo:
        """
        Replace the live database with the backup ``name``.

        A safety backup of the current file is taken first; if it cannot be
        taken, nothing is changed. The caller must make sure no match is
        running.

        Returns:
            The safety backup taken before the swap

        Raises:
            BackupNotFoundError: Unknown backup name
            BackupError: The safety backup failed (live data untouched)
            RestoreError: The swap or re-open failed (a connection was re-established)
        """
        with self._lock:
            source = self.backups.path_for(name)
            # Retention must not delete the backup being restored
            safety = self.backups.create(self.engine, reason="before-restore", prune=False)

            logger.info(f"Restoring backup {name}")
            self._dispose()
            try:
                self._replace_database_file(source)
                self._connect()
            except (OSError, SQLAlchemyError, StatsError) as e:
                logger.error(f"Restore of {name} failed: {e}")
                self._recover(safety)
                raise RestoreError(f"Restore of {name} failed: {e}") from e
            finally:
                self.backups.prune(protect=(name, safety.name))

            logger.info(f"Restore of {name} completed (safety backup {safety.name})")
            return safety

    def _replace_database_file(self, source: Path) -> None:
        tmp = self.db_path.with_name(self.db_path.name + ".restore")
        shutil.copy2(source, tmp)
        # A stale WAL from the old file must not be replayed onto the new one
        for suffix in ("-wal", "-shm"):
            sidecar = self.db_path.with_name(self.db_path.name + suffix)
            if sidecar.exists():
                sidecar.unlink()
        os.replace(tmp, self.db_path)

    def _recover(self, safety: BackupInfo) -> None:
        """Get back to a usable connection after a failed restore."""
        try:
            self._replace_database_file(self.backups.path_for(safety.name))
            self._connect()
            logger.warning(f"Reverted to safety backup {safety.name} after failed restore")
            return
        except (OSError, SQLAlchemyError, StatsError) as e:
            logger.error(f"Could not revert to safety backup {safety.name}: {e}")

        try:
            self._connect()
            logger.warning("Re-opened the current database file after failed restore")
        except (OSError, SQLAlchemyError, StatsError) as e:
            logger.critical(f"Stats store has no usable connection after failed restore: {e}")
