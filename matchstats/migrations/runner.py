"""
Versioned schema migrations for the stats store.

Migration files live next to this module and are named
``NNN_description.sql``. Each file is applied exactly once, in number
order, inside its own transaction; the single-row ``schema_version``
table is bumped in that same transaction, so a failing migration leaves
the store at the last good version.

Released migration files are never edited. Schema changes go into a new
file with the next number. Structural changes SQLite cannot express with
ALTER TABLE use the pattern:

    CREATE TABLE t_new (...);
    INSERT INTO t_new SELECT ... FROM t;
    DROP TABLE t;
    ALTER TABLE t_new RENAME TO t;
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from matchstats.core.exceptions import MigrationError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME_RE = re.compile(r"^(\d{3})_([a-z0-9_]+)\.sql$")


@dataclass(frozen=True)
class Migration:
    """One migration file."""
    version: int
    name: str
    path: Path

    def statements(self) -> List[str]:
        return split_statements(self.path.read_text(encoding="utf-8"))


def split_statements(sql: str) -> List[str]:
    """
    Split a migration script into statements.

    Comment lines (``--``) and blank lines are skipped; a statement ends
    at a line ending with a semicolon.
    """
    statements = []
    current: List[str] = []

    for line in sql.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue

        current.append(line)

        if stripped.endswith(";"):
            stmt = "\n".join(current).strip()
            if stmt and stmt != ";":
                statements.append(stmt)
            current = []

    if current:
        stmt = "\n".join(current).strip()
        if stmt:
            statements.append(stmt)

    return statements


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> List[Migration]:
    """Return all migrations in ``directory`` ordered by version."""
    migrations = []
    seen = {}
    for path in sorted(directory.glob("*.sql")):
        match = _FILENAME_RE.match(path.name)
        if not match:
            logger.warning(f"Ignoring file with unexpected migration name: {path.name}")
            continue
        version = int(match.group(1))
        if version in seen:
            raise MigrationError(version, f"duplicate migration number ({seen[version]}, {path.name})")
        seen[version] = path.name
        migrations.append(Migration(version=version, name=match.group(2), path=path))

    migrations.sort(key=lambda m: m.version)
    return migrations


def get_schema_version(conn: Connection) -> int:
    """Highest applied migration number (0 for a fresh database)."""
    row = conn.execute(text("SELECT MAX(version) FROM schema_version")).first()
    return int(row[0]) if row and row[0] is not None else 0


def _set_schema_version(conn: Connection, version: int) -> None:
    conn.execute(text("DELETE FROM schema_version"))
    conn.execute(text("INSERT INTO schema_version (version) VALUES (:version)"), {"version": version})


def apply_migrations(engine: Engine, directory: Optional[Path] = None) -> int:
    """
    Apply every pending migration.

    Args:
        engine: Engine bound to the stats database
        directory: Migration directory (defaults to the packaged migrations)

    Returns:
        The schema version after the run

    Raises:
        MigrationError: If a migration fails, or the database was written
            by a newer release than this one
    """
    migrations = discover_migrations(directory or MIGRATIONS_DIR)
    latest_known = migrations[-1].version if migrations else 0

    try:
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)"))
            current = get_schema_version(conn)
    except SQLAlchemyError as e:
        logger.error(f"Could not read schema version: {e}")
        raise MigrationError(0, f"could not read schema version: {e}") from e

    logger.info(f"Current schema version: {current}")

    if current > latest_known:
        raise MigrationError(
            current,
            f"database schema version {current} is newer than the latest known migration {latest_known}",
        )

    for migration in migrations:
        if migration.version <= current:
            continue

        logger.info(f"Running migration {migration.version:03d}: {migration.name}")
        try:
            with engine.begin() as conn:
                for stmt in migration.statements():
                    conn.exec_driver_sql(stmt)
                _set_schema_version(conn, migration.version)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Migration {migration.version:03d} failed: {e}")
            raise MigrationError(migration.version, str(e)) from e

        current = migration.version
        logger.info(f"Migration {migration.version:03d} completed")

    logger.info(f"Schema up to date (version {current})")
    return current
