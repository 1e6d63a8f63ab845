"""
Database engine configuration and session management.

The stats store is a single SQLite file. pysqlite's implicit transaction
handling is switched off and replaced by an explicit BEGIN on every
SQLAlchemy transaction, so DDL executed by migrations participates in
the surrounding transaction and rolls back with it.
See: https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
"""
import os
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool


def create_sqlite_engine(db_path: Path) -> Engine:
    """
    Create an engine bound to the SQLite file at ``db_path``.

    The parent directory is created if needed. Every new DBAPI connection
    gets foreign keys enabled and the WAL journal mode.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        # Connections are opened per unit of work; nothing is held open
        # across a restore that swaps the underlying file.
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 15},
        echo=os.getenv("SQL_ECHO", "false").lower() == "true",
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own BEGIN handling; see _on_begin
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory for the given engine (no autoflush, explicit commits)."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
