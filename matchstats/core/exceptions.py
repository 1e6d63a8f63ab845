"""
Exception hierarchy for the stats engine.

Player-facing query failures are never raised; they are rendered as
chat messages by the command interpreter. These exceptions cover the
storage and administrative paths.
"""


class StatsError(Exception):
    """Base class for all stats engine errors."""


class MigrationError(StatsError):
    """A schema migration failed; the store must not be used."""

    def __init__(self, version: int, message: str):
        self.version = version
        super().__init__(f"Migration {version:03d} failed: {message}")


class BackupError(StatsError):
    """A backup could not be produced; destructive operations are refused."""


class RestoreError(StatsError):
    """Restoring a backup failed (the store keeps a usable connection)."""


class BackupNotFoundError(RestoreError):
    """The requested backup does not exist or its name is not acceptable."""


class RestoreNotAllowedError(StatsError):
    """Restore was requested while a match is in progress."""
