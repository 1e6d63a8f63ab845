"""Versioned SQL migrations for the stats store."""
from matchstats.migrations.runner import apply_migrations, discover_migrations, get_schema_version

__all__ = ["apply_migrations", "discover_migrations", "get_schema_version"]
