"""SQLite cache migration module."""

from catalogvault.services.sqlite_cache.migration.manager import MigrationManager

__all__ = ["MigrationManager"]
