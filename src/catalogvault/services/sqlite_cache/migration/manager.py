"""Migration manager for SQLite cache.

Creates the catalog page cache, the genre and watch provider lookup tables,
the Trakt watch history with its tokens, and the schema version marker.

v2 added the provider and Trakt tables; every statement is idempotent so a
v1 database is upgraded in place.
"""

from __future__ import annotations

import logging
import sqlite3

from catalogvault.shared.constants import Cache

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

REQUIRED_TABLES = (
    Cache.TABLE_CATALOG,
    Cache.TABLE_GENRES,
    Cache.TABLE_PROVIDERS,
    Cache.TABLE_TRAKT_HISTORY,
    Cache.TABLE_TRAKT_TOKENS,
    "schema_version",
)


class MigrationManager:
    """Database schema migration manager."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._current_version = self._get_current_version()

    def get_current_version(self) -> int:
        """Schema version applied to this database."""
        return self._current_version

    def _get_current_version(self) -> int:
        """Get current schema version from database (0 if never created)."""
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if cursor.fetchone() is None:
            return 0

        cursor = self.conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    def create_tables(self) -> None:
        """Create or upgrade the database schema."""
        schema_sql = f"""
        CREATE TABLE IF NOT EXISTS {Cache.TABLE_CATALOG} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,

            -- Cache key information
            cache_key TEXT NOT NULL UNIQUE,
            key_hash TEXT NOT NULL UNIQUE,

            -- Pagination metadata
            dimension_hash TEXT,
            page INTEGER NOT NULL,
            skip INTEGER NOT NULL DEFAULT 0,

            -- Raw upstream response (JSON)
            payload TEXT NOT NULL,
            payload_size INTEGER NOT NULL DEFAULT 0,

            -- TTL metadata (UTC ISO timestamps)
            created_at TEXT NOT NULL,
            expires_at TEXT NOT NULL,

            CHECK (length(cache_key) > 0),
            CHECK (length(key_hash) = 64),
            CHECK (page >= 1),
            CHECK (skip >= 0)
        );

        CREATE INDEX IF NOT EXISTS idx_catalog_dimension_skip
            ON {Cache.TABLE_CATALOG}(dimension_hash, skip);
        CREATE INDEX IF NOT EXISTS idx_catalog_expires_at
            ON {Cache.TABLE_CATALOG}(expires_at);

        CREATE TABLE IF NOT EXISTS {Cache.TABLE_GENRES} (
            genre_id INTEGER NOT NULL,
            genre_name TEXT NOT NULL,
            media_type TEXT NOT NULL,
            language TEXT NOT NULL,
            PRIMARY KEY (genre_id, media_type, language)
        );

        CREATE INDEX IF NOT EXISTS idx_genres_name
            ON {Cache.TABLE_GENRES}(genre_name, media_type, language);

        CREATE TABLE IF NOT EXISTS {Cache.TABLE_PROVIDERS} (
            provider_id INTEGER PRIMARY KEY,
            provider_name TEXT NOT NULL,
            logo_path TEXT,
            display_priorities TEXT NOT NULL DEFAULT '{{}}',
            last_fetched TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS {Cache.TABLE_TRAKT_HISTORY} (
            username TEXT NOT NULL,
            media_type TEXT NOT NULL,
            trakt_id INTEGER NOT NULL,
            tmdb_id INTEGER,
            imdb_id TEXT,
            title TEXT NOT NULL,
            watched_at TEXT NOT NULL,
            PRIMARY KEY (username, media_type, trakt_id),
            CHECK (media_type IN ('movie', 'show'))
        );

        CREATE INDEX IF NOT EXISTS idx_trakt_history_tmdb
            ON {Cache.TABLE_TRAKT_HISTORY}(username, media_type, tmdb_id);

        CREATE TABLE IF NOT EXISTS {Cache.TABLE_TRAKT_TOKENS} (
            username TEXT PRIMARY KEY,
            access_token TEXT NOT NULL,
            refresh_token TEXT,
            last_fetched_at TEXT
        );

        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
        );
        """

        self.conn.executescript(schema_sql)

        if self._current_version < SCHEMA_VERSION:
            self.conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            self._current_version = SCHEMA_VERSION
            logger.info("Created database schema (v%d)", SCHEMA_VERSION)

    def validate_schema(self) -> bool:
        """Check that every required table exists."""
        for table in REQUIRED_TABLES:
            cursor = self.conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
                (table,),
            )
            if cursor.fetchone() is None:
                logger.error("Required table '%s' not found", table)
                return False
        return True
