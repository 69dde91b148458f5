"""Genre lookup table.

Genre names and ids per media type and language, stored next to the page
cache. A language's genre list is imported in one all-or-nothing
transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.services.tmdb.tmdb_client import TMDBClient
from catalogvault.services.tmdb.tmdb_models import TMDBGenre
from catalogvault.shared.constants import Cache, MediaType
from catalogvault.shared.errors import (
    CacheLookupError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


def _tmdb_type(media_type: str) -> str:
    return MediaType.TO_TMDB.get(media_type, media_type)


class GenreStore:
    """Genre table on the cache database."""

    def __init__(self, cache_db: SQLiteCacheDB) -> None:
        self.cache_db = cache_db

    @property
    def _conn(self) -> sqlite3.Connection:
        if self.cache_db.conn is None:
            raise InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Database connection not initialized",
                context=ErrorContext(operation="genre_store"),
            )
        return self.cache_db.conn

    def store_genres(
        self,
        genres: Iterable[TMDBGenre],
        media_type: str,
        language: str,
    ) -> int:
        """Insert every genre in one transaction; existing rows are kept.

        Returns:
            Number of rows inserted

        Raises:
            InfrastructureError: If any insert fails (nothing is written)
        """
        tmdb_type = _tmdb_type(media_type)
        rows = [(genre.id, genre.name, tmdb_type, language) for genre in genres]
        conn = self._conn

        try:
            with self.cache_db.transaction():
                before = conn.total_changes
                conn.executemany(
                    f"INSERT INTO {Cache.TABLE_GENRES} "
                    "(genre_id, genre_name, media_type, language) "
                    "VALUES (?, ?, ?, ?) ON CONFLICT DO NOTHING",
                    rows,
                )
                inserted = conn.total_changes - before
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to store genres: {e!s}",
                context=ErrorContext(
                    operation="store_genres",
                    additional_data={"media_type": tmdb_type, "language": language},
                ),
                original_error=e,
            ) from e

        logger.info("Genres stored for %s (%s): %d new", tmdb_type, language, inserted)
        return inserted

    def _fetch_one(self, sql: str, params: tuple[object, ...], operation: str) -> tuple | None:
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise CacheLookupError(
                code=ErrorCode.CACHE_READ_FAILED,
                message=f"Genre lookup failed: {e!s}",
                context=ErrorContext(operation=operation),
                original_error=e,
            ) from e

    def get_genre_id(self, genre_name: str, media_type: str, language: str) -> int | None:
        row = self._fetch_one(
            f"SELECT genre_id FROM {Cache.TABLE_GENRES} "
            "WHERE genre_name = ? AND media_type = ? AND language = ?",
            (genre_name, _tmdb_type(media_type), language),
            "get_genre_id",
        )
        return row[0] if row else None

    def get_genre_name(self, genre_id: int, media_type: str, language: str) -> str | None:
        row = self._fetch_one(
            f"SELECT genre_name FROM {Cache.TABLE_GENRES} "
            "WHERE genre_id = ? AND media_type = ? AND language = ?",
            (genre_id, _tmdb_type(media_type), language),
            "get_genre_name",
        )
        return row[0] if row else None

    def has_language(self, language: str) -> bool:
        """True if any genre has been stored for ``language``."""
        row = self._fetch_one(
            f"SELECT 1 FROM {Cache.TABLE_GENRES} WHERE language = ? LIMIT 1",
            (language,),
            "has_language",
        )
        return row is not None


async def sync_genres(
    client: TMDBClient,
    store: GenreStore,
    language: str,
    api_key: str | None = None,
) -> dict[str, int]:
    """Fetch movie and TV genres for ``language`` and store both.

    Returns:
        Number of genres fetched per TMDB media type
    """
    counts: dict[str, int] = {}
    for media_type in (MediaType.TMDB_MOVIE, MediaType.TMDB_TV):
        genres = await client.fetch_genres(media_type, language, api_key=api_key)
        store.store_genres(genres, media_type, language)
        counts[media_type] = len(genres)
    return counts
