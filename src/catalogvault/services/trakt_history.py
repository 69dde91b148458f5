"""Trakt watch history on the cache database.

A user's watched movies and shows are downloaded at most once per fetch
interval and imported per media type in one all-or-nothing transaction.
Discover results whose TMDB id is in the history get a watched marker in
front of their title.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from catalogvault.services.cache_models import parse_timestamp, to_timestamp, utc_now
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.services.trakt import TraktClient, WatchedEntry, trakt_media_type
from catalogvault.shared.constants import Cache, MediaType, TraktConfig
from catalogvault.shared.errors import (
    CacheLookupError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    UpstreamError,
    create_configuration_error,
)

logger = logging.getLogger(__name__)

_UNAUTHORIZED = 401


@dataclass(frozen=True)
class StoredTokens:
    access_token: str
    refresh_token: str | None
    last_fetched_at: datetime | None


class TraktHistoryStore:
    """History and token tables on the cache database."""

    def __init__(self, cache_db: SQLiteCacheDB) -> None:
        self.cache_db = cache_db

    @property
    def _conn(self) -> sqlite3.Connection:
        if self.cache_db.conn is None:
            raise InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Database connection not initialized",
                context=ErrorContext(operation="trakt_history"),
            )
        return self.cache_db.conn

    def _write_error(self, operation: str, error: sqlite3.Error, **data: Any) -> InfrastructureError:
        return InfrastructureError(
            code=ErrorCode.CACHE_WRITE_FAILED,
            message=f"Trakt {operation} failed: {error!s}",
            context=ErrorContext(operation=operation, additional_data=data),
            original_error=error,
        )

    def _read_error(self, operation: str, error: sqlite3.Error) -> CacheLookupError:
        return CacheLookupError(
            code=ErrorCode.CACHE_READ_FAILED,
            message=f"Trakt {operation} failed: {error!s}",
            context=ErrorContext(operation=operation),
            original_error=error,
        )

    def import_history(
        self,
        username: str,
        media_type: str,
        entries: Iterable[WatchedEntry],
    ) -> int:
        """Upsert every entry in one transaction.

        Returns:
            Number of entries written

        Raises:
            InfrastructureError: If any row fails (nothing is written)
        """
        trakt_type = trakt_media_type(media_type)
        rows = [
            (
                username,
                trakt_type,
                entry.trakt_id,
                entry.tmdb_id,
                entry.imdb_id,
                entry.title,
                entry.watched_at,
            )
            for entry in entries
        ]
        if not rows:
            logger.warning("No %s history to save for user %s", trakt_type, username)
            return 0

        conn = self._conn
        try:
            with self.cache_db.transaction():
                conn.executemany(
                    f"INSERT INTO {Cache.TABLE_TRAKT_HISTORY} "
                    "(username, media_type, trakt_id, tmdb_id, imdb_id, title, watched_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT (username, media_type, trakt_id) DO UPDATE SET "
                    "tmdb_id = excluded.tmdb_id, imdb_id = excluded.imdb_id, "
                    "title = excluded.title, watched_at = excluded.watched_at",
                    rows,
                )
        except sqlite3.Error as e:
            raise self._write_error(
                "import_history", e, username=username, media_type=trakt_type
            ) from e

        logger.info("History saved for user %s (%s): %d items", username, trakt_type, len(rows))
        return len(rows)

    def watched_tmdb_ids(self, username: str, media_type: str) -> frozenset[int]:
        """TMDB ids in the history of ``username`` for one media type."""
        trakt_type = trakt_media_type(media_type)
        try:
            rows = self._conn.execute(
                f"SELECT tmdb_id FROM {Cache.TABLE_TRAKT_HISTORY} "
                "WHERE username = ? AND media_type = ? AND tmdb_id IS NOT NULL",
                (username, trakt_type),
            ).fetchall()
        except sqlite3.Error as e:
            raise self._read_error("watched_tmdb_ids", e) from e

        logger.debug(
            "Trakt history for user %s with type %s: %d items",
            username,
            trakt_type,
            len(rows),
        )
        return frozenset(row[0] for row in rows)

    def save_tokens(self, username: str, access_token: str, refresh_token: str | None) -> None:
        """Insert or replace the token pair; the last fetch time is kept."""
        try:
            self._conn.execute(
                f"INSERT INTO {Cache.TABLE_TRAKT_TOKENS} (username, access_token, refresh_token) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT (username) DO UPDATE SET "
                "access_token = excluded.access_token, refresh_token = excluded.refresh_token",
                (username, access_token, refresh_token),
            )
        except sqlite3.Error as e:
            raise self._write_error("save_tokens", e, username=username) from e
        logger.info("Tokens saved for user %s", username)

    def get_tokens(self, username: str) -> StoredTokens | None:
        try:
            row = self._conn.execute(
                f"SELECT access_token, refresh_token, last_fetched_at "
                f"FROM {Cache.TABLE_TRAKT_TOKENS} WHERE username = ?",
                (username,),
            ).fetchone()
        except sqlite3.Error as e:
            raise self._read_error("get_tokens", e) from e

        if row is None:
            return None
        access_token, refresh_token, last_fetched_at = row
        return StoredTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            last_fetched_at=parse_timestamp(last_fetched_at) if last_fetched_at else None,
        )

    def mark_fetched(self, username: str, when: datetime) -> None:
        try:
            self._conn.execute(
                f"UPDATE {Cache.TABLE_TRAKT_TOKENS} SET last_fetched_at = ? WHERE username = ?",
                (to_timestamp(when), username),
            )
        except sqlite3.Error as e:
            raise self._write_error("mark_fetched", e, username=username) from e


def mark_watched(
    results: Iterable[dict[str, Any]],
    watched_ids: frozenset[int] | set[int],
    emoji: str = TraktConfig.WATCHED_EMOJI,
) -> list[dict[str, Any]]:
    """Copy ``results``, prefixing the title of every watched item with ``emoji``.

    Movies carry ``title`` and TV shows ``name``; whichever is present is
    prefixed.
    """
    marked: list[dict[str, Any]] = []
    for item in results:
        if item.get("id") in watched_ids:
            key = "title" if "title" in item else "name"
            item = {**item, key: f"{emoji} {item.get(key) or ''}".rstrip()}
        marked.append(item)
    return marked


async def _fetch_all(
    client: TraktClient,
    username: str,
    access_token: str,
) -> dict[str, list[WatchedEntry]]:
    movies, shows = await asyncio.gather(
        client.fetch_watched(username, MediaType.TRAKT_MOVIE, access_token),
        client.fetch_watched(username, MediaType.TRAKT_SHOW, access_token),
    )
    return {MediaType.TRAKT_MOVIE: movies, MediaType.TRAKT_SHOW: shows}


async def sync_trakt_history(
    client: TraktClient,
    store: TraktHistoryStore,
    username: str,
    interval_seconds: float = TraktConfig.HISTORY_FETCH_INTERVAL,
    force: bool = False,
    now: datetime | None = None,
) -> dict[str, int] | None:
    """Download and import the history of ``username`` when it is due.

    An expired access token (HTTP 401) is refreshed once and the download
    retried with the new token.

    Returns:
        Entries imported per Trakt media type, or None when the stored
        history is younger than ``interval_seconds``

    Raises:
        ConfigurationError: If no tokens are stored for ``username``
        UpstreamError: If the download or the token refresh fails
        InfrastructureError: If the import fails
    """
    tokens = store.get_tokens(username)
    if tokens is None:
        raise create_configuration_error(
            f"No Trakt tokens stored for user {username}",
            field="trakt.access_token",
            operation="sync_trakt_history",
            code=ErrorCode.CONFIGURATION_ERROR,
        )

    now = now or utc_now()
    due = tokens.last_fetched_at is None or now - tokens.last_fetched_at >= timedelta(
        seconds=interval_seconds
    )
    if not force and not due:
        logger.debug("Trakt history of %s is fresh, skipping download", username)
        return None

    try:
        histories = await _fetch_all(client, username, tokens.access_token)
    except UpstreamError as e:
        if e.status_code != _UNAUTHORIZED or not tokens.refresh_token:
            raise
        logger.warning("Token expired for user %s, refreshing token", username)
        refreshed = await client.refresh_token(tokens.refresh_token)
        store.save_tokens(username, refreshed.access_token, refreshed.refresh_token)
        histories = await _fetch_all(client, username, refreshed.access_token)

    counts = {
        media_type: store.import_history(username, media_type, entries)
        for media_type, entries in histories.items()
    }
    store.mark_fetched(username, now)
    return counts
