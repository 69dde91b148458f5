"""Watch provider catalogue.

The movie and TV provider lists are merged by provider name (first seen
wins) and upserted in one transaction. The stored catalogue is served while
it is younger than a day; after that it is fetched again.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime, timedelta

import orjson

from catalogvault.services.cache_models import parse_timestamp, to_timestamp, utc_now
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.services.tmdb.tmdb_client import TMDBClient
from catalogvault.services.tmdb.tmdb_models import TMDBWatchProvider
from catalogvault.shared.constants import Cache, MediaType
from catalogvault.shared.errors import (
    CacheLookupError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


def merge_providers(providers: Iterable[TMDBWatchProvider]) -> list[TMDBWatchProvider]:
    """Drop providers whose name was already seen, keeping input order."""
    merged: dict[str, TMDBWatchProvider] = {}
    for provider in providers:
        merged.setdefault(provider.provider_name, provider)
    return list(merged.values())


class ProviderStore:
    """Provider table on the cache database."""

    def __init__(self, cache_db: SQLiteCacheDB) -> None:
        self.cache_db = cache_db

    @property
    def _conn(self) -> sqlite3.Connection:
        if self.cache_db.conn is None:
            raise InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Database connection not initialized",
                context=ErrorContext(operation="provider_store"),
            )
        return self.cache_db.conn

    def store_providers(
        self,
        providers: Iterable[TMDBWatchProvider],
        now: datetime | None = None,
    ) -> list[TMDBWatchProvider]:
        """Merge by name and upsert every provider in one transaction.

        Returns:
            The merged providers that were written

        Raises:
            InfrastructureError: If any upsert fails (nothing is written)
        """
        unique = merge_providers(providers)
        fetched_at = to_timestamp(now or utc_now())
        rows = [
            (
                provider.provider_id,
                provider.provider_name,
                provider.logo_path,
                orjson.dumps(provider.display_priorities).decode("utf-8"),
                fetched_at,
            )
            for provider in unique
        ]
        conn = self._conn

        try:
            with self.cache_db.transaction():
                conn.executemany(
                    f"INSERT INTO {Cache.TABLE_PROVIDERS} "
                    "(provider_id, provider_name, logo_path, display_priorities, last_fetched) "
                    "VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT (provider_id) DO UPDATE SET "
                    "provider_name = excluded.provider_name, "
                    "logo_path = excluded.logo_path, "
                    "display_priorities = excluded.display_priorities, "
                    "last_fetched = excluded.last_fetched",
                    rows,
                )
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to store providers: {e!s}",
                context=ErrorContext(operation="store_providers"),
                original_error=e,
            ) from e

        logger.info("Providers updated in the database: %d", len(unique))
        return unique

    def get_providers(
        self,
        max_age_seconds: float = Cache.PROVIDER_MAX_AGE,
        now: datetime | None = None,
    ) -> list[TMDBWatchProvider] | None:
        """Stored catalogue, or None when it is empty or older than ``max_age_seconds``.

        Raises:
            CacheLookupError: If the database read fails
        """
        try:
            rows = self._conn.execute(
                "SELECT provider_id, provider_name, logo_path, display_priorities, last_fetched "
                f"FROM {Cache.TABLE_PROVIDERS} ORDER BY provider_name"
            ).fetchall()
        except sqlite3.Error as e:
            raise CacheLookupError(
                code=ErrorCode.CACHE_READ_FAILED,
                message=f"Provider lookup failed: {e!s}",
                context=ErrorContext(operation="get_providers"),
                original_error=e,
            ) from e

        if not rows:
            logger.info("No providers found in the database")
            return None

        oldest = min(parse_timestamp(row[4]) for row in rows)
        age = (now or utc_now()) - oldest
        if age >= timedelta(seconds=max_age_seconds):
            logger.info(
                "Providers are older than %.0f hours (%.2f hours since last fetch)",
                max_age_seconds / 3600,
                age.total_seconds() / 3600,
            )
            return None

        logger.debug("Fetched %d providers from the database", len(rows))
        return [
            TMDBWatchProvider(
                provider_id=provider_id,
                provider_name=provider_name,
                logo_path=logo_path,
                display_priorities=orjson.loads(display_priorities),
            )
            for provider_id, provider_name, logo_path, display_priorities, _ in rows
        ]


async def get_providers(
    client: TMDBClient,
    store: ProviderStore,
    api_key: str | None = None,
    max_age_seconds: float = Cache.PROVIDER_MAX_AGE,
    force: bool = False,
) -> list[TMDBWatchProvider]:
    """Serve the stored catalogue, refetching movie and TV lists when stale.

    Raises:
        UpstreamError: If either provider list cannot be fetched
        InfrastructureError: If the catalogue cannot be stored
    """
    if not force:
        stored = store.get_providers(max_age_seconds)
        if stored is not None:
            return stored

    movie_providers, tv_providers = await asyncio.gather(
        client.fetch_providers(MediaType.TMDB_MOVIE, api_key=api_key),
        client.fetch_providers(MediaType.TMDB_TV, api_key=api_key),
    )
    stored = store.store_providers([*movie_providers, *tv_providers])
    return sorted(stored, key=lambda provider: provider.provider_name)
