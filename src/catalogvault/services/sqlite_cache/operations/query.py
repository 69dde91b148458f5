"""Query operations for SQLite cache.

Every read applies the freshness predicate: expired rows stay in the table
until swept and must never be returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import orjson

from catalogvault.services.cache_models import (
    CacheEntry,
    hash_key,
    is_fresh,
    parse_timestamp,
    to_timestamp,
    utc_now,
)
from catalogvault.services.sqlite_cache.operations.base import CATALOG_COLUMNS, BaseOperation
from catalogvault.shared.constants import Cache, CacheValidationConstants

logger = logging.getLogger(__name__)


def _build_cache_entry_from_row(row: tuple[Any, ...]) -> CacheEntry | None:
    """Build CacheEntry from a catalog row, None if the row is unreadable."""
    cache_key, key_hash, payload, expires_at, page, skip, dimension_hash, created_at = row
    try:
        return CacheEntry(
            cache_key=cache_key,
            key_hash=key_hash,
            payload=orjson.loads(payload),
            expires_at=parse_timestamp(expires_at),
            page=page,
            skip=skip,
            dimension_hash=dimension_hash,
            created_at=parse_timestamp(created_at),
        )
    except (orjson.JSONDecodeError, ValueError, TypeError) as e:
        logger.warning(
            "Failed to reconstruct CacheEntry for key hash %s...: %s",
            key_hash[: CacheValidationConstants.HASH_PREFIX_LOG_LENGTH],
            str(e),
        )
        return None


class QueryOperations(BaseOperation):
    """Query operations for cache retrieval."""

    def _select_one(self, where: str, params: tuple[Any, ...]) -> CacheEntry | None:
        sql = (
            f"SELECT {CATALOG_COLUMNS} FROM {Cache.TABLE_CATALOG} "
            f"WHERE {where} ORDER BY skip DESC, created_at DESC LIMIT 1"
        )
        row = self.conn.execute(sql, params).fetchone()
        return _build_cache_entry_from_row(row) if row else None

    def get(self, key: str, now: datetime | None = None) -> CacheEntry | None:
        """Retrieve a fresh entry by cache key.

        Raises:
            sqlite3.Error: If the query fails
        """
        key_hash = hash_key(key)

        row = self.conn.execute(
            f"SELECT {CATALOG_COLUMNS} FROM {Cache.TABLE_CATALOG} WHERE key_hash = ?",
            (key_hash,),
        ).fetchone()

        entry = _build_cache_entry_from_row(row) if row else None
        if entry is None or not is_fresh(entry.expires_at, now):
            self.statistics.record_cache_miss()
            logger.debug(
                "Cache miss: key=%s",
                key[: CacheValidationConstants.KEY_PREFIX_LOG_LENGTH],
            )
            return None

        self.statistics.record_cache_hit()
        logger.debug(
            "Cache hit: key=%s (page=%d, skip=%d)",
            key[: CacheValidationConstants.KEY_PREFIX_LOG_LENGTH],
            entry.page,
            entry.skip,
        )
        return entry

    def query_predecessor(
        self,
        dimension_hash: str,
        skip: int,
        now: datetime | None = None,
    ) -> CacheEntry | None:
        """Fresh entry of the tuple with the largest skip not above ``skip``."""
        return self._select_one(
            "dimension_hash = ? AND skip <= ? AND expires_at > ?",
            (dimension_hash, skip, to_timestamp(now or utc_now())),
        )

    def query_latest(
        self,
        dimension_hash: str,
        now: datetime | None = None,
    ) -> CacheEntry | None:
        """Most recent fresh entry of the tuple: largest skip, then newest write."""
        return self._select_one(
            "dimension_hash = ? AND expires_at > ?",
            (dimension_hash, to_timestamp(now or utc_now())),
        )

    def count_entries(self, now: datetime | None = None) -> tuple[int, int, int]:
        """Return (total, fresh, payload bytes)."""
        total, size = self.conn.execute(
            f"SELECT COUNT(*), COALESCE(SUM(payload_size), 0) FROM {Cache.TABLE_CATALOG}"
        ).fetchone()
        fresh = self.conn.execute(
            f"SELECT COUNT(*) FROM {Cache.TABLE_CATALOG} WHERE expires_at > ?",
            (to_timestamp(now or utc_now()),),
        ).fetchone()[0]
        return total, fresh, size


__all__ = ["QueryOperations"]
