"""Insert operations for SQLite cache."""

from __future__ import annotations

import logging

import orjson

from catalogvault.services.cache_models import CacheEntry, to_timestamp
from catalogvault.services.sqlite_cache.operations.base import BaseOperation
from catalogvault.shared.constants import Cache, CacheValidationConstants

logger = logging.getLogger(__name__)


class InsertOperations(BaseOperation):
    """Insert operations for cache storage."""

    def put(self, entry: CacheEntry) -> bool:
        """Upsert an entry, last write wins.

        A page beyond the total page count reported by the upstream is never
        cached.

        Returns:
            True if the entry was written, False if the write was suppressed

        Raises:
            TypeError: If the payload is not JSON-serializable
            sqlite3.Error: If the write fails
        """

        total_pages = entry.total_pages
        if total_pages is not None and entry.page > total_pages:
            self.statistics.record_suppressed_write()
            logger.debug(
                "Cache write suppressed: page %d beyond total_pages %d (key=%s)",
                entry.page,
                total_pages,
                entry.cache_key[: CacheValidationConstants.KEY_PREFIX_LOG_LENGTH],
            )
            return False

        payload = orjson.dumps(entry.payload).decode("utf-8")
        payload_size = len(payload.encode("utf-8"))

        insert_sql = f"""
        INSERT OR REPLACE INTO {Cache.TABLE_CATALOG} (
            cache_key, key_hash, dimension_hash, page, skip,
            payload, payload_size, created_at, expires_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """

        self.conn.execute(
            insert_sql,
            (
                entry.cache_key,
                entry.key_hash,
                entry.dimension_hash,
                entry.page,
                entry.skip,
                payload,
                payload_size,
                to_timestamp(entry.created_at),
                to_timestamp(entry.expires_at),
            ),
        )
        self.statistics.record_write()

        logger.debug(
            "Cache inserted: key=%s (hash=%s...), page=%d, skip=%d, size=%d bytes",
            entry.cache_key[: CacheValidationConstants.KEY_PREFIX_LOG_LENGTH],
            entry.key_hash[: CacheValidationConstants.HASH_PREFIX_LOG_LENGTH],
            entry.page,
            entry.skip,
            payload_size,
        )
        return True
