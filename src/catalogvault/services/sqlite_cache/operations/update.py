"""Update/delete operations for SQLite cache."""

from __future__ import annotations

import logging
from datetime import datetime

from catalogvault.services.cache_models import hash_key, to_timestamp, utc_now
from catalogvault.services.sqlite_cache.operations.base import BaseOperation
from catalogvault.shared.constants import Cache

logger = logging.getLogger(__name__)


class UpdateOperations(BaseOperation):
    """Update/delete operations for cache management."""

    def delete(self, key: str) -> bool:
        """Delete an entry by cache key; True if a row was removed."""
        cursor = self.conn.execute(
            f"DELETE FROM {Cache.TABLE_CATALOG} WHERE key_hash = ?",
            (hash_key(key),),
        )
        return cursor.rowcount > 0

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Delete every entry whose expiry has passed.

        Returns:
            Number of deleted entries
        """
        cursor = self.conn.execute(
            f"DELETE FROM {Cache.TABLE_CATALOG} WHERE expires_at <= ?",
            (to_timestamp(now or utc_now()),),
        )

        swept = cursor.rowcount
        if swept > 0:
            logger.info("Swept %d expired cache entries", swept)
        return swept

    def clear(self) -> int:
        """Delete every catalog entry."""
        cursor = self.conn.execute(f"DELETE FROM {Cache.TABLE_CATALOG}")
        logger.info("Cleared all cache entries")
        return cursor.rowcount
