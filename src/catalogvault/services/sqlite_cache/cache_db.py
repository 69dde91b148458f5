"""SQLite cache database facade.

Durable store for fetched discover pages. Uses WAL mode and auto-commit;
concurrent writers for the same key rely on upsert semantics, while
multi-row updates go through ``transaction()``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from catalogvault.services.cache_models import CacheEntry, utc_now
from catalogvault.services.sqlite_cache.migration.manager import MigrationManager
from catalogvault.services.sqlite_cache.operations.insert import InsertOperations
from catalogvault.services.sqlite_cache.operations.query import QueryOperations
from catalogvault.services.sqlite_cache.operations.update import UpdateOperations
from catalogvault.services.sqlite_cache.transaction.manager import TransactionManager
from catalogvault.services.statistics import CacheStatistics
from catalogvault.shared.constants import BASE_DAY, Cache
from catalogvault.shared.errors import (
    CacheLookupError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)
from catalogvault.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)


class SQLiteCacheDB:
    """SQLite-backed catalog page cache.

    Read failures raise CacheLookupError so callers can treat them as a miss;
    write failures raise InfrastructureError. Every operation on a closed
    store raises InfrastructureError with code CACHE_ERROR.

    Example:
        >>> cache = SQLiteCacheDB(Path("catalog.db"))
        >>> cache.store("/discover/movie?page=1", payload, page=1, skip=0)
        >>> entry = cache.get("/discover/movie?page=1")
        >>> cache.close()
    """

    def __init__(
        self,
        db_path: Path | str,
        statistics: CacheStatistics | None = None,
        default_ttl_seconds: int = Cache.CATALOG_TTL_DAYS * BASE_DAY,
    ) -> None:
        """Open (and create if needed) the cache database.

        Raises:
            InfrastructureError: If database initialization fails
        """
        self.db_path = Path(db_path)
        self.statistics = statistics or CacheStatistics()
        self.default_ttl_seconds = default_ttl_seconds
        self.conn: sqlite3.Connection | None = None
        self._initialize_db()

    def _initialize_db(self) -> None:
        context = ErrorContext(
            operation="initialize_db",
            additional_data={"db_path": str(self.db_path)},
        )

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")

            self.migration_manager = MigrationManager(self.conn)
            self.migration_manager.create_tables()
            if not self.migration_manager.validate_schema():
                raise InfrastructureError(
                    code=ErrorCode.CACHE_INIT_FAILED,
                    message="SQLite cache schema is incomplete",
                    context=context,
                )

            self._query_ops = QueryOperations(self._connection, self.statistics)
            self._insert_ops = InsertOperations(self._connection, self.statistics)
            self._update_ops = UpdateOperations(self._connection, self.statistics)

            log_operation_success(
                logger=logger,
                operation="initialize_db",
                duration_ms=0,
                context=context.additional_data,
            )

        except (sqlite3.Error, OSError) as e:
            error = InfrastructureError(
                code=ErrorCode.CACHE_INIT_FAILED,
                message=f"Failed to initialize SQLite cache: {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(
                logger=logger,
                error=error,
                operation="initialize_db",
            )
            raise error from e

    def _connection(self) -> sqlite3.Connection | None:
        return self.conn

    def _lookup_error(self, operation: str, error: Exception, **data: Any) -> CacheLookupError:
        return CacheLookupError(
            code=ErrorCode.CACHE_READ_FAILED,
            message=f"Cache {operation} failed: {error!s}",
            context=ErrorContext(operation=operation, additional_data=data),
            original_error=error,
        )

    def get(self, key: str, now: datetime | None = None) -> CacheEntry | None:
        """Return the fresh entry for ``key`` or None if absent or expired.

        Raises:
            CacheLookupError: If the database read fails
        """
        try:
            return self._query_ops.get(key, now)
        except sqlite3.Error as e:
            raise self._lookup_error("get", e) from e

    def put(self, entry: CacheEntry) -> bool:
        """Upsert an entry; suppressed (False) when page > total_pages.

        Raises:
            InfrastructureError: If the payload cannot be serialized or the
                write fails
        """
        context = ErrorContext(
            operation="put",
            additional_data={"page": entry.page, "skip": entry.skip},
        )
        try:
            return self._insert_ops.put(entry)
        except TypeError as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_SERIALIZATION_ERROR,
                message=f"Cache payload is not serializable: {e!s}",
                context=context,
                original_error=e,
            ) from e
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Cache write failed: {e!s}",
                context=context,
                original_error=e,
            ) from e

    def store(
        self,
        key: str,
        payload: dict[str, Any],
        page: int = 1,
        skip: int = 0,
        dimension_hash: str | None = None,
        ttl_seconds: int | None = None,
    ) -> bool:
        """Build an entry expiring after ``ttl_seconds`` and put it."""
        now = utc_now()
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(
            cache_key=key,
            payload=payload,
            expires_at=now + timedelta(seconds=ttl),
            page=page,
            skip=skip,
            dimension_hash=dimension_hash,
            created_at=now,
        )
        return self.put(entry)

    def query_predecessor(
        self,
        dimension_hash: str,
        skip: int,
        now: datetime | None = None,
    ) -> CacheEntry | None:
        """Closest fresh entry of the tuple with ``entry.skip <= skip``.

        Raises:
            CacheLookupError: If the database read fails
        """
        try:
            return self._query_ops.query_predecessor(dimension_hash, skip, now)
        except sqlite3.Error as e:
            raise self._lookup_error("query_predecessor", e, skip=skip) from e

    def query_latest(
        self,
        dimension_hash: str,
        now: datetime | None = None,
    ) -> CacheEntry | None:
        """Most recent fresh entry of the tuple regardless of skip.

        Raises:
            CacheLookupError: If the database read fails
        """
        try:
            return self._query_ops.query_latest(dimension_hash, now)
        except sqlite3.Error as e:
            raise self._lookup_error("query_latest", e) from e

    def delete(self, key: str) -> bool:
        return self._update_ops.delete(key)

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Delete entries past their expiry; returns the number removed.

        Raises:
            InfrastructureError: If the delete fails
        """
        try:
            return self._update_ops.sweep_expired(now)
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Cache sweep failed: {e!s}",
                context=ErrorContext(operation="sweep_expired"),
                original_error=e,
            ) from e

    def clear(self) -> int:
        return self._update_ops.clear()

    def transaction(self) -> TransactionManager:
        """All-or-nothing context for multi-row updates."""
        return TransactionManager(self._update_ops.conn)

    def get_cache_info(self) -> dict[str, Any]:
        """Get cache statistics and metadata.

        Returns:
            Dictionary with:
            - db_path: Path of the database file
            - total_entries: Number of stored entries
            - valid_entries: Number of non-expired entries
            - expired_entries: Number of expired entries awaiting a sweep
            - total_size_bytes: Total payload size
            - schema_version: Applied schema version
            - plus the hit/miss/write counters of this store
        """
        try:
            total, fresh, size = self._query_ops.count_entries()
        except sqlite3.Error as e:
            raise self._lookup_error("get_cache_info", e) from e

        return {
            "db_path": str(self.db_path),
            "total_entries": total,
            "valid_entries": fresh,
            "expired_entries": total - fresh,
            "total_size_bytes": size,
            "schema_version": self.migration_manager.get_current_version(),
            **self.statistics.to_dict(),
        }

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite cache connection: %s", self.db_path)
