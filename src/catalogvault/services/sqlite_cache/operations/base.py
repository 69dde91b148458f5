"""Base operation class for SQLite cache operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from catalogvault.shared.errors import ErrorCode, ErrorContext, InfrastructureError

if TYPE_CHECKING:
    import sqlite3

    from catalogvault.services.statistics import CacheStatistics

logger = logging.getLogger(__name__)

CATALOG_COLUMNS = (
    "cache_key, key_hash, payload, expires_at, page, skip, dimension_hash, created_at"
)


class BaseOperation:
    """Base class for cache operations with shared functionality.

    Operations read the facade's connection through ``connection`` on every
    call, so closing the facade is seen by every operation object.
    """

    def __init__(
        self,
        connection: Callable[[], sqlite3.Connection | None],
        statistics: CacheStatistics,
    ) -> None:
        self._connection = connection
        self.statistics = statistics

    @property
    def conn(self) -> sqlite3.Connection:
        return self._validate_connection()

    def _validate_connection(self) -> sqlite3.Connection:
        """Return the open connection; raise if the store has been closed."""
        conn = self._connection()
        if conn is None:
            raise InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Database connection not initialized",
                context=ErrorContext(operation=type(self).__name__),
            )
        return conn
