"""Cursor-to-page resolution.

Callers paginate by item offset (``skip``), the upstream by page number.
Because upstream page contents shift between calls, the page is never derived
from ``skip`` alone: the resolver uses earlier cached pages of the same
dimension tuple as a monotonic hint.

1. ``skip`` of 0 (or unset) is page 1.
2. Otherwise the cached entry with the largest ``skip <= requested`` gives
   ``page + 1``.
3. Otherwise the most recent entry of the tuple gives ``page + 1``.
4. Otherwise page 1.

Any storage failure resolves to page 1.
"""

from __future__ import annotations

import logging
import sqlite3

from catalogvault.services.cache_models import DimensionTuple
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.errors import (
    CacheLookupError,
    CatalogVaultError,
    ErrorCode,
    ErrorContext,
)
from catalogvault.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

FIRST_PAGE = 1


class SkipResolver:
    """Map a caller cursor to an upstream page number using cache history."""

    def __init__(self, cache_db: SQLiteCacheDB) -> None:
        self.cache_db = cache_db

    def resolve(self, dimension: DimensionTuple, skip: int | None) -> int:
        """Return the upstream page to request for ``skip``."""
        if not skip or skip <= 0:
            return FIRST_PAGE

        dimension_hash = dimension.fingerprint()
        try:
            predecessor = self.cache_db.query_predecessor(dimension_hash, skip)
            if predecessor is not None:
                logger.debug(
                    "skip=%d resolved from predecessor (skip=%d, page=%d)",
                    skip,
                    predecessor.skip,
                    predecessor.page,
                )
                return predecessor.page + 1

            # Not an exact mapping when the latest entry lies beyond skip.
            latest = self.cache_db.query_latest(dimension_hash)
            if latest is not None:
                logger.debug(
                    "skip=%d resolved from latest entry (skip=%d, page=%d)",
                    skip,
                    latest.skip,
                    latest.page,
                )
                return latest.page + 1
        except (CacheLookupError, sqlite3.Error) as e:
            error = (
                e
                if isinstance(e, CatalogVaultError)
                else CacheLookupError(
                    code=ErrorCode.CACHE_READ_FAILED,
                    message=f"Skip resolution failed: {e!s}",
                    context=ErrorContext(operation="resolve_skip"),
                    original_error=e,
                )
            )
            log_operation_error(
                logger=logger,
                error=error,
                operation="resolve_skip",
                additional_context={"skip": skip},
                level=logging.WARNING,
            )
            return FIRST_PAGE

        logger.debug("skip=%d has no cache history, using page 1", skip)
        return FIRST_PAGE
