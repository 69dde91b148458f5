"""Periodic deletion of expired cache entries.

Reads already filter by freshness, so sweeping only reclaims storage.
"""

from __future__ import annotations

import asyncio
import logging

from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import Cache
from catalogvault.shared.errors import CatalogVaultError
from catalogvault.shared.logging import log_operation_error

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Run ``sweep_expired`` once or on a fixed interval."""

    def __init__(
        self,
        cache_db: SQLiteCacheDB,
        interval_seconds: float = Cache.SWEEP_INTERVAL,
    ) -> None:
        self.cache_db = cache_db
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    def sweep_once(self) -> int:
        """Sweep now; returns the number of deleted entries (0 on failure)."""
        try:
            swept = self.cache_db.sweep_expired()
        except CatalogVaultError as e:
            log_operation_error(logger=logger, error=e, operation="sweep_expired")
            return 0
        logger.info("Cache cleanup completed: %d expired entries removed", swept)
        return swept

    async def run_forever(self) -> None:
        """Sweep every ``interval_seconds`` until cancelled."""
        while True:
            self.sweep_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task[None]:
        """Run the sweep loop as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="cache-sweeper")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
