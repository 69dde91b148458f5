"""Speculative warming of the pages that follow a served page.

Prefetching is fire-and-forget: the triggering call gets an asyncio.Task back
and never waits on it, and failures are logged without propagating.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from catalogvault.services.cache_models import DimensionTuple, build_cache_key
from catalogvault.services.fetch_scheduler import FetchScheduler, FetchTask, UpstreamCredentials
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import Cache, TMDBConfig
from catalogvault.shared.errors import CatalogVaultError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    page: int
    skip: int
    cache_key: str
    params: dict[str, Any]
    settled: asyncio.Future[None] = field(compare=False)


class Prefetcher:
    """Warm up to ``page_count`` pages after the current one.

    Each candidate is skipped when it is already cached or already being
    prefetched, so rapid repeated triggers never duplicate upstream calls.
    The remaining candidates run concurrently through the scheduler. A
    foreground fetch can ``wait_for`` a key in flight instead of fetching it.
    """

    def __init__(
        self,
        cache_db: SQLiteCacheDB,
        scheduler: FetchScheduler,
        page_count: int = Cache.PREFETCH_PAGE_COUNT,
        ttl_seconds: int | None = None,
    ) -> None:
        self.cache_db = cache_db
        self.scheduler = scheduler
        self.page_count = page_count
        self.ttl_seconds = ttl_seconds
        self._in_flight: dict[str, asyncio.Future[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        """Cache keys currently being prefetched."""
        return frozenset(self._in_flight)

    async def wait_for(self, cache_key: str) -> bool:
        """Wait until an in-flight prefetch of ``cache_key`` settles.

        Returns:
            True if a prefetch was in flight, False otherwise
        """
        future = self._in_flight.get(cache_key)
        if future is None:
            return False
        await asyncio.shield(future)
        return True

    def _candidates(
        self,
        url: str,
        base_params: dict[str, Any],
        current_page: int,
        total_pages: int,
    ) -> list[_Candidate]:
        candidates: list[_Candidate] = []
        for i in range(1, self.page_count + 1):
            next_page = current_page + i
            if next_page > total_pages:
                logger.debug(
                    "Stopping prefetch: page %d exceeds total_pages %d",
                    next_page,
                    total_pages,
                )
                break

            params = {**base_params, "page": next_page}
            cache_key = build_cache_key(url, params)
            if cache_key in self._in_flight:
                continue

            try:
                warm = self.cache_db.get(cache_key) is not None
            except CatalogVaultError as e:
                logger.warning("Prefetch cache check failed for page %d: %s", next_page, e)
                continue
            if warm:
                continue

            candidates.append(
                _Candidate(
                    page=next_page,
                    skip=(current_page - 1) * TMDBConfig.PAGE_SIZE + next_page * TMDBConfig.PAGE_SIZE,
                    cache_key=cache_key,
                    params=params,
                    settled=asyncio.get_running_loop().create_future(),
                )
            )
        return candidates

    def prefetch(
        self,
        dimension: DimensionTuple,
        url: str,
        base_params: dict[str, Any],
        current_page: int,
        total_pages: int,
        credentials: UpstreamCredentials | None = None,
    ) -> asyncio.Task[None] | None:
        """Schedule background fetches for the pages after ``current_page``.

        Args:
            dimension: Dimension tuple the pages belong to
            url: Upstream URL without query string
            base_params: Query of the served page (``page`` is replaced)
            current_page: Page that was just served
            total_pages: Total page count reported by the upstream
            credentials: Credentials for the upstream calls

        Returns:
            The background task, or None when every candidate is warm
        """
        if self.page_count <= 0:
            return None

        candidates = self._candidates(url, base_params, current_page, total_pages)
        if not candidates:
            return None

        for candidate in candidates:
            self._in_flight[candidate.cache_key] = candidate.settled

        task = asyncio.create_task(
            self._run(dimension.fingerprint(), url, candidates, credentials, current_page),
            name=f"prefetch-after-{current_page}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _: self._settle_all(candidates))
        return task

    async def _run(
        self,
        dimension_hash: str,
        url: str,
        candidates: list[_Candidate],
        credentials: UpstreamCredentials | None,
        current_page: int,
    ) -> None:
        await asyncio.gather(
            *(
                self._fetch_one(dimension_hash, url, candidate, credentials)
                for candidate in candidates
            )
        )
        logger.debug("Finished prefetching pages after %d", current_page)

    def _settle(self, candidate: _Candidate) -> None:
        if self._in_flight.get(candidate.cache_key) is candidate.settled:
            del self._in_flight[candidate.cache_key]
        if not candidate.settled.done():
            candidate.settled.set_result(None)

    def _settle_all(self, candidates: list[_Candidate]) -> None:
        # A task cancelled before it starts never reaches _fetch_one
        for candidate in candidates:
            self._settle(candidate)

    async def _fetch_one(
        self,
        dimension_hash: str,
        url: str,
        candidate: _Candidate,
        credentials: UpstreamCredentials | None,
    ) -> None:
        try:
            data = await self.scheduler.submit(
                FetchTask(url=url, params=candidate.params, credentials=credentials)
            )
            self.cache_db.store(
                candidate.cache_key,
                data,
                page=candidate.page,
                skip=candidate.skip,
                dimension_hash=dimension_hash,
                ttl_seconds=self.ttl_seconds,
            )
            logger.debug(
                "Prefetched page %d (skip=%d)",
                candidate.page,
                candidate.skip,
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("Error prefetching page %d: %s", candidate.page, e)
        finally:
            self._settle(candidate)

    async def drain(self) -> None:
        """Wait for every running prefetch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
