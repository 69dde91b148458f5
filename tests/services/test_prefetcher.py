"""Tests for Prefetcher: bounds, idempotence and fire-and-forget failures."""

from __future__ import annotations

import asyncio

import pytest

from catalogvault.services.cache_models import DimensionTuple, build_cache_key
from catalogvault.services.fetch_scheduler import FetchScheduler
from catalogvault.services.prefetcher import Prefetcher
from catalogvault.services.sqlite_cache import SQLiteCacheDB

URL = "https://api.themoviedb.org/3/discover/movie"
BASE_PARAMS = {"with_watch_providers": "8", "sort_by": "popularity.desc", "page": 1}
DIMENSION = DimensionTuple(media_type="movie", provider_id="8", sort_by="popularity.desc")


def _key(page: int) -> str:
    return build_cache_key(URL, {**BASE_PARAMS, "page": page})


class TestPrefetcher:
    @pytest.mark.asyncio
    async def test_warms_next_pages(self, cache_db: SQLiteCacheDB, upstream_factory) -> None:
        # Given
        upstream = upstream_factory(total_pages=10)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=3)

        # When
        task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        assert task is not None
        await task
        await scheduler.aclose()

        # Then
        assert sorted(upstream.pages_requested()) == [2, 3, 4]
        for page in (2, 3, 4):
            entry = cache_db.get(_key(page))
            assert entry is not None
            assert entry.dimension_hash == DIMENSION.fingerprint()

    @pytest.mark.asyncio
    async def test_prefetched_skip_values(self, cache_db: SQLiteCacheDB, upstream_factory) -> None:
        """Page p warmed from page c is stored with skip (c - 1) * 20 + p * 20."""
        upstream = upstream_factory(total_pages=10)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=2)

        task = prefetcher.prefetch(
            DIMENSION, URL, {**BASE_PARAMS, "page": 2}, current_page=2, total_pages=10
        )
        assert task is not None
        await task
        await scheduler.aclose()

        assert cache_db.get(_key(3)).skip == 80
        assert cache_db.get(_key(4)).skip == 100

    @pytest.mark.asyncio
    async def test_stops_at_total_pages(self, cache_db: SQLiteCacheDB, upstream_factory) -> None:
        upstream = upstream_factory(total_pages=5)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=5)

        task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=4, total_pages=5)
        assert task is not None
        await task
        await scheduler.aclose()

        assert upstream.pages_requested() == [5]

    @pytest.mark.asyncio
    async def test_last_page_schedules_nothing(self, cache_db: SQLiteCacheDB, upstream_factory) -> None:
        upstream = upstream_factory(total_pages=5)
        scheduler = FetchScheduler("tmdb", upstream)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=5)

        assert prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=5, total_pages=5) is None
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_disabled_with_zero_page_count(self, cache_db: SQLiteCacheDB, upstream_factory) -> None:
        scheduler = FetchScheduler("tmdb", upstream_factory())
        prefetcher = Prefetcher(cache_db, scheduler, page_count=0)

        assert prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10) is None


class TestPrefetcherIdempotence:
    """Repeated triggers never duplicate upstream calls."""

    @pytest.mark.asyncio
    async def test_immediate_second_trigger_is_noop(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        # Given a slow upstream so the first prefetch is still running
        upstream = upstream_factory(total_pages=10, delay=0.02)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=3)

        # When
        first = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        second = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        await prefetcher.drain()
        await scheduler.aclose()

        # Then
        assert first is not None
        assert second is None
        assert sorted(upstream.pages_requested()) == [2, 3, 4]
        assert prefetcher.in_flight == frozenset()

    @pytest.mark.asyncio
    async def test_warm_pages_are_not_fetched_again(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        upstream = upstream_factory(total_pages=10)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=3)

        await prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        again = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        await scheduler.aclose()

        assert again is None
        assert len(upstream.calls) == 3

    @pytest.mark.asyncio
    async def test_overlapping_window_fetches_only_cold_pages(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        upstream = upstream_factory(total_pages=10)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=3)

        await prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=2, total_pages=10)
        assert task is not None
        await task
        await scheduler.aclose()

        assert sorted(upstream.pages_requested()) == [2, 3, 4, 5]


class TestPrefetcherFailures:
    """Failures are logged and never reach the caller."""

    @pytest.mark.asyncio
    async def test_upstream_failure_is_swallowed(
        self, cache_db: SQLiteCacheDB, upstream_factory, caplog
    ) -> None:
        # Given every call failing
        upstream = upstream_factory(fail_regions=(None,))
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=2)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=2)

        # When
        with caplog.at_level("WARNING", logger="catalogvault.services.prefetcher"):
            task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
            assert task is not None
            await task
        await scheduler.aclose()

        # Then
        assert task.exception() is None
        assert prefetcher.in_flight == frozenset()
        assert cache_db.get(_key(2)) is None
        assert "Error prefetching page" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_page_can_be_retried_later(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        upstream = upstream_factory(fail_regions=(None,))
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=2)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=1)

        await prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        upstream.fail_regions = ()
        await prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        await scheduler.aclose()

        assert cache_db.get(_key(2)) is not None
        assert len(upstream.calls) == 2

    @pytest.mark.asyncio
    async def test_triggering_call_does_not_wait(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        upstream = upstream_factory(total_pages=10, delay=0.05)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=2)

        task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)

        assert task is not None
        assert not task.done()
        await asyncio.wait_for(prefetcher.drain(), timeout=1.0)
        await scheduler.aclose()


class TestPrefetcherWaitFor:
    @pytest.mark.asyncio
    async def test_wait_for_returns_once_page_is_stored(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        # Given
        upstream = upstream_factory(total_pages=10, delay=0.05)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=1)
        prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)

        # When
        waited = await asyncio.wait_for(prefetcher.wait_for(_key(2)), timeout=1.0)
        await scheduler.aclose()

        # Then
        assert waited is True
        assert cache_db.get(_key(2)) is not None

    @pytest.mark.asyncio
    async def test_wait_for_unknown_key_returns_immediately(
        self, cache_db: SQLiteCacheDB, tmdb_scheduler
    ) -> None:
        prefetcher = Prefetcher(cache_db, tmdb_scheduler, page_count=1)

        assert await prefetcher.wait_for(_key(5)) is False

    @pytest.mark.asyncio
    async def test_cancelled_prefetch_releases_waiters(
        self, cache_db: SQLiteCacheDB, upstream_factory
    ) -> None:
        upstream = upstream_factory(total_pages=10, delay=0.05)
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=5)
        prefetcher = Prefetcher(cache_db, scheduler, page_count=2)
        task = prefetcher.prefetch(DIMENSION, URL, BASE_PARAMS, current_page=1, total_pages=10)
        assert task is not None

        waiter = asyncio.ensure_future(prefetcher.wait_for(_key(3)))
        task.cancel()
        waited = await asyncio.wait_for(waiter, timeout=1.0)
        await scheduler.aclose()

        assert waited is True
        assert prefetcher.in_flight == frozenset()
