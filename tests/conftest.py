"""
Pytest configuration and shared fixtures for CatalogVault tests.

Every test that touches SQLite gets its own database under ``tmp_path``, and
upstream calls are served by an in-process fake executor.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from catalogvault.config import (
    CacheSettings,
    SchedulerSettings,
    Settings,
    UpstreamSettings,
    UpstreamsSettings,
    reset_config,
)
from catalogvault.services.fetch_scheduler import FetchScheduler, FetchTask
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import TMDBConfig
from catalogvault.shared.errors import create_upstream_error

TEST_API_KEY = "test_api_key_for_ci_testing_only"  # pragma: allowlist secret


WATCHED_MOVIES: list[dict[str, Any]] = [
    {
        "last_watched_at": "2024-03-01T20:00:00.000Z",
        "movie": {"title": "Title 100", "ids": {"trakt": 1, "tmdb": 100, "imdb": "tt0000100"}},
    },
    {
        "last_watched_at": "2024-03-02T20:00:00.000Z",
        "movie": {"title": "Title 102", "ids": {"trakt": 2, "tmdb": 102, "imdb": "tt0000102"}},
    },
]

WATCHED_SHOWS: list[dict[str, Any]] = [
    {
        "last_watched_at": "2024-03-03T20:00:00.000Z",
        "show": {"title": "Show 101", "ids": {"trakt": 7, "tmdb": 101, "imdb": None}},
    },
]

PROVIDERS_MOVIE: list[dict[str, Any]] = [
    {"provider_id": 8, "provider_name": "Netflix", "logo_path": "/n.jpg", "display_priorities": {"US": 1}},
    {"provider_id": 337, "provider_name": "Disney Plus", "logo_path": "/d.jpg", "display_priorities": {"US": 2}},
]

PROVIDERS_TV: list[dict[str, Any]] = [
    {"provider_id": 8, "provider_name": "Netflix", "logo_path": "/n-tv.jpg", "display_priorities": {"FR": 1}},
    {"provider_id": 9, "provider_name": "Amazon Prime Video", "logo_path": None, "display_priorities": {}},
]


def make_discover_payload(
    page: int,
    total_pages: int,
    ids: list[int] | None = None,
    region: str | None = None,
) -> dict[str, Any]:
    """Build a TMDB /discover response."""
    if ids is None:
        ids = [page * 100 + i for i in range(3)]
    return {
        "page": page,
        "results": [
            {"id": item_id, "title": f"Title {item_id}", "region": region}
            for item_id in ids
        ],
        "total_pages": total_pages,
        "total_results": total_pages * TMDBConfig.PAGE_SIZE,
    }


class FakeUpstream:
    """Async executor standing in for the HTTP client.

    Records every task it receives. Regions listed in ``fail_regions``
    answer with an HTTP 500 error. Besides /discover it serves genre lists,
    watch provider lists, Trakt watched lists and the Trakt token endpoint;
    Trakt reads with a bearer token in ``expired_tokens`` answer HTTP 401.
    """

    def __init__(
        self,
        total_pages: int = 10,
        ids_by_region: dict[str | None, list[int]] | None = None,
        fail_regions: tuple[str | None, ...] = (),
        delay: float = 0.0,
    ) -> None:
        self.total_pages = total_pages
        self.ids_by_region = ids_by_region or {}
        self.fail_regions = fail_regions
        self.delay = delay
        self.calls: list[FetchTask] = []
        self.watched: dict[str, list[dict[str, Any]]] = {
            "movies": WATCHED_MOVIES,
            "shows": WATCHED_SHOWS,
        }
        self.expired_tokens: set[str] = set()

    def pages_requested(self) -> list[int]:
        return [int(task.params["page"]) for task in self.calls if "page" in task.params]

    async def __call__(self, task: FetchTask) -> Any:
        self.calls.append(task)
        await asyncio.sleep(self.delay)

        if "/genre/" in task.url:
            return {
                "genres": [
                    {"id": 28, "name": "Action"},
                    {"id": 35, "name": "Comedy"},
                    {"id": 18, "name": "Drama"},
                ]
            }

        if "/watch/providers/" in task.url:
            return {"results": PROVIDERS_TV if task.url.endswith("/tv") else PROVIDERS_MOVIE}

        if task.url.endswith("/oauth/token"):
            return {"access_token": "fresh-access", "refresh_token": "fresh-refresh"}

        if "/watched/" in task.url:
            credentials = task.credentials
            if credentials is not None and credentials.bearer_token in self.expired_tokens:
                raise create_upstream_error(
                    f"GET {task.url} returned HTTP 401",
                    url=task.url,
                    status_code=401,
                )
            return self.watched[task.url.rsplit("/", 1)[-1]]

        region = task.params.get("watch_region")
        if region in self.fail_regions:
            raise create_upstream_error(
                f"GET {task.url} returned HTTP 500",
                url=task.url,
                status_code=500,
            )

        page = int(task.params.get("page", 1))
        return make_discover_payload(
            page,
            self.total_pages,
            ids=self.ids_by_region.get(region),
            region=region,
        )


@pytest.fixture(autouse=True)
def _reset_global_config() -> Generator[None, None, None]:
    """Keep the settings singleton and package logger from leaking between tests."""
    reset_config()
    yield
    reset_config()
    package_logger = logging.getLogger("catalogvault")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def cache_db(tmp_path: Path) -> Generator[SQLiteCacheDB, None, None]:
    """Fresh SQLite cache on a temporary file."""
    db = SQLiteCacheDB(tmp_path / "cache.db")
    yield db
    db.close()


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def tmdb_scheduler(fake_upstream: FakeUpstream) -> FetchScheduler:
    """Unthrottled scheduler backed by the fake upstream."""
    return FetchScheduler("tmdb", fake_upstream, max_concurrent=5)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temporary database with a fast TMDB scheduler."""
    fast = SchedulerSettings(reservoir=1000, refresh_interval=1.0, max_concurrent=5)
    return Settings(
        cache=CacheSettings(db_path=str(tmp_path / "catalog.db"), prefetch_page_count=2),
        upstreams=UpstreamsSettings(
            tmdb=UpstreamSettings(
                base_url=TMDBConfig.BASE_URL,
                api_key=TEST_API_KEY,
                scheduler=fast,
            ),
        ),
    )


@pytest.fixture
def upstream_factory() -> type[FakeUpstream]:
    """The fake upstream class, for tests that need custom behaviour."""
    return FakeUpstream


@pytest.fixture
def discover_payload() -> Any:
    return make_discover_payload
