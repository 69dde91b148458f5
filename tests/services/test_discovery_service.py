"""Tests for DiscoveryService wiring and lifecycle."""

from __future__ import annotations

import pytest

from catalogvault.services.discovery_service import DiscoveryService
from catalogvault.services.fetch_scheduler import FetchTask
from catalogvault.services.tmdb import DiscoveryRequest
from catalogvault.shared.constants import UpstreamNames
from catalogvault.shared.errors import ConfigurationError, ErrorCode, InfrastructureError


class TestDiscoveryService:
    @pytest.mark.asyncio
    async def test_discover_with_defaults(self, settings, fake_upstream) -> None:
        # Given a request without language or regions
        settings.discovery.default_regions = ["US", "GB"]
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-series-new-8")

        # When
        async with DiscoveryService(settings, executor=fake_upstream) as service:
            response = await service.discover(request)

        # Then
        assert response.page == 1
        discover_calls = [task for task in fake_upstream.calls if task.params.get("page") == 1]
        assert {task.params["watch_region"] for task in discover_calls} == {"US", "GB"}
        assert all(task.params["language"] == "en-US" for task in discover_calls)
        assert all(task.params["sort_by"] == "first_air_date.desc" for task in discover_calls)

    @pytest.mark.asyncio
    async def test_close_drains_prefetches(self, settings, fake_upstream) -> None:
        """Prefetched pages are in the cache once the service is closed."""
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", language="en-US")

        service = DiscoveryService(settings, executor=fake_upstream)
        await service.discover(request)
        await service.aclose()

        # prefetch_page_count=2 in the settings fixture
        assert sorted(fake_upstream.pages_requested()) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_cached_request_needs_no_upstream(self, settings, upstream_factory) -> None:
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", language="en-US")
        first_upstream = upstream_factory()
        async with DiscoveryService(settings, executor=first_upstream) as service:
            first = await service.discover(request)

        # Same database file, new process-level service
        second_upstream = upstream_factory()
        async with DiscoveryService(settings, executor=second_upstream) as service:
            second = await service.discover(request)

        assert second == first
        assert second_upstream.calls == []

    @pytest.mark.asyncio
    async def test_sync_genres(self, settings, fake_upstream) -> None:
        async with DiscoveryService(settings, executor=fake_upstream) as service:
            counts = await service.sync_genres("de-DE")
            assert service.genres.has_language("de-DE")

        assert counts == {"movie": 3, "tv": 3}

    @pytest.mark.asyncio
    async def test_cache_info_includes_schedulers(self, settings, fake_upstream) -> None:
        async with DiscoveryService(settings, executor=fake_upstream) as service:
            info = service.get_cache_info()

        assert set(info["schedulers"]) == set(UpstreamNames.ALL)
        assert info["total_entries"] == 0

    @pytest.mark.asyncio
    async def test_closed_service_rejects_requests(self, settings, fake_upstream) -> None:
        service = DiscoveryService(settings, executor=fake_upstream)
        await service.aclose()
        await service.aclose()

        with pytest.raises(InfrastructureError) as exc_info:
            await service.tmdb.scheduler.submit(FetchTask(url="/discover/movie"))

        assert exc_info.value.code == ErrorCode.SCHEDULER_CLOSED

    @pytest.mark.asyncio
    async def test_start_with_sweeper(self, settings, fake_upstream) -> None:
        service = DiscoveryService(settings, executor=fake_upstream)
        await service.start(sweep=True)

        assert service.sweeper._task is not None
        await service.aclose()
        assert service.sweeper._task is None


class TestTraktMarking:
    @pytest.mark.asyncio
    async def test_watched_movies_are_marked(self, settings, fake_upstream) -> None:
        # Given a configured Trakt account
        settings.trakt.username = "alice"
        settings.trakt.access_token = "token-1"
        settings.trakt.watched_emoji = "*"
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", language="en-US")

        # When
        async with DiscoveryService(settings, executor=fake_upstream) as service:
            response = await service.discover(request)
            again = await service.discover(request)

        # Then: 100 and 102 are watched movies, 101 is a watched show
        assert [item["title"] for item in response.results] == [
            "* Title 100",
            "Title 101",
            "* Title 102",
        ]
        assert again.results == response.results
        trakt_calls = [task for task in fake_upstream.calls if "/watched/" in task.url]
        assert len(trakt_calls) == 2

    @pytest.mark.asyncio
    async def test_watched_shows_are_marked(self, settings, fake_upstream) -> None:
        settings.trakt.username = "alice"
        settings.trakt.access_token = "token-1"
        settings.trakt.watched_emoji = "*"
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-series-8", language="en-US")

        async with DiscoveryService(settings, executor=fake_upstream) as service:
            response = await service.discover(request)

        assert [item["title"] for item in response.results] == [
            "Title 100",
            "* Title 101",
            "Title 102",
        ]

    @pytest.mark.asyncio
    async def test_trakt_failure_leaves_results_unmarked(
        self, settings, fake_upstream, caplog
    ) -> None:
        # Given a rejected token and no refresh token
        settings.trakt.username = "alice"
        settings.trakt.access_token = "old"
        fake_upstream.expired_tokens.add("old")
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", language="en-US")

        # When
        with caplog.at_level("WARNING"):
            async with DiscoveryService(settings, executor=fake_upstream) as service:
                response = await service.discover(request)

        # Then
        assert [item["title"] for item in response.results] == [
            "Title 100",
            "Title 101",
            "Title 102",
        ]
        assert any(
            getattr(record, "operation", None) == "sync_trakt_history" for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_no_account_means_no_trakt_calls(self, settings, fake_upstream) -> None:
        request = DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", language="en-US")

        async with DiscoveryService(settings, executor=fake_upstream) as service:
            await service.discover(request)
            with pytest.raises(ConfigurationError):
                await service.sync_trakt_history()

        assert not [task for task in fake_upstream.calls if "trakt" in task.url]

    @pytest.mark.asyncio
    async def test_settings_tokens_are_seeded_once(self, settings, fake_upstream) -> None:
        settings.trakt.username = "alice"
        settings.trakt.access_token = "token-1"
        settings.trakt.refresh_token = "refresh-1"

        async with DiscoveryService(settings, executor=fake_upstream) as service:
            counts = await service.sync_trakt_history()
            service.trakt_history.save_tokens("alice", "rotated", "refresh-2")
            await service.sync_trakt_history(force=True)
            tokens = service.trakt_history.get_tokens("alice")

        assert counts == {"movie": 2, "show": 1}
        assert tokens.access_token == "rotated"
        bearers = [task.credentials.bearer_token for task in fake_upstream.calls]
        assert bearers.count("rotated") == 2


class TestProviderCatalogue:
    @pytest.mark.asyncio
    async def test_get_providers(self, settings, fake_upstream) -> None:
        async with DiscoveryService(settings, executor=fake_upstream) as service:
            providers = await service.get_providers()
            cached = await service.get_providers()
            refreshed = await service.get_providers(force=True)

        assert [provider.provider_id for provider in providers] == [9, 337, 8]
        assert cached == providers == refreshed
        assert len(fake_upstream.calls) == 4
        assert all(task.credentials.api_key == settings.upstreams.tmdb.api_key for task in fake_upstream.calls)
