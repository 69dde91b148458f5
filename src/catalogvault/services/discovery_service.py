"""Discovery service facade.

Wires settings, the page cache, one scheduler per upstream, the HTTP
transport, the resolver, the prefetcher, the upstream clients and the
lookup stores (genres, watch providers, Trakt history).

Example:
    >>> async with DiscoveryService(settings) as service:
    ...     response = await service.discover(
    ...         DiscoveryRequest.from_catalog_id("tmdb-discover-movies-8", skip=20)
    ...     )
"""

from __future__ import annotations

import asyncio
import logging
import types
from typing import Any

from typing_extensions import Self

from catalogvault.config import Settings, get_config
from catalogvault.services.cache_sweeper import CacheSweeper
from catalogvault.services.fanart_client import FanartClient
from catalogvault.services.fetch_scheduler import FetchExecutor, FetchScheduler
from catalogvault.services.genre_store import GenreStore, sync_genres
from catalogvault.services.http_client import UpstreamHTTPClient
from catalogvault.services.prefetcher import Prefetcher
from catalogvault.services.provider_store import ProviderStore, get_providers
from catalogvault.services.skip_resolver import SkipResolver
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.services.tmdb import (
    DiscoveryRequest,
    DiscoveryResponse,
    TMDBClient,
    TMDBWatchProvider,
)
from catalogvault.services.trakt import TraktClient
from catalogvault.services.trakt_history import TraktHistoryStore, mark_watched, sync_trakt_history
from catalogvault.services.upstreams import build_schedulers
from catalogvault.shared.constants import UpstreamNames
from catalogvault.shared.errors import CatalogVaultError, ErrorCode, create_configuration_error
from catalogvault.shared.logging import log_operation_error

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Owns every component of the fetch gateway for one process.

    Args:
        settings: Configuration (defaults to the global settings)
        executor: Replacement for the HTTP executor, used by tests
    """

    def __init__(
        self,
        settings: Settings | None = None,
        executor: FetchExecutor | None = None,
    ) -> None:
        self.settings = settings or get_config()
        cache_settings = self.settings.cache
        upstreams = self.settings.upstreams

        self.cache_db = SQLiteCacheDB(
            cache_settings.db_path,
            default_ttl_seconds=cache_settings.catalog_ttl_seconds,
        )
        self.http_client = UpstreamHTTPClient(
            user_agent=f"{self.settings.app.name}/{self.settings.app.version}",
        )
        self.schedulers: dict[str, FetchScheduler] = build_schedulers(
            upstreams,
            executor or self.http_client.execute,
        )

        tmdb_scheduler = self.schedulers[UpstreamNames.TMDB]
        self.resolver = SkipResolver(self.cache_db)
        self.prefetcher = Prefetcher(
            self.cache_db,
            tmdb_scheduler,
            page_count=cache_settings.prefetch_page_count,
            ttl_seconds=cache_settings.catalog_ttl_seconds,
        )
        self.tmdb = TMDBClient(
            tmdb_scheduler,
            self.cache_db,
            api_key=upstreams.tmdb.api_key,
            base_url=upstreams.tmdb.base_url,
            resolver=self.resolver,
            prefetcher=self.prefetcher,
            catalog_ttl_seconds=cache_settings.catalog_ttl_seconds,
            genre_ttl_seconds=cache_settings.genre_ttl_seconds,
        )
        self.fanart = FanartClient(
            self.schedulers[UpstreamNames.FANART],
            api_key=upstreams.fanart.api_key,
            base_url=upstreams.fanart.base_url,
        )
        self.trakt = TraktClient(
            self.schedulers[UpstreamNames.TRAKT_GET],
            post_scheduler=self.schedulers[UpstreamNames.TRAKT_POST],
            client_id=upstreams.trakt_get.api_key,
            client_secret=self.settings.trakt.client_secret,
            base_url=upstreams.trakt_get.base_url,
            redirect_uri=self.settings.trakt.redirect_uri,
        )
        self.genres = GenreStore(self.cache_db)
        self.providers = ProviderStore(self.cache_db)
        self.trakt_history = TraktHistoryStore(self.cache_db)
        self.sweeper = CacheSweeper(
            self.cache_db,
            interval_seconds=cache_settings.sweep_interval_seconds,
        )
        self._trakt_sync_lock = asyncio.Lock()
        self._closed = False

    async def discover(self, request: DiscoveryRequest) -> DiscoveryResponse:
        """Resolve, fetch (or serve from cache) and merge ``request``."""
        if request.language is None:
            request = request.model_copy(
                update={"language": self.settings.discovery.default_language}
            )
        if not request.regions and self.settings.discovery.default_regions:
            request = request.model_copy(
                update={"regions": tuple(self.settings.discovery.default_regions)}
            )
        response = await self.tmdb.discover(request)
        if self.settings.trakt.enabled:
            response = await self._mark_watched(response, request.media_type)
        return response

    async def _mark_watched(
        self,
        response: DiscoveryResponse,
        media_type: str,
    ) -> DiscoveryResponse:
        """Prefix watched titles; Trakt failures leave the results unmarked."""
        trakt = self.settings.trakt
        try:
            async with self._trakt_sync_lock:
                await self.sync_trakt_history()
        except CatalogVaultError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="sync_trakt_history",
                level=logging.WARNING,
            )

        try:
            watched = self.trakt_history.watched_tmdb_ids(trakt.username, media_type)
        except CatalogVaultError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="watched_tmdb_ids",
                level=logging.WARNING,
            )
            return response

        return response.model_copy(
            update={"results": mark_watched(response.results, watched, trakt.watched_emoji)}
        )

    async def sync_genres(self, language: str | None = None) -> dict[str, int]:
        """Fetch and store movie and TV genres for ``language``."""
        return await sync_genres(
            self.tmdb,
            self.genres,
            language or self.settings.discovery.default_language,
        )

    async def sync_trakt_history(self, force: bool = False) -> dict[str, int] | None:
        """Import the configured user's watch history when it is due.

        Tokens from the settings are stored the first time; after that the
        stored (possibly refreshed) pair is used.

        Raises:
            ConfigurationError: If no Trakt username is configured
        """
        trakt = self.settings.trakt
        if not trakt.enabled:
            raise create_configuration_error(
                "Trakt username is not configured",
                field="trakt.username",
                operation="sync_trakt_history",
                code=ErrorCode.CONFIGURATION_ERROR,
            )
        if trakt.access_token and self.trakt_history.get_tokens(trakt.username) is None:
            self.trakt_history.save_tokens(
                trakt.username,
                trakt.access_token,
                trakt.refresh_token or None,
            )
        return await sync_trakt_history(
            self.trakt,
            self.trakt_history,
            trakt.username,
            interval_seconds=trakt.history_fetch_interval_seconds,
            force=force,
        )

    async def get_providers(self, force: bool = False) -> list[TMDBWatchProvider]:
        """Watch provider catalogue, refreshed from TMDB once a day."""
        return await get_providers(self.tmdb, self.providers, force=force)

    async def get_logo(self, tmdb_id: int | str, language: str) -> str:
        return await self.fanart.get_logo(tmdb_id, language)

    def get_cache_info(self) -> dict[str, Any]:
        info = self.cache_db.get_cache_info()
        info["schedulers"] = {
            name: scheduler.get_stats() for name, scheduler in self.schedulers.items()
        }
        return info

    async def start(self, *, sweep: bool = False) -> Self:
        """Optionally start the periodic sweeper; the HTTP session opens lazily."""
        if sweep:
            self.sweeper.start()
        return self

    async def aclose(self) -> None:
        """Drain prefetches, stop workers, close the session and the database."""
        if self._closed:
            return
        self._closed = True

        await self.sweeper.stop()
        await self.prefetcher.drain()
        for scheduler in self.schedulers.values():
            await scheduler.aclose()
        await self.http_client.close()
        self.cache_db.close()
        logger.debug("Discovery service closed")

    async def __aenter__(self) -> Self:
        return await self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()
