"""TMDB API client built on the fetch scheduler and the page cache.

Control flow of one discover page:

    skip resolution -> cache lookup -> (miss) scheduler fetch -> cache write
    -> prefetch of the following pages

The cache write completes before prefetching starts so the prefetcher sees
the freshly written page. Multi-region requests fan out over this flow and
merge the results.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import ValidationError

from catalogvault.services.cache_models import build_cache_key
from catalogvault.services.fetch_scheduler import FetchScheduler, FetchTask, UpstreamCredentials
from catalogvault.services.prefetcher import Prefetcher
from catalogvault.services.region_fanout import fan_out
from catalogvault.services.skip_resolver import SkipResolver
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import BASE_DAY, Cache, MediaType, TMDBConfig
from catalogvault.shared.errors import (
    CatalogVaultError,
    ErrorCode,
    ErrorContext,
    UpstreamError,
    create_configuration_error,
)
from catalogvault.shared.logging import log_operation_error, log_operation_success

from .discover_query import DiscoveryRequest
from .tmdb_models import (
    DiscoveryResponse,
    TMDBDiscoverPage,
    TMDBGenre,
    TMDBGenreList,
    TMDBWatchProvider,
    TMDBWatchProviderList,
)

logger = logging.getLogger(__name__)


def _tmdb_media_type(media_type: str, operation: str) -> str:
    tmdb_type = MediaType.TO_TMDB.get(media_type, media_type)
    if tmdb_type not in (MediaType.TMDB_MOVIE, MediaType.TMDB_TV):
        raise create_configuration_error(
            f"Unsupported media type: {media_type}",
            field="media_type",
            operation=operation,
        )
    return tmdb_type


class TMDBClient:
    """TMDB discovery, genre and watch provider client.

    Args:
        scheduler: Scheduler of the TMDB upstream
        cache_db: Page cache
        api_key: Default TMDB API key (requests may carry their own)
        base_url: TMDB API root
        resolver: Skip resolver (defaults to one over ``cache_db``)
        prefetcher: Prefetcher, or None to disable prefetching
        catalog_ttl_seconds: TTL of cached discover pages
        genre_ttl_seconds: TTL of cached genre lists
    """

    def __init__(
        self,
        scheduler: FetchScheduler,
        cache_db: SQLiteCacheDB,
        api_key: str = "",
        base_url: str = TMDBConfig.BASE_URL,
        resolver: SkipResolver | None = None,
        prefetcher: Prefetcher | None = None,
        catalog_ttl_seconds: int = Cache.CATALOG_TTL_DAYS * BASE_DAY,
        genre_ttl_seconds: int = Cache.GENRE_TTL_DAYS * BASE_DAY,
    ) -> None:
        self.scheduler = scheduler
        self.cache_db = cache_db
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.resolver = resolver or SkipResolver(cache_db)
        self.prefetcher = prefetcher
        self.catalog_ttl_seconds = catalog_ttl_seconds
        self.genre_ttl_seconds = genre_ttl_seconds
        self.statistics = cache_db.statistics

    def _credentials(self, api_key: str | None = None) -> UpstreamCredentials | None:
        key = api_key or self.api_key
        return UpstreamCredentials(api_key=key) if key else None

    def _cached_payload(self, cache_key: str) -> dict[str, Any] | None:
        """Cache read that degrades to a miss on storage failure."""
        try:
            entry = self.cache_db.get(cache_key)
        except CatalogVaultError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="cache_get",
                level=logging.WARNING,
            )
            return None
        return entry.payload if entry is not None else None

    def _store(self, cache_key: str, payload: dict[str, Any], **metadata: Any) -> None:
        """Cache write; a failure is logged and the fetched data still served."""
        try:
            self.cache_db.store(cache_key, payload, **metadata)
        except CatalogVaultError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="cache_put",
                level=logging.WARNING,
            )

    async def _request(
        self,
        url: str,
        params: dict[str, Any],
        credentials: UpstreamCredentials | None,
    ) -> Any:
        try:
            data = await self.scheduler.submit(
                FetchTask(url=url, params=params, credentials=credentials)
            )
        except CatalogVaultError:
            self.statistics.record_api_call(success=False)
            raise
        self.statistics.record_api_call()
        return data

    async def fetch_discover_page(
        self,
        request: DiscoveryRequest,
        region: str | None = None,
    ) -> dict[str, Any]:
        """Fetch the page of ``request`` for one region, via the cache.

        Raises:
            UpstreamError: If the upstream call fails or returns an invalid page
        """
        start_time = time.time()
        dimension = request.dimension(region)
        page = self.resolver.resolve(dimension, request.skip)

        url = f"{self.base_url}{request.endpoint}"
        params: dict[str, Any] = {**request.to_params(region), "page": page}
        cache_key = build_cache_key(url, params)

        cached = self._cached_payload(cache_key)
        if cached is not None:
            return cached

        # A page still being prefetched is awaited instead of fetched twice
        if self.prefetcher is not None and await self.prefetcher.wait_for(cache_key):
            cached = self._cached_payload(cache_key)
            if cached is not None:
                return cached

        credentials = self._credentials(request.api_key)
        data = await self._request(url, params, credentials)

        try:
            discover_page = TMDBDiscoverPage.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message=f"Invalid discover page from {request.endpoint}",
                context=ErrorContext(
                    operation="fetch_discover_page",
                    additional_data={"endpoint": request.endpoint, "page": page},
                ),
                original_error=e,
                url=url,
            ) from e

        total_pages = discover_page.total_pages
        self._store(
            cache_key,
            data,
            page=page,
            skip=request.skip,
            dimension_hash=dimension.fingerprint(),
            ttl_seconds=self.catalog_ttl_seconds,
        )

        if self.prefetcher is not None and total_pages > page:
            self.prefetcher.prefetch(
                dimension,
                url,
                params,
                current_page=page,
                total_pages=total_pages,
                credentials=credentials,
            )

        log_operation_success(
            logger=logger,
            operation="fetch_discover_page",
            duration_ms=(time.time() - start_time) * 1000,
            result_info={"page": page, "total_pages": total_pages},
            context={"region": region, "skip": request.skip},
        )
        return data

    async def discover(self, request: DiscoveryRequest) -> DiscoveryResponse:
        """Run ``request`` across its regions and merge the results.

        Raises:
            AggregationError: If any region fails
        """

        async def fetch_for_region(region: str | None) -> dict[str, Any]:
            return await self.fetch_discover_page(request, region)

        merged = await fan_out(request.regions, fetch_for_region)
        return DiscoveryResponse.from_payload(merged)

    async def fetch_genres(
        self,
        media_type: str,
        language: str,
        api_key: str | None = None,
    ) -> list[TMDBGenre]:
        """Fetch the genre list of a media type ("movies"/"movie" or "series"/"tv").

        Raises:
            ConfigurationError: If the media type is unknown
            UpstreamError: If the upstream call fails
        """
        tmdb_type = _tmdb_media_type(media_type, "fetch_genres")

        url = f"{self.base_url}/genre/{tmdb_type}/list"
        params = {"language": language}
        cache_key = build_cache_key(url, params)

        data = self._cached_payload(cache_key)
        if data is None:
            data = await self._request(url, params, self._credentials(api_key))
            self._store(cache_key, data, ttl_seconds=self.genre_ttl_seconds)

        try:
            genres = TMDBGenreList.model_validate(data).genres
        except ValidationError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message=f"Invalid genre list for {tmdb_type}",
                context=ErrorContext(
                    operation="fetch_genres",
                    additional_data={"media_type": tmdb_type, "language": language},
                ),
                original_error=e,
                url=url,
            ) from e

        logger.debug("Genres retrieved for %s (%s): %d", tmdb_type, language, len(genres))
        return genres

    async def fetch_providers(
        self,
        media_type: str,
        api_key: str | None = None,
    ) -> list[TMDBWatchProvider]:
        """Fetch the watch provider catalogue of a media type.

        Not cached here: ProviderStore keeps the catalogue with its own
        freshness window.

        Raises:
            ConfigurationError: If the media type is unknown
            UpstreamError: If the upstream call fails or returns an invalid list
        """
        tmdb_type = _tmdb_media_type(media_type, "fetch_providers")
        url = f"{self.base_url}/watch/providers/{tmdb_type}"
        data = await self._request(url, {}, self._credentials(api_key))

        try:
            providers = TMDBWatchProviderList.model_validate(data).results
        except ValidationError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message=f"Invalid watch provider list for {tmdb_type}",
                context=ErrorContext(
                    operation="fetch_providers",
                    additional_data={"media_type": tmdb_type},
                ),
                original_error=e,
                url=url,
            ) from e

        logger.debug("Watch providers retrieved for %s: %d", tmdb_type, len(providers))
        return providers
