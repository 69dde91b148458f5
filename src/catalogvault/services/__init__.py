"""Services module for CatalogVault.

Rate limiting, scheduled upstream fetches, the persistent page cache and
the discovery facade built on top of them.
"""

from .discovery_service import DiscoveryService
from .fetch_scheduler import FetchScheduler, FetchTask, UpstreamCredentials
from .prefetcher import Prefetcher
from .rate_limiter import ReservoirRateLimiter
from .skip_resolver import SkipResolver
from .sqlite_cache import SQLiteCacheDB
from .tmdb import DiscoveryRequest, DiscoveryResponse, TMDBClient

__all__ = [
    "DiscoveryRequest",
    "DiscoveryResponse",
    "DiscoveryService",
    "FetchScheduler",
    "FetchTask",
    "Prefetcher",
    "ReservoirRateLimiter",
    "SQLiteCacheDB",
    "SkipResolver",
    "TMDBClient",
    "UpstreamCredentials",
]
