"""TMDB API service module.

Discovery queries, response models and the cached, scheduled TMDB client.
"""

from .discover_query import DiscoveryRequest
from .tmdb_client import TMDBClient
from .tmdb_models import (
    DiscoveryResponse,
    TMDBDiscoverPage,
    TMDBGenre,
    TMDBGenreList,
    TMDBWatchProvider,
    TMDBWatchProviderList,
)

__all__ = [
    "DiscoveryRequest",
    "DiscoveryResponse",
    "TMDBClient",
    "TMDBDiscoverPage",
    "TMDBGenre",
    "TMDBGenreList",
    "TMDBWatchProvider",
    "TMDBWatchProviderList",
]
