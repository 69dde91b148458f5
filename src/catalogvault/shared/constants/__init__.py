"""
CatalogVault Constants Module

Centralized constants for upstream services, caching and discovery queries.
"""

from .cache import BASE_DAY, Cache, CacheValidationConstants
from .cli import CLIDefaults, CLIHelp
from .discovery import (
    AgeRange,
    CatalogId,
    DiscoverParams,
    MediaType,
    SortOrder,
)
from .network import (
    FanartConfig,
    NetworkConfig,
    TMDBConfig,
    TraktConfig,
    UpstreamNames,
)

__all__ = [
    "BASE_DAY",
    "AgeRange",
    "CLIDefaults",
    "CLIHelp",
    "Cache",
    "CacheValidationConstants",
    "CatalogId",
    "DiscoverParams",
    "FanartConfig",
    "MediaType",
    "NetworkConfig",
    "SortOrder",
    "TMDBConfig",
    "TraktConfig",
    "UpstreamNames",
]
