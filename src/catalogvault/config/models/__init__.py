"""Configuration models for CatalogVault."""

from __future__ import annotations

from .api_settings import SchedulerSettings, UpstreamSettings, UpstreamsSettings
from .app_settings import AppSettings, DiscoverySettings, LoggingSettings
from .cache_settings import CacheSettings
from .settings import Settings
from .trakt_settings import TraktSettings

__all__ = [
    "AppSettings",
    "CacheSettings",
    "DiscoverySettings",
    "LoggingSettings",
    "SchedulerSettings",
    "Settings",
    "TraktSettings",
    "UpstreamSettings",
    "UpstreamsSettings",
]
