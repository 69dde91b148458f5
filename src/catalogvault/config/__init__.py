"""CatalogVault Configuration Module

Unified access to configuration models and the settings loader:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: App, Logging, Upstreams, Cache, Discovery, Trakt settings
"""

from __future__ import annotations

from .loader import get_config, load_settings, reload_config, reset_config
from .models import (
    AppSettings,
    CacheSettings,
    DiscoverySettings,
    LoggingSettings,
    SchedulerSettings,
    Settings,
    TraktSettings,
    UpstreamSettings,
    UpstreamsSettings,
)

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
    "get_config",
    "load_settings",
    "reload_config",
    "reset_config",
]
