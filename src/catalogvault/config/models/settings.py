"""CatalogVault Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalogvault.config.models.api_settings import UpstreamsSettings
from catalogvault.config.models.app_settings import (
    AppSettings,
    DiscoverySettings,
    LoggingSettings,
)
from catalogvault.config.models.cache_settings import CacheSettings
from catalogvault.config.models.trakt_settings import TraktSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Unified configuration for CatalogVault.

    Environment variables override defaults, e.g.
    ``CATALOGVAULT_CACHE__PREFETCH_PAGE_COUNT=3`` or
    ``CATALOGVAULT_UPSTREAMS__TMDB__API_KEY=...``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOGVAULT_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    upstreams: UpstreamsSettings = Field(default_factory=UpstreamsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    trakt: TraktSettings = Field(default_factory=TraktSettings)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from a TOML file; environment fills the sections it omits."""
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        return cls(**raw_config)
