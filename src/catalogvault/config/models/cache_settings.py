"""Cache configuration model.

TTLs, prefetch depth, sweep interval and the location of the SQLite file.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from catalogvault.shared.constants import BASE_DAY, Cache


class CacheSettings(BaseModel):
    """Catalog cache configuration."""

    db_path: str = Field(
        default=Cache.DEFAULT_DB_PATH,
        description="SQLite database file holding cached pages and genres",
    )
    catalog_ttl_days: float = Field(
        default=Cache.CATALOG_TTL_DAYS,
        gt=0,
        description="Time-to-live of cached discover pages in days",
    )
    genre_ttl_days: float = Field(
        default=Cache.GENRE_TTL_DAYS,
        gt=0,
        description="Time-to-live of cached genre lists in days",
    )
    prefetch_page_count: int = Field(
        default=Cache.PREFETCH_PAGE_COUNT,
        ge=0,
        description="Number of pages warmed after serving a page",
    )
    sweep_interval_seconds: float = Field(
        default=Cache.SWEEP_INTERVAL,
        gt=0,
        description="Interval between expired-entry sweeps",
    )

    @property
    def catalog_ttl_seconds(self) -> int:
        return int(self.catalog_ttl_days * BASE_DAY)

    @property
    def genre_ttl_seconds(self) -> int:
        return int(self.genre_ttl_days * BASE_DAY)


__all__ = ["CacheSettings"]
