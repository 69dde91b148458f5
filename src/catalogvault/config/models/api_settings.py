"""Upstream API configuration models.

Each upstream service (primary catalog API, secondary history API,
supplementary logo API) owns an independent scheduler, configured here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from catalogvault.shared.constants import FanartConfig, TMDBConfig, TraktConfig


class SchedulerSettings(BaseModel):
    """Rate and concurrency limits for one upstream scheduler.

    A reservoir of 0 (or None) disables the token reservoir; min_time spaces
    out consecutive dispatches.
    """

    reservoir: int | None = Field(
        default=TMDBConfig.RESERVOIR,
        ge=0,
        description="Requests allowed per refresh window (0 for unlimited)",
    )
    refresh_interval: float = Field(
        default=TMDBConfig.REFRESH_INTERVAL,
        gt=0,
        description="Reservoir refresh window in seconds",
    )
    max_concurrent: int = Field(
        default=TMDBConfig.MAX_CONCURRENT,
        gt=0,
        description="Maximum number of requests in flight",
    )
    min_time: float = Field(
        default=0.0,
        ge=0,
        description="Minimum delay between two dispatches in seconds",
    )


class UpstreamSettings(BaseModel):
    """Connection and scheduling settings for one upstream service.

    Security: api_key is hidden from repr.
    """

    base_url: str = Field(description="Base URL of the upstream API")
    api_key: str = Field(
        default="",
        repr=False,
        description="API key sent with every request (optional)",
    )
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    def __repr__(self) -> str:
        masked_key = "****" if self.api_key else "[empty]"
        return (
            f"UpstreamSettings(base_url={self.base_url}, "
            f"api_key={masked_key}, scheduler={self.scheduler!r})"
        )


def _tmdb_defaults() -> UpstreamSettings:
    return UpstreamSettings(base_url=TMDBConfig.BASE_URL)


def _trakt_get_defaults() -> UpstreamSettings:
    return UpstreamSettings(
        base_url=TraktConfig.BASE_URL,
        scheduler=SchedulerSettings(
            reservoir=TraktConfig.GET_RESERVOIR,
            refresh_interval=TraktConfig.GET_REFRESH_INTERVAL,
            max_concurrent=TraktConfig.GET_MAX_CONCURRENT,
        ),
    )


def _trakt_post_defaults() -> UpstreamSettings:
    return UpstreamSettings(
        base_url=TraktConfig.BASE_URL,
        scheduler=SchedulerSettings(
            reservoir=0,
            max_concurrent=TraktConfig.POST_MAX_CONCURRENT,
            min_time=TraktConfig.POST_MIN_TIME,
        ),
    )


def _fanart_defaults() -> UpstreamSettings:
    return UpstreamSettings(
        base_url=FanartConfig.BASE_URL,
        scheduler=SchedulerSettings(
            reservoir=FanartConfig.RESERVOIR,
            refresh_interval=FanartConfig.REFRESH_INTERVAL,
            max_concurrent=FanartConfig.MAX_CONCURRENT,
        ),
    )


_DEFAULT_FACTORIES = {
    "tmdb": _tmdb_defaults,
    "trakt_get": _trakt_get_defaults,
    "trakt_post": _trakt_post_defaults,
    "fanart": _fanart_defaults,
}


class UpstreamsSettings(BaseModel):
    """Container for every upstream service.

    Partial sections, such as a single api_key from the environment, are
    merged over that upstream's defaults.
    """

    tmdb: UpstreamSettings = Field(default_factory=_tmdb_defaults)
    trakt_get: UpstreamSettings = Field(default_factory=_trakt_get_defaults)
    trakt_post: UpstreamSettings = Field(default_factory=_trakt_post_defaults)
    fanart: UpstreamSettings = Field(default_factory=_fanart_defaults)

    @model_validator(mode="before")
    @classmethod
    def _merge_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        merged = dict(data)
        for name, factory in _DEFAULT_FACTORIES.items():
            section = data.get(name)
            if not isinstance(section, dict):
                continue
            defaults = factory().model_dump()
            scheduler = section.get("scheduler")
            if isinstance(scheduler, dict):
                scheduler = {**defaults["scheduler"], **scheduler}
            merged[name] = {
                **defaults,
                **section,
                "scheduler": scheduler if scheduler is not None else defaults["scheduler"],
            }
        return merged


__all__ = [
    "SchedulerSettings",
    "UpstreamSettings",
    "UpstreamsSettings",
]
