"""TMDB API Response Models.

Pydantic models validating TMDB responses at the API boundary. Unknown
fields are ignored so new upstream fields never break validation. Result
items stay plain dicts: the cache stores the raw upstream payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TMDBGenre(BaseModel):
    """Single genre as returned by /genre/{movie|tv}/list.

    Example:
        >>> TMDBGenre(id=16, name="Animation").name
        'Animation'
    """

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="TMDB genre ID")
    name: str = Field(..., description="Genre name (localized)")


class TMDBGenreList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    genres: list[TMDBGenre] = Field(default_factory=list)


class TMDBWatchProvider(BaseModel):
    """Streaming service as returned by /watch/providers/{movie|tv}.

    display_priorities maps a region code to the provider's rank there.
    """

    model_config = ConfigDict(extra="ignore")

    provider_id: int = Field(..., description="TMDB watch provider ID")
    provider_name: str = Field(..., description="Display name")
    logo_path: str | None = Field(None, description="Logo path below the image base URL")
    display_priorities: dict[str, int] = Field(default_factory=dict)


class TMDBWatchProviderList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[TMDBWatchProvider] = Field(default_factory=list)


class TMDBDiscoverPage(BaseModel):
    """One page of /discover/{movie|tv}."""

    model_config = ConfigDict(extra="ignore")

    page: int = Field(1, ge=1, description="Page number")
    results: list[dict[str, Any]] = Field(default_factory=list)
    total_pages: int = Field(0, ge=0, description="Total pages in the result set")
    total_results: int = Field(0, ge=0, description="Total items in the result set")


class DiscoveryResponse(BaseModel):
    """Merged discovery result returned to callers.

    Metadata mirrors the first region's response.
    """

    results: list[dict[str, Any]] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0
    page: int = 1

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DiscoveryResponse:
        page = TMDBDiscoverPage.model_validate(payload)
        return cls(
            results=page.results,
            total_pages=page.total_pages,
            total_results=page.total_results,
            page=page.page,
        )


__all__ = [
    "DiscoveryResponse",
    "TMDBDiscoverPage",
    "TMDBGenre",
    "TMDBGenreList",
    "TMDBWatchProvider",
    "TMDBWatchProviderList",
]
