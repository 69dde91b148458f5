"""Discovery request model and its translation to /discover parameters.

A DiscoveryRequest is immutable per call. It yields the upstream query for
each fan-out branch and the dimension tuple that keys its cached pages.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from catalogvault.services.cache_models import DimensionTuple
from catalogvault.shared.constants import (
    AgeRange,
    CatalogId,
    DiscoverParams,
    MediaType,
    SortOrder,
)
from catalogvault.shared.errors import ErrorCode, create_configuration_error

_YEAR_RANGE = re.compile(r"^(\d{4})-(\d{4})$")
_RATING_RANGE = re.compile(r"^(\d+(?:\.\d+)?)-(\d+(?:\.\d+)?)$")
_CATALOG_ID = re.compile(CatalogId.PATTERN)


class DiscoveryRequest(BaseModel):
    """Caller-facing discovery query.

    Only the first provider anchors the skip-to-page mapping.

    Attributes:
        media_type: "movies" or "series"
        provider_ids: Watch provider ids, joined with commas upstream
        sort_by: Upstream sort order
        age_range: One of 0-5, 6-11, 12-15, 16-17, 18+
        genre_id: Explicit genre filter, overrides age-range genres
        year_range: "YYYY-YYYY"
        rating_range: "min-max" on a 0-10 scale
        language: Response language
        skip: Item offset of the requested page
        regions: Watch regions to fan out over
        api_key: Per-request TMDB key, overrides the configured one
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    media_type: Literal["movies", "series"]
    provider_ids: tuple[str, ...] = ()
    sort_by: str = SortOrder.POPULARITY
    age_range: str | None = None
    genre_id: str | None = None
    year_range: str | None = None
    rating_range: str | None = None
    language: str | None = None
    skip: int = Field(0, ge=0)
    regions: tuple[str, ...] = ()
    api_key: str | None = Field(None, repr=False)

    @field_validator("provider_ids", "regions", mode="before")
    @classmethod
    def _to_str_tuple(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (str, int)):
            value = [value]
        return tuple(str(item).strip() for item in value if str(item).strip())

    @field_validator("genre_id", mode="before")
    @classmethod
    def _genre_to_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("age_range")
    @classmethod
    def _validate_age_range(cls, value: str | None) -> str | None:
        if value is not None and value not in AgeRange.ALL:
            msg = f"Unknown age range: {value}"
            raise ValueError(msg)
        return value

    @field_validator("year_range")
    @classmethod
    def _validate_year_range(cls, value: str | None) -> str | None:
        if value is None:
            return None
        match = _YEAR_RANGE.match(value)
        if not match or int(match.group(1)) > int(match.group(2)):
            msg = f"Year range must look like 1990-1999, got: {value}"
            raise ValueError(msg)
        return value

    @field_validator("rating_range")
    @classmethod
    def _validate_rating_range(cls, value: str | None) -> str | None:
        if value is None:
            return None
        match = _RATING_RANGE.match(value)
        if not match:
            msg = f"Rating range must look like 5-8, got: {value}"
            raise ValueError(msg)
        low, high = float(match.group(1)), float(match.group(2))
        if not 0 <= low <= high <= 10:
            msg = f"Rating range must lie within 0-10, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def create(cls, **fields: Any) -> DiscoveryRequest:
        """Validate fields, raising ConfigurationError instead of ValidationError."""
        try:
            return cls(**fields)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise create_configuration_error(
                f"Invalid discovery query: {first.get('msg', str(e))}",
                field=field or None,
                operation="build_discovery_request",
                original_error=e,
            ) from e

    @classmethod
    def from_catalog_id(cls, catalog_id: str, **fields: Any) -> DiscoveryRequest:
        """Build a request from an id like ``tmdb-discover-movies-new-8``.

        ``-new`` sorts by release (movies) or first air date (series);
        anything else sorts by popularity.

        Raises:
            ConfigurationError: If the id cannot be parsed
        """
        match = _CATALOG_ID.match(catalog_id or "")
        if match is None:
            raise create_configuration_error(
                f"Unparseable catalog id: {catalog_id!r}",
                field="catalog_id",
                operation="parse_catalog_id",
                code=ErrorCode.INVALID_CATALOG_ID,
            )

        media_type, variant, provider_id = match.groups()
        if variant == CatalogId.NEW_SUFFIX:
            sort_by = (
                SortOrder.MOVIE_NEWEST if media_type == MediaType.MOVIES else SortOrder.TV_NEWEST
            )
        else:
            sort_by = SortOrder.POPULARITY

        return cls.create(
            media_type=media_type,
            provider_ids=(provider_id,),
            sort_by=sort_by,
            **fields,
        )

    @property
    def tmdb_media_type(self) -> str:
        return MediaType.TO_TMDB[self.media_type]

    @property
    def endpoint(self) -> str:
        return f"/discover/{self.tmdb_media_type}"

    @property
    def anchor_provider(self) -> str | None:
        return self.provider_ids[0] if self.provider_ids else None

    def _date_params(self) -> dict[str, str]:
        if self.year_range is None:
            return {}
        start, end = self.year_range.split("-")
        if self.tmdb_media_type == MediaType.TMDB_MOVIE:
            return {
                DiscoverParams.MOVIE_DATE_GTE: f"{start}-01-01",
                DiscoverParams.MOVIE_DATE_LTE: f"{end}-12-31",
            }
        return {
            DiscoverParams.TV_DATE_GTE: f"{start}-01-01",
            DiscoverParams.TV_DATE_LTE: f"{end}-12-31",
        }

    def to_params(self, region: str | None = None) -> dict[str, str]:
        """Upstream query for one fan-out branch, without ``page``."""
        params: dict[str, str] = {
            DiscoverParams.WATCH_PROVIDERS: ",".join(self.provider_ids),
            DiscoverParams.SORT_BY: self.sort_by,
        }
        if self.language:
            params[DiscoverParams.LANGUAGE] = self.language
        params.update(self._date_params())

        if self.rating_range is not None:
            low, high = self.rating_range.split("-")
            params[DiscoverParams.VOTE_GTE] = low
            params[DiscoverParams.VOTE_LTE] = high

        if self.age_range is not None:
            filters = (
                AgeRange.MOVIE_FILTERS
                if self.tmdb_media_type == MediaType.TMDB_MOVIE
                else AgeRange.TV_FILTERS
            )
            params.update(filters.get(self.age_range, {}))

        if self.genre_id:
            params[DiscoverParams.WITH_GENRES] = self.genre_id

        if region:
            params[DiscoverParams.WATCH_REGION] = region

        return params

    def dimension(self, region: str | None = None) -> DimensionTuple:
        """Dimension tuple of one fan-out branch."""
        return DimensionTuple(
            media_type=self.tmdb_media_type,
            provider_id=self.anchor_provider,
            sort_by=self.sort_by,
            age_range=self.age_range,
            genre_id=self.genre_id,
            year_range=self.year_range,
            rating_range=self.rating_range,
            region=region,
            language=self.language,
        )


__all__ = ["DiscoveryRequest"]
