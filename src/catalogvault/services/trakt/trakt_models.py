"""Trakt API Response Models.

Watched-history items from /users/{username}/watched/{movies|shows} and the
OAuth token response. Unknown fields are ignored.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class TraktIds(BaseModel):
    model_config = ConfigDict(extra="ignore")

    trakt: int | None = None
    tmdb: int | None = None
    imdb: str | None = None


class TraktMedia(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    ids: TraktIds = Field(default_factory=TraktIds)


class TraktWatchedItem(BaseModel):
    """One entry of a watched list; exactly one of movie/show is set."""

    model_config = ConfigDict(extra="ignore")

    last_watched_at: str | None = None
    movie: TraktMedia | None = None
    show: TraktMedia | None = None


class WatchedEntry(BaseModel):
    """Normalized history row.

    Example:
        >>> WatchedEntry(trakt_id=1, tmdb_id=603, title="The Matrix",
        ...              watched_at="2024-01-01T00:00:00.000Z").tmdb_id
        603
    """

    trakt_id: int
    tmdb_id: int | None = None
    imdb_id: str | None = None
    title: str
    watched_at: str


class TraktTokens(BaseModel):
    """Response of POST /oauth/token."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


def parse_watched(items: list[Any], media_type: str) -> list[WatchedEntry]:
    """Normalize a watched list; items missing an id, title or date are skipped."""
    entries: list[WatchedEntry] = []
    for raw in items:
        try:
            item = TraktWatchedItem.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed Trakt %s item: %s", media_type, e)
            continue

        media = item.movie if media_type == "movie" else item.show
        if media is None or media.ids.trakt is None or not media.title or not item.last_watched_at:
            logger.warning("Missing data for Trakt %s item: %s", media_type, raw)
            continue

        entries.append(
            WatchedEntry(
                trakt_id=media.ids.trakt,
                tmdb_id=media.ids.tmdb,
                imdb_id=media.ids.imdb,
                title=media.title,
                watched_at=item.last_watched_at,
            )
        )
    return entries


__all__ = [
    "TraktIds",
    "TraktMedia",
    "TraktTokens",
    "TraktWatchedItem",
    "WatchedEntry",
    "parse_watched",
]
