"""Trakt API service module.

Watched-history models and the scheduled Trakt client.
"""

from .trakt_client import TraktClient, trakt_media_type
from .trakt_models import TraktTokens, WatchedEntry, parse_watched

__all__ = [
    "TraktClient",
    "TraktTokens",
    "WatchedEntry",
    "parse_watched",
    "trakt_media_type",
]
