"""Cache entry and dimension models.

A discover page is cached under a key derived from the endpoint and its full
query, and tagged with the fingerprint of its dimension tuple so the skip
resolver can find earlier pages of the same series.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import orjson

from catalogvault.shared.constants import Cache, CacheValidationConstants

__all__ = [
    "CacheEntry",
    "DimensionTuple",
    "build_cache_key",
    "hash_key",
    "is_fresh",
    "parse_timestamp",
    "to_timestamp",
    "utc_now",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    """Serialize a datetime as a fixed-width UTC ISO string.

    Fixed width keeps lexical order equal to time order inside SQLite.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp, treating naive values as UTC."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_fresh(expires_at: datetime, now: datetime | None = None) -> bool:
    """Freshness predicate applied on every read path.

    Expired rows stay in storage until swept, so nothing may rely on their
    absence.
    """
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > (now or utc_now())


def hash_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def build_cache_key(endpoint: str, params: dict[str, Any]) -> str:
    """Deterministic cache key for an upstream request.

    Params are sorted; credentials and unset values are left out. ``page``
    is part of the key like any other parameter.
    """
    items = sorted(
        (key, str(value).lower() if isinstance(value, bool) else str(value))
        for key, value in params.items()
        if value is not None and key not in Cache.EXCLUDED_KEY_PARAMS
    )
    return f"{endpoint}?{urlencode(items)}" if items else endpoint


@dataclass(frozen=True)
class DimensionTuple:
    """Query dimensions that distinguish one cached series of pages.

    Only the first provider of a multi-provider request anchors the
    skip-to-page mapping; the remaining providers are not part of the tuple.
    """

    media_type: str
    provider_id: str | None = None
    sort_by: str | None = None
    age_range: str | None = None
    genre_id: str | None = None
    year_range: str | None = None
    rating_range: str | None = None
    region: str | None = None
    language: str | None = None

    def canonical(self) -> bytes:
        return orjson.dumps(asdict(self), option=orjson.OPT_SORT_KEYS)

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form."""
        return hashlib.sha256(self.canonical()).hexdigest()


@dataclass
class CacheEntry:
    """One cached upstream response with its pagination metadata.

    Attributes:
        cache_key: Endpoint plus sorted query (see build_cache_key)
        payload: Raw upstream response
        expires_at: Absolute expiry; the entry is logically absent afterwards
        page: Upstream page number of this response
        skip: Caller cursor that produced it
        dimension_hash: Fingerprint of the dimension tuple, None for
            responses outside skip mapping (genre lists)
        created_at: Write time
        key_hash: SHA-256 of cache_key, derived when empty
    """

    cache_key: str
    payload: dict[str, Any]
    expires_at: datetime
    page: int = 1
    skip: int = 0
    dimension_hash: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    key_hash: str = ""

    def __post_init__(self) -> None:
        if not self.cache_key or not self.cache_key.strip():
            msg = "cache_key must be non-empty"
            raise ValueError(msg)
        self.cache_key = self.cache_key.strip()

        if not self.key_hash:
            self.key_hash = hash_key(self.cache_key)
        elif len(self.key_hash) != CacheValidationConstants.SHA256_HASH_LENGTH or not all(
            c in CacheValidationConstants.HEX_CHARS for c in self.key_hash.lower()
        ):
            msg = f"key_hash must be a SHA-256 hex digest, got: {self.key_hash[:16]}..."
            raise ValueError(msg)
        self.key_hash = self.key_hash.lower()

        if self.page < 1:
            msg = f"page must be >= 1, got {self.page}"
            raise ValueError(msg)
        if self.skip < 0:
            msg = f"skip must be non-negative, got {self.skip}"
            raise ValueError(msg)

    @property
    def total_pages(self) -> int | None:
        """Total page count reported by the upstream, if any."""
        value = self.payload.get("total_pages")
        return int(value) if value is not None else None

    def is_expired(self, now: datetime | None = None) -> bool:
        return not is_fresh(self.expires_at, now)
