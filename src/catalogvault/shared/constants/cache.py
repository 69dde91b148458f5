"""
Cache Configuration Constants

TTL defaults, prefetch depth and table names for the catalog cache.
"""

BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class Cache:
    """Catalog cache constants."""

    DEFAULT_DB_PATH = "db/catalog.db"

    CATALOG_TTL_DAYS = 3
    GENRE_TTL_DAYS = 1

    PREFETCH_PAGE_COUNT = 5

    SWEEP_INTERVAL = BASE_DAY

    TABLE_CATALOG = "catalog_cache"
    TABLE_GENRES = "genres"
    TABLE_PROVIDERS = "providers"
    TABLE_TRAKT_HISTORY = "trakt_history"
    TABLE_TRAKT_TOKENS = "trakt_tokens"

    # Stored provider catalogue is refetched once older than this
    PROVIDER_MAX_AGE = BASE_DAY

    # Credentials never become part of a cache key
    EXCLUDED_KEY_PARAMS = frozenset({"api_key"})


class CacheValidationConstants:
    """Cache validation constants."""

    SHA256_HASH_LENGTH = 64
    HEX_CHARS = "0123456789abcdef"
    HASH_PREFIX_LOG_LENGTH = 16
    KEY_PREFIX_LOG_LENGTH = 80
