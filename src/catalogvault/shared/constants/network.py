"""
Network Configuration Constants

This module contains constants for upstream services, their rate limits
and the HTTP client.
"""

BASE_SECOND = 1.0
BASE_MINUTE = 60 * BASE_SECOND


class NetworkConfig:
    """HTTP client configuration constants."""

    # Timeout settings
    CONNECT_TIMEOUT = 10 * BASE_SECOND
    READ_TIMEOUT = 30 * BASE_SECOND
    TOTAL_TIMEOUT = 60 * BASE_SECOND

    # Connection pool
    CONNECTION_LIMIT = 100
    CONNECTION_LIMIT_PER_HOST = 20

    USER_AGENT = "CatalogVault/0.1.0"
    ACCEPT_JSON = "application/json"

    # Poll interval used when a scheduler waits for a reservoir refill
    MIN_WAIT = 0.01


class UpstreamNames:
    """Names of the upstream services, one scheduler each."""

    TMDB = "tmdb"
    TRAKT_GET = "trakt_get"
    TRAKT_POST = "trakt_post"
    FANART = "fanart"

    ALL = (TMDB, TRAKT_GET, TRAKT_POST, FANART)


class TMDBConfig:
    """TMDB (primary catalog API) constants."""

    BASE_URL = "https://api.themoviedb.org/3"
    IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

    # Upstream pagination contract, not configurable
    PAGE_SIZE = 20

    RESERVOIR = 50
    REFRESH_INTERVAL = 1 * BASE_SECOND
    MAX_CONCURRENT = 20


class TraktConfig:
    """Trakt (secondary history API) constants."""

    BASE_URL = "https://api.trakt.tv"
    API_VERSION = "2"

    GET_RESERVOIR = 1000
    GET_REFRESH_INTERVAL = 5 * BASE_MINUTE
    GET_MAX_CONCURRENT = 10

    POST_MIN_TIME = 1 * BASE_SECOND
    POST_MAX_CONCURRENT = 1

    TOKEN_PATH = "/oauth/token"
    REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
    SHOWS_EXTENDED = "noseasons"

    HISTORY_FETCH_INTERVAL = 24 * 60 * BASE_MINUTE
    WATCHED_EMOJI = "\N{HEAVY CHECK MARK}\N{VARIATION SELECTOR-16}"


class FanartConfig:
    """Fanart.tv (supplementary logo API) constants."""

    BASE_URL = "https://webservice.fanart.tv/v3"
    FALLBACK_LANGUAGE = "en"

    RESERVOIR = 50
    REFRESH_INTERVAL = 1 * BASE_SECOND
    MAX_CONCURRENT = 10
