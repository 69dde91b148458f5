"""
Discovery Query Constants

Catalog identifiers, sort orders and the age-range to TMDB filter mapping.
"""

from typing import ClassVar


class MediaType:
    """Caller-facing catalog types and their TMDB path segment."""

    MOVIES = "movies"
    SERIES = "series"

    TMDB_MOVIE = "movie"
    TMDB_TV = "tv"

    TO_TMDB: ClassVar[dict[str, str]] = {MOVIES: TMDB_MOVIE, SERIES: TMDB_TV}

    TRAKT_MOVIE = "movie"
    TRAKT_SHOW = "show"

    TO_TRAKT: ClassVar[dict[str, str]] = {MOVIES: TRAKT_MOVIE, SERIES: TRAKT_SHOW}


class SortOrder:
    """Sort orders understood by /discover."""

    POPULARITY = "popularity.desc"
    MOVIE_NEWEST = "primary_release_date.desc"
    TV_NEWEST = "first_air_date.desc"


class CatalogId:
    """Catalog identifier format, e.g. tmdb-discover-movies-new-8."""

    PATTERN = r"^tmdb-discover-(movies|series)(-new|-popular)?-(\d+)$"
    NEW_SUFFIX = "-new"


class DiscoverParams:
    """Query parameter names sent to /discover."""

    PAGE = "page"
    WATCH_PROVIDERS = "with_watch_providers"
    WATCH_REGION = "watch_region"
    SORT_BY = "sort_by"
    LANGUAGE = "language"
    WITH_GENRES = "with_genres"
    WITHOUT_GENRES = "without_genres"
    CERTIFICATION = "certification"
    CERTIFICATION_COUNTRY = "certification_country"
    INCLUDE_ADULT = "include_adult"
    VOTE_GTE = "vote_average.gte"
    VOTE_LTE = "vote_average.lte"
    MOVIE_DATE_GTE = "primary_release_date.gte"
    MOVIE_DATE_LTE = "primary_release_date.lte"
    TV_DATE_GTE = "first_air_date.gte"
    TV_DATE_LTE = "first_air_date.lte"


class AgeRange:
    """Age-range presets and the TMDB filters they translate to."""

    TODDLER = "0-5"
    CHILD = "6-11"
    TEEN = "12-15"
    OLDER_TEEN = "16-17"
    ADULT = "18+"

    ALL = (TODDLER, CHILD, TEEN, OLDER_TEEN, ADULT)

    CERTIFICATION_COUNTRY = "US"

    # Horror, Drama, Thriller, Crime, War, Western, Romance, War & Politics,
    # Talk, Soap, Reality, News, Mystery, Documentary, History
    CHILD_EXCLUDED_GENRES = (
        "27,18,53,80,10752,37,10749,10768,10767,10766,10764,10763,9648,99,36"
    )
    KIDS_TV_GENRE = "10762"
    ANIMATION_GENRE = "16"

    MOVIE_FILTERS: ClassVar[dict[str, dict[str, str]]] = {
        TODDLER: {
            "certification_country": CERTIFICATION_COUNTRY,
            "certification": "G",
            "without_genres": CHILD_EXCLUDED_GENRES,
        },
        CHILD: {
            "certification_country": CERTIFICATION_COUNTRY,
            "certification": "G",
            "without_genres": CHILD_EXCLUDED_GENRES,
        },
        TEEN: {"certification_country": CERTIFICATION_COUNTRY, "certification": "PG"},
        OLDER_TEEN: {
            "certification_country": CERTIFICATION_COUNTRY,
            "certification": "PG-13",
        },
        ADULT: {"include_adult": "true"},
    }

    TV_FILTERS: ClassVar[dict[str, dict[str, str]]] = {
        TODDLER: {"with_genres": KIDS_TV_GENRE},
        CHILD: {"with_genres": KIDS_TV_GENRE},
        TEEN: {"with_genres": ANIMATION_GENRE},
    }
