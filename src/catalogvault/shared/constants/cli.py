"""
CLI Constants

Command names, help texts and exit codes for the catalogvault CLI.
"""


class CLIDefaults:
    """Default values for CLI behaviour."""

    VERSION = "0.1.0"

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_CONFIG_ERROR = 2


class CLIHelp:
    """Help texts for commands and options."""

    APP_NAME = "catalogvault"
    APP_DESCRIPTION = (
        "Cursor-paginated TMDB discovery catalogs with rate limiting, "
        "prefetching and a persistent page cache."
    )
    VERSION_TEXT = "CatalogVault v{version}"

    DISCOVER_HELP = "Run a discovery query and print the merged results."
    CACHE_INFO_HELP = "Show catalog cache statistics."
    CACHE_SWEEP_HELP = "Delete expired catalog cache entries."
    GENRES_SYNC_HELP = "Fetch movie and TV genres and store them for lookups."
    PROVIDERS_HELP = "List watch providers, refreshed from TMDB once a day."
    TRAKT_SYNC_HELP = "Import the configured Trakt user's watch history."
    FORCE_HELP = "Refetch even when the stored data is fresh"

    CATALOG_ID_HELP = "Catalog id such as tmdb-discover-movies-new-8"
    TYPE_HELP = "Catalog type: movies or series"
    PROVIDER_HELP = "Watch provider id (repeatable, the first one anchors pagination)"
    REGION_HELP = "Watch region (repeatable)"
    SKIP_HELP = "Item offset of the page to return"
    JSON_HELP = "Output results in JSON format"
    WATCH_HELP = "Keep sweeping at the configured interval"
