"""
CatalogVault Typer CLI Application

Command-line access to the discovery gateway: run discovery queries, inspect
and sweep the page cache, and import the genre, watch provider and Trakt
history lookup tables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from catalogvault.cli.cache_handler import (
    handle_cache_info_command,
    handle_cache_sweep_command,
)
from catalogvault.cli.common.error_handler import handle_cli_error
from catalogvault.cli.discover_handler import handle_discover_command
from catalogvault.cli.genres_handler import handle_genres_sync_command
from catalogvault.cli.providers_handler import handle_providers_command
from catalogvault.cli.trakt_handler import handle_trakt_sync_command
from catalogvault.config import Settings, reload_config
from catalogvault.services.tmdb import DiscoveryRequest
from catalogvault.shared.constants import CLIDefaults, CLIHelp
from catalogvault.shared.errors import create_configuration_error
from catalogvault.shared.logging import setup_structured_logger

__version__ = CLIDefaults.VERSION


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file",
        dir_okay=False,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override the configured log level",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Load settings and configure logging before any command runs."""
    try:
        settings = reload_config(config)
        setup_structured_logger(
            level=log_level or settings.logging.level,
            log_file=settings.logging.file,
            use_rich_console=settings.logging.use_rich_console,
        )
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "main-callback")
        raise typer.Exit(exit_code) from e

    ctx.obj = {"settings": settings}


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _build_request(
    catalog_id: str | None,
    media_type: str | None,
    **fields: Any,
) -> DiscoveryRequest:
    if catalog_id:
        return DiscoveryRequest.from_catalog_id(catalog_id, **fields)
    if media_type is None:
        raise create_configuration_error(
            "Either --catalog-id or --type is required",
            field="media_type",
            operation="build_discovery_request",
        )
    return DiscoveryRequest.create(media_type=media_type, **fields)


@app.command("discover", help=CLIHelp.DISCOVER_HELP)
def discover_command(
    ctx: typer.Context,
    catalog_id: str | None = typer.Option(None, "--catalog-id", help=CLIHelp.CATALOG_ID_HELP),
    media_type: str | None = typer.Option(None, "--type", "-t", help=CLIHelp.TYPE_HELP),
    provider: list[str] | None = typer.Option(
        None, "--provider", "-p", help=CLIHelp.PROVIDER_HELP
    ),
    region: list[str] | None = typer.Option(None, "--region", "-r", help=CLIHelp.REGION_HELP),
    skip: int = typer.Option(0, "--skip", "-s", min=0, help=CLIHelp.SKIP_HELP),
    age_range: str | None = typer.Option(None, "--age-range", help="One of 0-5, 6-11, 12-15, 16-17, 18+"),
    genre: str | None = typer.Option(None, "--genre", help="Genre id filter"),
    year_range: str | None = typer.Option(None, "--years", help="Release years, e.g. 1990-1999"),
    rating_range: str | None = typer.Option(None, "--rating", help="Rating range, e.g. 5-8"),
    language: str | None = typer.Option(None, "--language", "-l", help="Response language"),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        fields: dict[str, Any] = {
            "skip": skip,
            "regions": tuple(region or ()),
            "age_range": age_range,
            "genre_id": genre,
            "year_range": year_range,
            "rating_range": rating_range,
            "language": language,
        }
        if not catalog_id:
            fields["provider_ids"] = tuple(provider or ())
        request = _build_request(catalog_id, media_type, **fields)
        exit_code = handle_discover_command(request, _settings(ctx), json_output=json_output)
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "discover", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command("cache-info", help=CLIHelp.CACHE_INFO_HELP)
def cache_info_command(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        exit_code = handle_cache_info_command(_settings(ctx), json_output=json_output)
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "cache-info", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command("cache-sweep", help=CLIHelp.CACHE_SWEEP_HELP)
def cache_sweep_command(
    ctx: typer.Context,
    watch: bool = typer.Option(False, "--watch", "-w", help=CLIHelp.WATCH_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        exit_code = handle_cache_sweep_command(
            _settings(ctx),
            watch=watch,
            json_output=json_output,
        )
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "cache-sweep", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command("genres-sync", help=CLIHelp.GENRES_SYNC_HELP)
def genres_sync_command(
    ctx: typer.Context,
    language: str | None = typer.Option(None, "--language", "-l", help="Genre language"),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        exit_code = handle_genres_sync_command(
            _settings(ctx),
            language,
            json_output=json_output,
        )
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "genres-sync", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command("providers", help=CLIHelp.PROVIDERS_HELP)
def providers_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help=CLIHelp.FORCE_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        exit_code = handle_providers_command(
            _settings(ctx),
            force=force,
            json_output=json_output,
        )
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "providers", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command("trakt-sync", help=CLIHelp.TRAKT_SYNC_HELP)
def trakt_sync_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help=CLIHelp.FORCE_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    try:
        exit_code = handle_trakt_sync_command(
            _settings(ctx),
            force=force,
            json_output=json_output,
        )
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, "trakt-sync", json_output=json_output)
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
