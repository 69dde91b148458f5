"""Cache maintenance command handlers for CatalogVault CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from catalogvault.cli.json_formatter import format_json_output
from catalogvault.config import Settings
from catalogvault.services.cache_sweeper import CacheSweeper
from catalogvault.services.sqlite_cache import SQLiteCacheDB
from catalogvault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


def _open_cache(settings: Settings) -> SQLiteCacheDB:
    return SQLiteCacheDB(
        settings.cache.db_path,
        default_ttl_seconds=settings.cache.catalog_ttl_seconds,
    )


def display_cache_info(info: dict[str, Any], console: Console) -> None:
    table = Table(title="Catalog cache")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in info.items():
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


def handle_cache_info_command(settings: Settings, *, json_output: bool = False) -> int:
    """Print entry counts and payload size of the cache database."""
    cache_db = _open_cache(settings)
    try:
        info = cache_db.get_cache_info()
    finally:
        cache_db.close()

    if json_output:
        typer.echo(
            format_json_output(success=True, command="cache-info", data=info).decode("utf-8")
        )
    else:
        display_cache_info(info, Console())
    return CLIDefaults.EXIT_SUCCESS


def handle_cache_sweep_command(
    settings: Settings,
    *,
    watch: bool = False,
    json_output: bool = False,
) -> int:
    """Delete expired entries once, or keep sweeping until interrupted."""
    cache_db = _open_cache(settings)
    sweeper = CacheSweeper(
        cache_db,
        interval_seconds=settings.cache.sweep_interval_seconds,
    )
    try:
        if watch:
            logger.info(
                "Sweeping every %s seconds, press Ctrl+C to stop",
                settings.cache.sweep_interval_seconds,
            )
            try:
                asyncio.run(sweeper.run_forever())
            except KeyboardInterrupt:
                logger.info("Cache sweeper stopped")
            return CLIDefaults.EXIT_SUCCESS
        removed = sweeper.sweep_once()
    finally:
        cache_db.close()

    if json_output:
        typer.echo(
            format_json_output(
                success=True,
                command="cache-sweep",
                data={"removed_entries": removed},
            ).decode("utf-8")
        )
    else:
        Console().print(f"[green]Removed {removed} expired entries[/green]")
    return CLIDefaults.EXIT_SUCCESS
