"""Discover command handler for CatalogVault CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from catalogvault.cli.json_formatter import format_json_output
from catalogvault.config import Settings
from catalogvault.services.discovery_service import DiscoveryService
from catalogvault.services.tmdb import DiscoveryRequest, DiscoveryResponse
from catalogvault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


async def run_discover(request: DiscoveryRequest, settings: Settings) -> DiscoveryResponse:
    """Run one discovery query, waiting for its prefetches before closing."""
    async with DiscoveryService(settings) as service:
        return await service.discover(request)


def _item_title(item: dict[str, Any]) -> str:
    return str(item.get("title") or item.get("name") or "")


def _item_date(item: dict[str, Any]) -> str:
    return str(item.get("release_date") or item.get("first_air_date") or "")


def display_discover_results(response: DiscoveryResponse, console: Console) -> None:
    """Render the merged page as a Rich table."""
    table = Table(
        title=(
            f"Page {response.page} of {response.total_pages} "
            f"({response.total_results} results)"
        ),
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Date")
    table.add_column("Rating", justify="right")

    for index, item in enumerate(response.results, start=1):
        rating = item.get("vote_average")
        table.add_row(
            str(index),
            str(item.get("id", "")),
            _item_title(item),
            _item_date(item),
            f"{rating:.1f}" if isinstance(rating, (int, float)) else "",
        )

    console.print(table)


def handle_discover_command(
    request: DiscoveryRequest,
    settings: Settings,
    *,
    json_output: bool = False,
) -> int:
    """Handle the discover command.

    Returns:
        Exit code (0 for success)
    """
    logger.info("Discover started: %s (skip=%d)", request.endpoint, request.skip)
    response = asyncio.run(run_discover(request, settings))

    if json_output:
        output = format_json_output(
            success=True,
            command="discover",
            data=response.model_dump(),
        )
        typer.echo(output.decode("utf-8"))
    else:
        display_discover_results(response, Console())

    return CLIDefaults.EXIT_SUCCESS
