"""Trakt history sync command handler for CatalogVault CLI."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console

from catalogvault.cli.json_formatter import format_json_output
from catalogvault.config import Settings
from catalogvault.services.discovery_service import DiscoveryService
from catalogvault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


async def run_trakt_sync(settings: Settings, force: bool) -> dict[str, int] | None:
    async with DiscoveryService(settings) as service:
        return await service.sync_trakt_history(force=force)


def handle_trakt_sync_command(
    settings: Settings,
    *,
    force: bool = False,
    json_output: bool = False,
) -> int:
    """Import the configured user's Trakt watch history."""
    counts = asyncio.run(run_trakt_sync(settings, force))
    username = settings.trakt.username

    if json_output:
        typer.echo(
            format_json_output(
                success=True,
                command="trakt-sync",
                data={"username": username, "imported": counts, "skipped": counts is None},
            ).decode("utf-8")
        )
        return CLIDefaults.EXIT_SUCCESS

    console = Console()
    if counts is None:
        console.print(f"[yellow]History of {username} is up to date[/yellow]")
    else:
        for media_type, count in counts.items():
            console.print(f"[cyan]{media_type}[/cyan]: {count} watched ({username})")
    return CLIDefaults.EXIT_SUCCESS
