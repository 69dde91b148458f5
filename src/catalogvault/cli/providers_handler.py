"""Watch provider command handler for CatalogVault CLI."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

from catalogvault.cli.json_formatter import format_json_output
from catalogvault.config import Settings
from catalogvault.services.discovery_service import DiscoveryService
from catalogvault.services.tmdb import TMDBWatchProvider
from catalogvault.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


async def run_providers(settings: Settings, force: bool) -> list[TMDBWatchProvider]:
    async with DiscoveryService(settings) as service:
        return await service.get_providers(force=force)


def handle_providers_command(
    settings: Settings,
    *,
    force: bool = False,
    json_output: bool = False,
) -> int:
    """List the watch provider catalogue, refreshing it when stale or forced."""
    providers = asyncio.run(run_providers(settings, force))

    if json_output:
        typer.echo(
            format_json_output(
                success=True,
                command="providers",
                data={"providers": [provider.model_dump() for provider in providers]},
            ).decode("utf-8")
        )
        return CLIDefaults.EXIT_SUCCESS

    table = Table(title=f"Watch providers ({len(providers)})")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Logo", style="dim")
    for provider in providers:
        table.add_row(str(provider.provider_id), provider.provider_name, provider.logo_path or "")
    Console().print(table)
    return CLIDefaults.EXIT_SUCCESS
