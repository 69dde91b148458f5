"""Genre sync command handler for CatalogVault CLI."""

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


async def run_genres_sync(settings: Settings, language: str | None) -> dict[str, int]:
    async with DiscoveryService(settings) as service:
        return await service.sync_genres(language)


def handle_genres_sync_command(
    settings: Settings,
    language: str | None = None,
    *,
    json_output: bool = False,
) -> int:
    """Fetch and store movie and TV genres for one language."""
    language = language or settings.discovery.default_language
    counts = asyncio.run(run_genres_sync(settings, language))

    if json_output:
        typer.echo(
            format_json_output(
                success=True,
                command="genres-sync",
                data={"language": language, "genres": counts},
            ).decode("utf-8")
        )
    else:
        console = Console()
        for media_type, count in counts.items():
            console.print(f"[cyan]{media_type}[/cyan]: {count} genres ({language})")
    return CLIDefaults.EXIT_SUCCESS
