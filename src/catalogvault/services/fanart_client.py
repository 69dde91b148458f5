"""Fanart.tv logo lookup through the fanart scheduler."""

from __future__ import annotations

import logging
from typing import Any

from catalogvault.services.fetch_scheduler import FetchScheduler, FetchTask, UpstreamCredentials
from catalogvault.shared.constants import FanartConfig
from catalogvault.shared.errors import CatalogVaultError

logger = logging.getLogger(__name__)


def _best_logo(logos: list[dict[str, Any]], language: str) -> dict[str, Any] | None:
    """Most-liked logo in ``language``; first in list order on ties."""
    candidates = [logo for logo in logos if logo.get("lang") == language and logo.get("url")]
    if not candidates:
        return None
    return max(candidates, key=lambda logo: int(logo.get("likes") or 0))


def select_logo_url(
    logos: list[dict[str, Any]],
    preferred_language: str,
    fallback_language: str = FanartConfig.FALLBACK_LANGUAGE,
) -> str:
    """Pick a logo URL: preferred language, else fallback language, else ''."""
    best = _best_logo(logos, preferred_language) or _best_logo(logos, fallback_language)
    if best is None:
        return ""
    return str(best["url"]).replace("http://", "https://", 1)


class FanartClient:
    """Supplementary logo API client."""

    def __init__(
        self,
        scheduler: FetchScheduler,
        api_key: str = "",
        base_url: str = FanartConfig.BASE_URL,
    ) -> None:
        self.scheduler = scheduler
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def get_logo(
        self,
        tmdb_id: int | str,
        preferred_language: str,
        api_key: str | None = None,
    ) -> str:
        """Return the best movie logo URL, or '' when none exists or the call fails."""
        key = api_key or self.api_key
        task = FetchTask(
            url=f"{self.base_url}/movies/{tmdb_id}",
            credentials=UpstreamCredentials(api_key=key) if key else None,
        )
        try:
            data = await self.scheduler.submit(task)
        except CatalogVaultError as e:
            logger.error("Error fetching logos from Fanart.tv for TMDB ID %s: %s", tmdb_id, e)
            return ""

        logos = (data or {}).get("hdmovielogo") or []
        logo_url = select_logo_url(logos, preferred_language)
        logger.debug("Logo for TMDB ID %s (%s): %s", tmdb_id, preferred_language, logo_url or "none")
        return logo_url
