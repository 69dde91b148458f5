"""Trakt API client.

Reads go through the trakt_get scheduler, OAuth token refreshes through the
trakt_post scheduler. Every request carries the API version and client id
headers; user-scoped reads add the bearer token.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from catalogvault.services.fetch_scheduler import FetchScheduler, FetchTask, UpstreamCredentials
from catalogvault.shared.constants import MediaType, TraktConfig
from catalogvault.shared.errors import (
    ErrorCode,
    ErrorContext,
    UpstreamError,
    create_configuration_error,
)

from .trakt_models import TraktTokens, WatchedEntry, parse_watched

logger = logging.getLogger(__name__)


def trakt_media_type(media_type: str) -> str:
    """Map "movies"/"series" (or "movie"/"show") to the Trakt item type.

    Raises:
        ConfigurationError: If the media type is unknown
    """
    trakt_type = MediaType.TO_TRAKT.get(media_type, media_type)
    if trakt_type not in (MediaType.TRAKT_MOVIE, MediaType.TRAKT_SHOW):
        raise create_configuration_error(
            f"Unsupported media type: {media_type}",
            field="media_type",
            operation="trakt_media_type",
        )
    return trakt_type


class TraktClient:
    """Secondary history API client.

    Args:
        scheduler: Scheduler of the trakt_get upstream
        post_scheduler: Scheduler of the trakt_post upstream (token refresh)
        client_id: Application client id, sent as ``trakt-api-key``
        client_secret: Application client secret (token refresh only)
        base_url: Trakt API root
        redirect_uri: Redirect URI registered for the application
    """

    def __init__(
        self,
        scheduler: FetchScheduler,
        post_scheduler: FetchScheduler | None = None,
        client_id: str = "",
        client_secret: str = "",
        base_url: str = TraktConfig.BASE_URL,
        redirect_uri: str = TraktConfig.REDIRECT_URI,
    ) -> None:
        self.scheduler = scheduler
        self.post_scheduler = post_scheduler
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.redirect_uri = redirect_uri

    def _credentials(self, access_token: str | None = None) -> UpstreamCredentials:
        return UpstreamCredentials(
            bearer_token=access_token or None,
            headers={
                "trakt-api-version": TraktConfig.API_VERSION,
                "trakt-api-key": self.client_id,
            },
        )

    async def fetch_watched(
        self,
        username: str,
        media_type: str,
        access_token: str | None = None,
    ) -> list[WatchedEntry]:
        """Download the watched movies or shows of ``username``.

        Raises:
            ConfigurationError: If the media type is unknown
            UpstreamError: If the call fails (status 401 when the token expired)
                or the response is not a list
        """
        trakt_type = trakt_media_type(media_type)
        url = f"{self.base_url}/users/{username}/watched/{trakt_type}s"
        params: dict[str, Any] = {}
        if trakt_type == MediaType.TRAKT_SHOW:
            params["extended"] = TraktConfig.SHOWS_EXTENDED
        if not access_token:
            logger.debug("No access token provided, making unauthenticated request")

        data = await self.scheduler.submit(
            FetchTask(url=url, params=params, credentials=self._credentials(access_token))
        )
        if data is None:
            data = []
        if not isinstance(data, list):
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message=f"Invalid watched {trakt_type} list for {username}",
                context=ErrorContext(
                    operation="fetch_watched",
                    additional_data={"media_type": trakt_type},
                ),
                url=url,
            )

        entries = parse_watched(data, trakt_type)
        logger.info("Fetched %d watched %ss for user %s", len(entries), trakt_type, username)
        return entries

    async def refresh_token(self, refresh_token: str) -> TraktTokens:
        """Exchange a refresh token for a new token pair.

        Raises:
            ConfigurationError: If no write scheduler is configured
            UpstreamError: If the call fails or the response is invalid
        """
        if self.post_scheduler is None:
            raise create_configuration_error(
                "Trakt token refresh needs the trakt_post scheduler",
                field="upstreams.trakt_post",
                operation="refresh_token",
                code=ErrorCode.CONFIGURATION_ERROR,
            )

        url = f"{self.base_url}{TraktConfig.TOKEN_PATH}"
        task = FetchTask(
            url=url,
            method="POST",
            json_body={
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "refresh_token",
            },
            credentials=self._credentials(),
        )
        data = await self.post_scheduler.submit(task)

        try:
            return TraktTokens.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message="Invalid token response from Trakt",
                context=ErrorContext(operation="refresh_token"),
                original_error=e,
                url=url,
            ) from e
