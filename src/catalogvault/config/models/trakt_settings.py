"""Trakt watch history configuration model.

The client id is the trakt_get upstream's api_key; this section holds the
account, its OAuth tokens and how watched titles are marked.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from catalogvault.shared.constants import TraktConfig


class TraktSettings(BaseModel):
    """Trakt account and watched-marker configuration.

    Security: client_secret and the tokens are hidden from repr.
    """

    username: str = Field(
        default="",
        description="Trakt account whose watch history marks discover results",
    )
    client_secret: str = Field(default="", repr=False, description="OAuth client secret")
    redirect_uri: str = Field(
        default=TraktConfig.REDIRECT_URI,
        description="OAuth redirect URI registered for the application",
    )
    access_token: str = Field(
        default="",
        repr=False,
        description="Initial access token, stored on first sync",
    )
    refresh_token: str = Field(
        default="",
        repr=False,
        description="Initial refresh token, stored on first sync",
    )
    watched_emoji: str = Field(
        default=TraktConfig.WATCHED_EMOJI,
        description="Prefix added to the title of watched results",
    )
    history_fetch_interval_hours: float = Field(
        default=TraktConfig.HISTORY_FETCH_INTERVAL / 3600,
        gt=0,
        description="Minimum time between two history downloads",
    )

    @property
    def history_fetch_interval_seconds(self) -> float:
        return self.history_fetch_interval_hours * 3600

    @property
    def enabled(self) -> bool:
        return bool(self.username)


__all__ = ["TraktSettings"]
