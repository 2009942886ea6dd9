"""OAuth token model for the Spotify playlist owner.

This module defines the OAuthToken model which stores the credentials the
playlist owner grants through ``/auth/spotify/login``. Only the refresh
token is long-lived; access tokens are held by the in-memory token cache.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class OAuthToken(SQLModel, table=True):
    """Stored OAuth2 credentials for Spotify playlist access.

    ``SPOTIFY_REFRESH_TOKEN`` in the environment, when set, is the starting
    point; otherwise the newest row for a provider. Rows written when
    Spotify rotates a refresh token name the token they replace, so the
    current token is found by following ``replaces`` links.

    Attributes:
        id: Unique identifier (UUID).
        provider: Which service issued the token.
        access_token: Short-lived token returned alongside the refresh token.
        refresh_token: Long-lived token used to obtain new access tokens.
        expires_at: When the access token expires.
        scopes: Space-separated list of authorized OAuth scopes.
        replaces: Refresh token this one superseded, if it came from a
            rotation.
        created_at: When the owner completed the authorization.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    provider: str = Field(default="spotify", index=True)
    access_token: str = ""
    refresh_token: str
    expires_at: datetime
    scopes: str = ""
    replaces: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
