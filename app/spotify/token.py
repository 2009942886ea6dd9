"""Single-slot cache for the Spotify access token.

One ``SpotifyTokenCache`` is built per process (see ``app.main``) and
handed to request handlers and the outbox job. Concurrent callers that
find the slot expired each refresh on their own; the slot is simply
replaced by whichever exchange finishes last.
"""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from app.core.config import settings
from app.core.errors import ConfigurationError, UpstreamError
from app.core.http import decode_json

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds early
EXPIRY_BUFFER_SECONDS = 60
DEFAULT_EXPIRES_IN = 3600


@dataclass
class CachedToken:
    access_token: str
    expires_at: float


class SpotifyTokenCache:
    """Memoized bearer token with an expiry guard.

    With a refresh token (the playlist owner's grant) the cache uses the
    ``refresh_token`` grant and the token can modify playlists. Without
    one it falls back to ``client_credentials``, which is enough for
    searching tracks.

    ``on_rotate(previous, payload)`` is called when Spotify issues a new
    refresh token so it can be stored for the next start.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str = "",
        token_url: str = "https://accounts.spotify.com/api/token",
        clock: Callable[[], float] = time.time,
        on_rotate: Callable[[str, dict], None] | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url
        self._clock = clock
        self._on_rotate = on_rotate
        self._token: CachedToken | None = None

    @classmethod
    def from_settings(
        cls,
        refresh_token: str = "",
        on_rotate: Callable[[str, dict], None] | None = None,
    ) -> "SpotifyTokenCache":
        return cls(
            client_id=settings.spotify_client_id,
            client_secret=settings.spotify_client_secret,
            refresh_token=refresh_token or settings.spotify_refresh_token,
            token_url=f"{settings.spotify_accounts_url}/api/token",
            on_rotate=on_rotate,
        )

    @property
    def can_modify_playlist(self) -> bool:
        return bool(self.refresh_token)

    @property
    def cached(self) -> CachedToken | None:
        return self._token

    def is_fresh(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._token.expires_at - EXPIRY_BUFFER_SECONDS
        )

    async def get(self, http: httpx.AsyncClient) -> str:
        """Return a usable access token, refreshing when expired."""
        if self.is_fresh():
            return self._token.access_token
        return await self._refresh(http)

    def invalidate(self) -> None:
        """Drop the cached token so the next ``get`` refreshes."""
        self._token = None

    def set_refresh_token(self, refresh_token: str) -> None:
        """Install a newly granted refresh token."""
        self.refresh_token = refresh_token
        self.invalidate()

    async def _refresh(self, http: httpx.AsyncClient) -> str:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("Missing SPOTIFY_CLIENT_ID or SPOTIFY_CLIENT_SECRET")

        if self.refresh_token:
            data = {"grant_type": "refresh_token", "refresh_token": self.refresh_token}
        else:
            data = {"grant_type": "client_credentials"}

        try:
            response = await http.post(
                self.token_url, data=data, auth=(self.client_id, self.client_secret)
            )
        except httpx.HTTPError as e:
            logger.error(f"Spotify token refresh failed: {e}")
            raise UpstreamError("spotify", detail=str(e)) from e

        if not response.is_success:
            logger.error(f"Spotify token refresh failed: {response.status_code} {response.text}")
            raise UpstreamError("spotify", response.status_code, response.text)

        payload = decode_json("spotify", response, required=("access_token",))

        # Spotify may rotate the refresh token
        rotated = payload.get("refresh_token")
        if rotated and rotated != self.refresh_token:
            previous = self.refresh_token
            self.refresh_token = rotated
            self._persist_rotation(previous, payload)

        expires_in = payload.get("expires_in") or DEFAULT_EXPIRES_IN
        self._token = CachedToken(
            access_token=payload["access_token"],
            expires_at=self._clock() + expires_in,
        )
        logger.info(f"Refreshed Spotify access token ({data['grant_type']})")
        return self._token.access_token

    def _persist_rotation(self, previous: str, payload: dict) -> None:
        if self._on_rotate is None:
            return
        try:
            self._on_rotate(previous, payload)
        except Exception as e:
            # The new token is still usable for this process
            logger.error(f"Could not persist rotated Spotify refresh token: {e}")
