"""Request-scoped dependencies for outbound API access."""
import httpx
from fastapi import Request

from app.core.config import settings
from app.spotify.auth import persist_rotated_refresh_token
from app.spotify.token import SpotifyTokenCache


async def get_http_client():
    """Dependency yielding an HTTP client for Airtable and Spotify calls."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client


def get_token_cache(request: Request) -> SpotifyTokenCache:
    """Dependency returning the process-wide Spotify token cache.

    The cache is built in the application lifespan; when the lifespan has
    not run (e.g. a bare TestClient) one is created on first use.
    """
    cache = getattr(request.app.state, "token_cache", None)
    if cache is None:
        cache = SpotifyTokenCache.from_settings(on_rotate=persist_rotated_refresh_token)
        request.app.state.token_cache = cache
    return cache
