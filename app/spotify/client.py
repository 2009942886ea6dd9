"""Spotify Web API calls: track search and playlist additions."""
import logging

import httpx

from app.core.config import settings
from app.core.errors import AuthError, ConfigurationError, UpstreamError, ValidationError
from app.core.http import decode_json
from app.models.rsvp import PlaylistAddResult, Track
from app.spotify.token import SpotifyTokenCache

logger = logging.getLogger(__name__)

SETUP_URL = "/auth/setup"


def parse_track_uri(uri: str) -> str:
    """
    Extract the track id from a ``spotify:track:<id>`` URI.

    Raises:
        ValidationError: If the value is not a track URI.
    """
    parts = (uri or "").strip().split(":")
    if len(parts) != 3 or parts[0] != "spotify" or parts[1] != "track" or not parts[2]:
        raise ValidationError(f"Invalid Spotify track URI: {uri!r}")
    return parts[2]


def track_url(uri: str) -> str:
    return f"https://open.spotify.com/track/{parse_track_uri(uri)}"


async def spotify_request(
    http: httpx.AsyncClient,
    cache: SpotifyTokenCache,
    method: str,
    path: str,
    **kwargs,
) -> dict:
    """Call the Web API with a cached bearer token.

    A 401 answer invalidates the cache so the next call refreshes.
    """
    token = await cache.get(http)
    try:
        response = await http.request(
            method,
            f"{settings.spotify_api_url}{path}",
            headers={"Authorization": f"Bearer {token}"},
            **kwargs,
        )
    except httpx.HTTPError as e:
        logger.error(f"Spotify {method} {path} failed: {e}")
        raise UpstreamError("spotify", detail=str(e)) from e

    if response.status_code == 401:
        cache.invalidate()
    if not response.is_success:
        logger.error(f"Spotify API error: {response.status_code} - {response.text}")
        raise UpstreamError("spotify", response.status_code, response.text)

    return decode_json("spotify", response)


def _track_from_item(item: dict) -> Track:
    album = item.get("album") or {}
    images = album.get("images") or []
    return Track(
        id=item["id"],
        name=item["name"],
        artist=", ".join(artist["name"] for artist in item.get("artists", [])),
        album=album.get("name", ""),
        album_art=images[0]["url"] if images else None,
        uri=item["uri"],
        preview_url=item.get("preview_url"),
    )


async def search_tracks(
    http: httpx.AsyncClient,
    cache: SpotifyTokenCache,
    query: str,
    limit: int = 10,
) -> list[Track]:
    """Search Spotify tracks for the song-request picker."""
    if not query or not query.strip():
        raise ValidationError("Search query is required")

    data = await spotify_request(
        http, cache, "GET", "/search",
        params={"q": query.strip(), "type": "track", "limit": limit},
    )
    return [_track_from_item(item) for item in data.get("tracks", {}).get("items", [])]


async def add_track_to_playlist(
    http: httpx.AsyncClient,
    cache: SpotifyTokenCache,
    track_uri: str,
) -> PlaylistAddResult:
    """
    Append a track to the wedding playlist.

    Raises:
        ValidationError: If the URI is not a track URI.
        ConfigurationError: If no playlist id is configured.
        AuthError: If the playlist owner has not granted access yet.
        UpstreamError: If Spotify rejects the request.
    """
    parse_track_uri(track_uri)

    playlist_id = settings.spotify_playlist_id
    if not playlist_id:
        raise ConfigurationError("Missing SPOTIFY_PLAYLIST_ID")
    if not cache.can_modify_playlist:
        logger.warning(f"No Spotify refresh token configured, cannot add {track_uri}")
        raise AuthError(
            "Spotify authentication not set up yet. Admin needs to complete setup.",
            setup_url=SETUP_URL,
        )

    await spotify_request(
        http, cache, "POST", f"/playlists/{playlist_id}/tracks", json={"uris": [track_uri]}
    )

    url = track_url(track_uri)
    logger.info(f"Added track {track_uri} to playlist {playlist_id} ({url})")
    return PlaylistAddResult(track_uri=track_uri, track_url=url, playlist_id=playlist_id)
