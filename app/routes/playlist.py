"""Playlist routes: song search, direct additions and outbox status."""
import httpx
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.database import get_session
from app.core.dependencies import get_http_client, get_token_cache
from app.core.errors import ValidationError
from app.models.rsvp import PlaylistAddRequest, PlaylistAddResult
from app.spotify.client import add_track_to_playlist, search_tracks
from app.spotify.outbox import outbox_counts
from app.spotify.token import SpotifyTokenCache

router = APIRouter(prefix="/playlist", tags=["playlist"])


@router.post("/add", response_model=PlaylistAddResult)
async def add_track(
    body: PlaylistAddRequest,
    http: httpx.AsyncClient = Depends(get_http_client),
    cache: SpotifyTokenCache = Depends(get_token_cache),
):
    """
    Add a track to the wedding playlist.

    Returns 401 with ``needs_setup`` when the playlist owner has not
    granted access yet.
    """
    if not body.track_uri:
        raise ValidationError("Track URI is required")
    return await add_track_to_playlist(http, cache, body.track_uri)


@router.get("/search")
async def search(
    q: str | None = None,
    http: httpx.AsyncClient = Depends(get_http_client),
    cache: SpotifyTokenCache = Depends(get_token_cache),
):
    """Search Spotify for songs to request."""
    tracks = await search_tracks(http, cache, q or "")
    return {"tracks": [track.model_dump(by_alias=True) for track in tracks]}


@router.get("/outbox")
async def outbox_status(session: Session = Depends(get_session)):
    """Counts of queued song requests by status."""
    return outbox_counts(session)
