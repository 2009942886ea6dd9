"""RSVP submission route."""
import httpx
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.airtable.submission import submit_rsvp
from app.core.database import get_session
from app.core.dependencies import get_http_client, get_token_cache
from app.models.rsvp import RsvpSubmission, SubmitResult
from app.spotify.outbox import queue_song_request
from app.spotify.token import SpotifyTokenCache

router = APIRouter(tags=["rsvp"])


@router.post("/submit", response_model=SubmitResult)
async def submit(
    submission: RsvpSubmission,
    http: httpx.AsyncClient = Depends(get_http_client),
    cache: SpotifyTokenCache = Depends(get_token_cache),
    session: Session = Depends(get_session),
):
    """
    Save RSVP answers for one or more families.

    The result depends only on the Airtable write. A requested track is
    queued in the playlist outbox afterwards; adding it may fail and be
    retried in the background without affecting this response.
    """
    updated = await submit_rsvp(http, submission)

    playlist_queued = False
    track_uri = submission.track_uri
    if track_uri:
        record_ids = list(dict.fromkeys(r.record_id for r in submission.responses))
        playlist_queued = await queue_song_request(session, http, cache, track_uri, record_ids)

    return SubmitResult(updated_records=updated, playlist_queued=playlist_queued)
