"""Playlist outbox: record song requests, add them, retry failures."""
import logging
from datetime import UTC, datetime

import httpx
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import AuthError
from app.models.outbox import (
    STATUS_ADDED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    PlaylistOutboxEntry,
)
from app.spotify.client import add_track_to_playlist
from app.spotify.token import SpotifyTokenCache

logger = logging.getLogger(__name__)


def enqueue_track(
    session: Session, track_uri: str, record_ids: list[str]
) -> PlaylistOutboxEntry:
    """Record the intent to add a track to the playlist."""
    entry = PlaylistOutboxEntry(track_uri=track_uri, record_ids=",".join(record_ids))
    session.add(entry)
    session.commit()
    session.refresh(entry)
    logger.info(f"Queued track {track_uri} for playlist")
    return entry


def claim_entry(session: Session, entry: PlaylistOutboxEntry) -> bool:
    """Mark a pending entry as in flight. Returns False if it is not pending."""
    session.refresh(entry)
    if entry.status != STATUS_PENDING:
        return False
    entry.status = STATUS_PROCESSING
    session.add(entry)
    session.commit()
    return True


async def process_entry(
    session: Session,
    entry: PlaylistOutboxEntry,
    http: httpx.AsyncClient,
    cache: SpotifyTokenCache,
) -> bool:
    """
    Try once to add an outbox entry's track. Returns True if added.

    The entry is claimed before the request goes out, so an entry already
    being processed elsewhere is skipped. Failures are recorded on the
    entry and never raised. A missing owner grant leaves the entry pending
    without spending an attempt; other failures count toward
    ``outbox_max_attempts``.
    """
    if not claim_entry(session, entry):
        logger.debug(f"Outbox entry {entry.id} is {entry.status}, skipping")
        return False

    try:
        await add_track_to_playlist(http, cache, entry.track_uri)
    except AuthError as e:
        entry.status = STATUS_PENDING
        entry.last_error = str(e)
        logger.warning(f"Playlist not authorized, keeping {entry.track_uri} pending")
        added = False
    except Exception as e:
        entry.attempts += 1
        entry.last_error = str(e)
        if entry.attempts >= settings.outbox_max_attempts:
            entry.status = STATUS_FAILED
            entry.processed_at = datetime.now(UTC)
        else:
            entry.status = STATUS_PENDING
        logger.error(
            f"Failed to add track {entry.track_uri} to playlist "
            f"(attempt {entry.attempts}): {e}"
        )
        added = False
    else:
        entry.attempts += 1
        entry.status = STATUS_ADDED
        entry.last_error = None
        entry.processed_at = datetime.now(UTC)
        added = True

    session.add(entry)
    session.commit()
    return added


async def queue_song_request(
    session: Session,
    http: httpx.AsyncClient,
    cache: SpotifyTokenCache,
    track_uri: str,
    record_ids: list[str],
) -> bool:
    """
    Enqueue a song request and make the first attempt right away.

    Returns True if the request was recorded. Called after the RSVP write
    succeeded, so nothing here is allowed to fail the submission.
    """
    try:
        entry = enqueue_track(session, track_uri, record_ids)
    except Exception as e:
        session.rollback()
        logger.error(f"Could not queue track {track_uri}: {e}")
        return False

    await process_entry(session, entry, http, cache)
    return True


async def drain_outbox(
    session: Session, http: httpx.AsyncClient, cache: SpotifyTokenCache
) -> dict:
    """Retry every pending entry. Returns counts by outcome."""
    statement = (
        select(PlaylistOutboxEntry)
        .where(PlaylistOutboxEntry.status == STATUS_PENDING)
        .order_by(PlaylistOutboxEntry.created_at)
    )
    entries = session.exec(statement).all()

    stats = {"added": 0, "failed": 0, "pending": 0}
    for entry in entries:
        if await process_entry(session, entry, http, cache):
            stats["added"] += 1
        elif entry.status == STATUS_FAILED:
            stats["failed"] += 1
        elif entry.status == STATUS_PENDING:
            stats["pending"] += 1

    if entries:
        logger.info(f"Outbox drained: {stats}")
    return stats


def release_claims(session: Session) -> int:
    """Return entries left in flight by a previous process to pending."""
    statement = select(PlaylistOutboxEntry).where(
        PlaylistOutboxEntry.status == STATUS_PROCESSING
    )
    entries = session.exec(statement).all()
    for entry in entries:
        entry.status = STATUS_PENDING
        session.add(entry)
    session.commit()
    if entries:
        logger.warning(f"Released {len(entries)} interrupted outbox entries")
    return len(entries)


def outbox_counts(session: Session) -> dict:
    """Number of entries in each status."""
    counts = {STATUS_PENDING: 0, STATUS_ADDED: 0, STATUS_FAILED: 0}
    for entry in session.exec(select(PlaylistOutboxEntry)).all():
        counts[entry.status] = counts.get(entry.status, 0) + 1
    return counts
