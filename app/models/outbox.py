"""Outbox entries for tracks waiting to be added to the wedding playlist.

An RSVP is complete as soon as Airtable accepts the write. Adding the
requested song to the playlist is recorded separately here so it can fail
and be retried without touching the RSVP result.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_ADDED = "added"
STATUS_FAILED = "failed"


class PlaylistOutboxEntry(SQLModel, table=True):
    """Intent to add one track to the playlist.

    Attributes:
        id: Unique identifier (UUID).
        track_uri: Spotify URI, e.g. ``spotify:track:4uLU6hMCjMI75M1A2tKUQC``.
        record_ids: Comma-separated Airtable record ids that requested it.
        status: ``pending`` until added, ``processing`` while an attempt is
            in flight, ``failed`` once attempts run out.
        attempts: Number of add attempts made so far.
        last_error: Error text from the most recent failed attempt.
        created_at: When the RSVP was accepted.
        processed_at: When the entry reached ``added`` or ``failed``.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    track_uri: str
    record_ids: str = ""
    status: str = Field(default=STATUS_PENDING, index=True)
    attempts: int = Field(default=0)
    last_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None
