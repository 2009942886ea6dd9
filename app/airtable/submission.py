"""Write RSVP answers back onto Airtable family records.

Canonical field schema: attendance and dietary flags are stored as the
strings ``"Yes"``/``"No"``. The primary guest uses the ``Person1-`` columns,
the partner ``Person2-`` and all children share the ``Children-`` columns.
"""
import logging

import httpx

from app.airtable.client import airtable_request
from app.airtable.directory import (
    ATTENDANCE_FIELDS,
    DIETARY_SUFFIXES,
    NOTES_FIELD,
    SLOT_PREFIXES,
    SONG_REQUEST_FIELD,
    normalize_phone,
    redact_phone,
)
from app.core.errors import ValidationError
from app.models.guest import GuestKind
from app.models.rsvp import DietaryRestrictions, FamilyResponse, GuestResponse, RsvpSubmission
from app.spotify.client import parse_track_uri

logger = logging.getLogger(__name__)

TRACK_ID_FIELD = "Track_ID"


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def dietary_fields(prefix: str, restrictions: DietaryRestrictions) -> dict[str, str]:
    return {
        f"{prefix}-{suffix}": yes_no(getattr(restrictions, attr))
        for attr, suffix in DIETARY_SUFFIXES.items()
    }


def group_responses(responses: list[FamilyResponse]) -> dict[str, FamilyResponse]:
    """
    Merge response bundles that share a record id.

    Clients normally send one bundle per family already; duplicates have
    their guest answers concatenated (later answers win when written) and
    ``kids_invited`` OR-ed together.
    """
    grouped: dict[str, FamilyResponse] = {}
    for response in responses:
        existing = grouped.get(response.record_id)
        if existing is None:
            grouped[response.record_id] = response.model_copy(deep=True)
            continue

        existing.guest_responses.extend(response.guest_responses)
        existing.kids_invited = existing.kids_invited or response.kids_invited
        existing.notes = existing.notes or response.notes
        existing.song_request = existing.song_request or response.song_request
    return grouped


def _children_fields(children: list[GuestResponse]) -> dict[str, str]:
    attending = [child for child in children if child.attending]
    fields = {ATTENDANCE_FIELDS["child"]: yes_no(bool(attending))}

    diets = [child.dietary_restrictions for child in attending if child.dietary_restrictions]
    if diets:
        merged = DietaryRestrictions(
            **{attr: any(getattr(d, attr) for d in diets) for attr in DIETARY_SUFFIXES}
        )
        fields.update(dietary_fields(SLOT_PREFIXES[GuestKind.CHILD], merged))
    return fields


def build_record_fields(
    response: FamilyResponse,
    notes: str = "",
    song_request: str = "",
    track_id: str = "",
) -> dict[str, str]:
    """
    Build the Airtable field update for one family.

    Dietary columns are only written for attending guests. Child columns
    are only written when the family is marked kids-invited; otherwise any
    child answers are dropped and the stored values stay untouched.
    Family-level notes and song request win over the submission-wide ones.
    """
    fields = {
        SONG_REQUEST_FIELD: response.song_request or song_request or "",
        NOTES_FIELD: response.notes or notes or "",
        TRACK_ID_FIELD: track_id,
    }

    children = []
    for guest in response.guest_responses:
        kind = guest.guest_type.kind
        if kind is GuestKind.CHILD:
            if response.kids_invited:
                children.append(guest)
            continue

        prefix = SLOT_PREFIXES[kind]
        fields[ATTENDANCE_FIELDS[kind.value]] = yes_no(guest.attending)
        if guest.attending and guest.dietary_restrictions:
            fields.update(dietary_fields(prefix, guest.dietary_restrictions))

    if children:
        fields.update(_children_fields(children))

    return fields


def build_update_records(submission: RsvpSubmission) -> list[dict]:
    """Build the ``records`` array for one batched PATCH."""
    track_uri = submission.track_uri
    track_id = parse_track_uri(track_uri) if track_uri else ""

    grouped = group_responses(submission.responses)
    return [
        {
            "id": record_id,
            "fields": build_record_fields(
                response, submission.notes, submission.song_request, track_id
            ),
        }
        for record_id, response in grouped.items()
    ]


async def submit_rsvp(http: httpx.AsyncClient, submission: RsvpSubmission) -> int:
    """
    Persist RSVP answers for every family in one batched update.

    Returns the number of records Airtable reports as updated. Success is
    all-or-nothing from the caller's point of view.

    Raises:
        ValidationError: On a phone number without digits or a bad track URI.
        ConfigurationError: If Airtable is not configured.
        UpstreamError: If Airtable rejects the batch.
    """
    digits = normalize_phone(submission.phone_number)
    if not digits:
        raise ValidationError("Phone number is required")

    records = build_update_records(submission)
    logger.info(
        f"Processing RSVP submission for phone: {redact_phone(digits)}, "
        f"updating {len(records)} family records"
    )

    data = await airtable_request(http, "PATCH", json={"records": records})
    updated = len(data.get("records", []))
    logger.info(f"Successfully updated {updated} records in Airtable")
    return updated
