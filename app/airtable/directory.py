"""Guest lookup by phone number against the Airtable family table."""
import logging
import re

import httpx

from app.airtable.client import airtable_request
from app.core.errors import ValidationError
from app.models.guest import (
    MAX_CHILDREN,
    DietaryRestrictions,
    FamilyGroup,
    Guest,
    GuestKind,
    GuestType,
)

logger = logging.getLogger(__name__)

PHONE_FIELDS = ("Phone Number", "Partner Phone Number")

# Formatting characters removed from stored phone numbers before comparing
STORED_PHONE_NOISE = ("+", " ", "-", "(", ")", ".")

# Stored answer per guest slot; children share one family-level answer
ATTENDANCE_FIELDS = {
    "primary": "Person1-RSVP",
    "partner": "Person2-RSVP",
    "child": "Children-RSVP",
}

SLOT_PREFIXES = {
    GuestKind.PRIMARY: "Person1",
    GuestKind.PARTNER: "Person2",
    GuestKind.CHILD: "Children",
}

# DietaryRestrictions attribute -> column suffix
DIETARY_SUFFIXES = {
    "gluten_free": "GlutenFree",
    "vegetarian": "Vegetarian",
    "pescatarian": "Pescatarian",
    "soy_allergy": "SoyAllergy",
    "sesame_allergy": "SesameAllergy",
    "egg_allergy": "EggAllergy",
    "nut_allergy": "NutAllergy",
}

KIDS_INVITED_FIELD = "Kids-Invited"
NOTES_FIELD = "Additional_Notes"
SONG_REQUEST_FIELD = "Song_Request"


def normalize_phone(raw: str | None) -> str:
    """Strip every non-digit character from a phone number."""
    return re.sub(r"\D", "", raw or "")


def redact_phone(digits: str) -> str:
    """Log-safe form of a phone number, e.g. ``555***4567``."""
    if len(digits) < 7:
        return "***"
    return f"{digits[:3]}***{digits[-4:]}"


def phone_candidates(raw: str | None) -> list[str]:
    """
    Digit strings that identify the same North American number.

    ``(555) 123-4567`` and ``+1 555 123 4567`` both yield
    ``["5551234567", "15551234567"]`` (in input order), so the lookup
    matches however the number was typed into the guest table.
    """
    digits = normalize_phone(raw)
    if not digits:
        return []

    candidates = [digits]
    if len(digits) == 10:
        candidates.append(f"1{digits}")
    elif len(digits) == 11 and digits.startswith("1"):
        candidates.append(digits[1:])
    return candidates


def _stripped_field(field: str) -> str:
    expr = f"{{{field}}}"
    for char in STORED_PHONE_NOISE:
        expr = f'SUBSTITUTE({expr}, "{char}", "")'
    return expr


def build_phone_filter(candidates: list[str]) -> str:
    """
    Build an Airtable ``filterByFormula`` matching any candidate number.

    Both phone columns are compared after removing formatting characters
    server-side. Candidates must already be digit-only.
    """
    comparisons = [
        f'{_stripped_field(field)} = "{candidate}"'
        for field in PHONE_FIELDS
        for candidate in candidates
    ]
    return f"OR({', '.join(comparisons)})"


def parse_answer(value) -> bool | None:
    """Convert a stored ``"Yes"``/``"No"`` (or checkbox) value to a bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        answer = value.strip().lower()
        if answer == "yes":
            return True
        if answer == "no":
            return False
    return None


def _is_truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


def _text(fields: dict, name: str) -> str:
    value = fields.get(name)
    return value.strip() if isinstance(value, str) else ""


def parse_dietary(fields: dict, kind: GuestKind) -> DietaryRestrictions | None:
    """Stored dietary flags for a slot, or ``None`` if none were ever written."""
    prefix = SLOT_PREFIXES[kind]
    stored = {
        attr: parse_answer(fields.get(f"{prefix}-{suffix}"))
        for attr, suffix in DIETARY_SUFFIXES.items()
    }
    if all(value is None for value in stored.values()):
        return None
    return DietaryRestrictions(**{attr: bool(value) for attr, value in stored.items()})


def guests_from_record(record: dict) -> list[Guest]:
    """
    Flatten one family record into individually answerable guests.

    Yields a primary guest when ``First Name`` is set, a partner when
    ``Partner First Name`` is set, and one child for each non-blank
    ``Child 1`` .. ``Child 6`` column. Children share the family's
    ``Children-`` answers.
    """
    record_id = record["id"]
    fields = record.get("fields", {})
    guests = []

    first_name = _text(fields, "First Name")
    if first_name:
        guests.append(
            Guest.for_slot(
                record_id,
                GuestType.primary(),
                f"{first_name} {_text(fields, 'Last Name')}".strip(),
                parse_answer(fields.get(ATTENDANCE_FIELDS["primary"])),
                parse_dietary(fields, GuestKind.PRIMARY),
            )
        )

    partner_first_name = _text(fields, "Partner First Name")
    if partner_first_name:
        guests.append(
            Guest.for_slot(
                record_id,
                GuestType.partner(),
                f"{partner_first_name} {_text(fields, 'Partner Last Name')}".strip(),
                parse_answer(fields.get(ATTENDANCE_FIELDS["partner"])),
                parse_dietary(fields, GuestKind.PARTNER),
            )
        )

    children_answer = parse_answer(fields.get(ATTENDANCE_FIELDS["child"]))
    children_dietary = parse_dietary(fields, GuestKind.CHILD)
    for index in range(1, MAX_CHILDREN + 1):
        child_name = _text(fields, f"Child {index}")
        if child_name:
            guests.append(
                Guest.for_slot(
                    record_id,
                    GuestType.child(index),
                    child_name,
                    children_answer,
                    children_dietary,
                )
            )

    return guests


def family_from_record(record: dict) -> FamilyGroup:
    """Build the family view used by the RSVP wizard."""
    fields = record.get("fields", {})
    return FamilyGroup(
        record_id=record["id"],
        kids_invited=_is_truthy(fields.get(KIDS_INVITED_FIELD)),
        notes=fields.get(NOTES_FIELD) or "",
        song_request=fields.get(SONG_REQUEST_FIELD) or "",
        guests=guests_from_record(record),
    )


async def fetch_family_records(http: httpx.AsyncClient, phone: str) -> list[dict]:
    """
    Fetch every family record whose primary or partner phone matches.

    Follows Airtable's ``offset`` pagination. Several households may share
    a number; all of them are returned unmerged.

    Raises:
        ValidationError: If the phone number contains no digits.
        ConfigurationError: If Airtable is not configured.
        UpstreamError: If Airtable cannot be reached or rejects the read.
    """
    candidates = phone_candidates(phone)
    if not candidates:
        raise ValidationError("Phone number is required")

    logger.info(f"Searching for phone: {redact_phone(candidates[0])}")

    params = {"filterByFormula": build_phone_filter(candidates)}
    records = []
    while True:
        data = await airtable_request(http, "GET", params=params)
        records.extend(data.get("records", []))

        offset = data.get("offset")
        if not offset:
            break
        params = {**params, "offset": offset}

    logger.info(f"Found {len(records)} matching records")
    return records


async def search_families(http: httpx.AsyncClient, phone: str) -> list[FamilyGroup]:
    """Look up family groups for a phone number."""
    records = await fetch_family_records(http, phone)
    return [family_from_record(record) for record in records]


async def search_guests(http: httpx.AsyncClient, phone: str) -> list[Guest]:
    """Look up every guest reachable through a phone number."""
    records = await fetch_family_records(http, phone)
    guests = []
    for record in records:
        guests.extend(guests_from_record(record))
    return guests
