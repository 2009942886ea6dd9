"""Guest lookup routes."""
import httpx
from fastapi import APIRouter, Depends

from app.airtable.directory import search_families, search_guests
from app.core.dependencies import get_http_client
from app.core.errors import ValidationError
from app.models import FamilyGroup, Guest

router = APIRouter(prefix="/search", tags=["guests"])


@router.get("", response_model=list[Guest])
async def find_guests(
    phone: str | None = None,
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Look up invited guests by phone number.

    Returns every guest on every family record whose primary or partner
    phone matches, flattened into one list. An unknown number yields an
    empty list, not an error.
    """
    if not phone:
        raise ValidationError("Phone number is required")
    return await search_guests(http, phone)


@router.get("/families", response_model=list[FamilyGroup])
async def find_families(
    phone: str | None = None,
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Look up invitations grouped by family record.

    Used by the RSVP wizard: each group carries the kids-invited flag and
    previously saved notes and song request along with its guests.
    """
    if not phone:
        raise ValidationError("Phone number is required")
    return await search_families(http, phone)
