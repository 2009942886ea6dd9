"""Request and response bodies for RSVP submission and the playlist."""

import re

from pydantic import Field, model_validator

from app.models.guest import ApiModel, DietaryRestrictions, GuestType

_GUEST_ID_CHILD_SUFFIX = re.compile(r"-child-(\d+)$")


class GuestResponse(ApiModel):
    """A single guest's answer.

    ``type`` may be ``"primary"``, ``"partner"``, ``"child"`` (with
    ``childIndex``, or an id ending in ``-child-N``) or the older
    ``"child-N"`` tag.
    """
    guest_id: str = ""
    name: str = ""
    type: str
    child_index: int | None = None
    attending: bool
    dietary_restrictions: DietaryRestrictions | None = None

    @model_validator(mode="after")
    def check_guest_type(self):
        index = self.child_index
        if index is None and self.type.strip().lower() == "child":
            match = _GUEST_ID_CHILD_SUFFIX.search(self.guest_id)
            if match:
                index = int(match.group(1))
        # Raises ValueError, surfaced by pydantic as a validation error
        guest_type = GuestType.parse(self.type, index)
        self.type = guest_type.kind.value
        self.child_index = guest_type.index
        return self

    @property
    def guest_type(self) -> GuestType:
        return GuestType.parse(self.type, self.child_index)


class FamilyResponse(ApiModel):
    """All answers for one family record."""
    record_id: str = Field(min_length=1)
    guest_responses: list[GuestResponse] = []
    notes: str | None = None
    song_request: str | None = None
    spotify_track_uri: str | None = None
    kids_invited: bool = False


class RsvpSubmission(ApiModel):
    phone_number: str = Field(min_length=1)
    responses: list[FamilyResponse] = Field(min_length=1)
    notes: str = ""
    song_request: str = ""
    spotify_track_uri: str | None = None

    @property
    def track_uri(self) -> str | None:
        """Track chosen for the playlist, preferring the top-level value."""
        if self.spotify_track_uri:
            return self.spotify_track_uri
        for response in self.responses:
            if response.spotify_track_uri:
                return response.spotify_track_uri
        return None


class SubmitResult(ApiModel):
    success: bool = True
    message: str = "RSVP submitted successfully"
    updated_records: int
    playlist_queued: bool = False


class PlaylistAddRequest(ApiModel):
    track_uri: str = ""


class PlaylistAddResult(ApiModel):
    success: bool = True
    message: str = "Track successfully added to playlist"
    track_uri: str
    track_url: str
    playlist_id: str


class Track(ApiModel):
    id: str
    name: str
    artist: str
    album: str
    album_art: str | None = None
    uri: str
    preview_url: str | None = None
