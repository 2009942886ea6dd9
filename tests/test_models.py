"""Tests for guest views and request models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.models import Guest, GuestKind, GuestType
from app.models.rsvp import GuestResponse, RsvpSubmission


class TestGuestType:
    def test_constructors(self):
        assert GuestType.primary().slug == "primary"
        assert GuestType.partner().slug == "partner"
        assert GuestType.child(3).slug == "child-3"
        assert GuestType.child(3).is_child

    @pytest.mark.parametrize("index", [0, 7, None])
    def test_child_index_range(self, index):
        with pytest.raises(ValueError):
            GuestType(GuestKind.CHILD, index)

    def test_adult_takes_no_index(self):
        with pytest.raises(ValueError):
            GuestType(GuestKind.PARTNER, 1)

    def test_parse(self):
        assert GuestType.parse("Primary") == GuestType.primary()
        assert GuestType.parse("child", 2) == GuestType.child(2)
        assert GuestType.parse("child-6") == GuestType.child(6)

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            GuestType.parse("plus-one")


class TestGuest:
    def test_id_derived_from_record_and_slot(self):
        guest = Guest.for_slot("recA", GuestType.child(2), "Mia")
        assert guest.id == "recA-child-2"
        assert guest.type is GuestKind.CHILD
        assert guest.child_index == 2
        assert guest.attending is None
        assert guest.guest_type == GuestType.child(2)

    def test_wire_format(self):
        data = Guest.for_slot("recA", GuestType.primary(), "Alex", True).model_dump(
            mode="json", by_alias=True
        )
        assert data == {
            "id": "recA-primary",
            "name": "Alex",
            "type": "primary",
            "childIndex": None,
            "recordId": "recA",
            "attending": True,
        }


class TestGuestResponse:
    def test_legacy_child_tag(self):
        response = GuestResponse.model_validate({"type": "child-4", "attending": True})
        assert response.type == "child"
        assert response.child_index == 4

    def test_child_index_from_guest_id(self):
        response = GuestResponse.model_validate(
            {"guestId": "recA-child-2", "type": "child", "attending": False}
        )
        assert response.guest_type == GuestType.child(2)

    def test_child_without_index_rejected(self):
        with pytest.raises(PydanticValidationError):
            GuestResponse.model_validate({"type": "child", "attending": True})

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            GuestResponse.model_validate({"type": "dog", "attending": True})

    def test_attending_required(self):
        with pytest.raises(PydanticValidationError):
            GuestResponse.model_validate({"type": "primary"})


class TestRsvpSubmission:
    def test_requires_responses(self):
        with pytest.raises(PydanticValidationError):
            RsvpSubmission.model_validate({"phoneNumber": "5551234567", "responses": []})

    def test_track_uri_prefers_top_level(self):
        submission = RsvpSubmission.model_validate({
            "phoneNumber": "5551234567",
            "spotifyTrackUri": "spotify:track:top",
            "responses": [{"recordId": "recA", "spotifyTrackUri": "spotify:track:family"}],
        })
        assert submission.track_uri == "spotify:track:top"

    def test_track_uri_from_family(self):
        submission = RsvpSubmission.model_validate({
            "phoneNumber": "5551234567",
            "responses": [{"recordId": "recA"}, {"recordId": "recB", "spotifyTrackUri": "spotify:track:b"}],
        })
        assert submission.track_uri == "spotify:track:b"
