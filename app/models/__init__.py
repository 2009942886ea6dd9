from app.models.guest import FamilyGroup, Guest, GuestKind, GuestType
from app.models.oauth import OAuthToken
from app.models.outbox import PlaylistOutboxEntry

__all__ = [
    "FamilyGroup",
    "Guest",
    "GuestKind",
    "GuestType",
    "OAuthToken",
    "PlaylistOutboxEntry",
]
