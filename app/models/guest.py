"""Guest and family views derived from Airtable family records.

These models are never persisted locally. They are rebuilt from the
current state of the guest directory on every lookup and discarded once
the response is sent.
"""

import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

MAX_CHILDREN = 6

_LEGACY_CHILD_TAG = re.compile(r"^child-(\d+)$")


class ApiModel(BaseModel):
    """Base model that speaks camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuestKind(str, Enum):
    """Slot a guest occupies on the family record."""
    PRIMARY = "primary"
    PARTNER = "partner"
    CHILD = "child"


@dataclass(frozen=True)
class GuestType:
    """Tagged guest slot: ``Primary``, ``Partner`` or ``Child(index)``.

    Children carry their 1-based column index on the family record
    (``Child 1`` .. ``Child 6``); the other kinds never have an index.

    Raises:
        ValueError: If the index does not fit the kind.
    """
    kind: GuestKind
    index: int | None = None

    def __post_init__(self):
        if self.kind is GuestKind.CHILD:
            if self.index is None or not 1 <= self.index <= MAX_CHILDREN:
                raise ValueError(f"child index must be between 1 and {MAX_CHILDREN}")
        elif self.index is not None:
            raise ValueError(f"{self.kind.value} guests do not take an index")

    @classmethod
    def primary(cls) -> "GuestType":
        return cls(GuestKind.PRIMARY)

    @classmethod
    def partner(cls) -> "GuestType":
        return cls(GuestKind.PARTNER)

    @classmethod
    def child(cls, index: int) -> "GuestType":
        return cls(GuestKind.CHILD, index)

    @classmethod
    def parse(cls, tag: str, index: int | None = None) -> "GuestType":
        """Build a guest type from a wire tag.

        Accepts ``"primary"``, ``"partner"``, ``"child"`` with an explicit
        index, and the older ``"child-3"`` form.
        """
        tag = tag.strip().lower()
        legacy = _LEGACY_CHILD_TAG.match(tag)
        if legacy:
            return cls.child(int(legacy.group(1)))
        try:
            kind = GuestKind(tag)
        except ValueError:
            raise ValueError(f"unknown guest type: {tag!r}") from None
        return cls(kind, index)

    @property
    def is_child(self) -> bool:
        return self.kind is GuestKind.CHILD

    @property
    def slug(self) -> str:
        """Stable suffix used in guest ids, e.g. ``child-3``."""
        if self.is_child:
            return f"{self.kind.value}-{self.index}"
        return self.kind.value


class DietaryRestrictions(ApiModel):
    gluten_free: bool = False
    vegetarian: bool = False
    pescatarian: bool = False
    soy_allergy: bool = False
    sesame_allergy: bool = False
    egg_allergy: bool = False
    nut_allergy: bool = False


class Guest(ApiModel):
    """One individually answerable invitee.

    Attributes:
        id: ``{record_id}-{slug}``, unique within a search result.
        name: Display name.
        type: Slot kind on the family record.
        child_index: Column index for children, ``None`` otherwise.
        record_id: Airtable id of the family record.
        attending: Previously stored answer, ``None`` until answered.
        dietary_restrictions: Previously stored flags, ``None`` if the
            record holds none for this slot.
    """
    id: str
    name: str
    type: GuestKind
    child_index: int | None = None
    record_id: str
    attending: bool | None = None
    dietary_restrictions: DietaryRestrictions | None = None

    @classmethod
    def for_slot(
        cls,
        record_id: str,
        guest_type: GuestType,
        name: str,
        attending: bool | None = None,
        dietary_restrictions: DietaryRestrictions | None = None,
    ) -> "Guest":
        return cls(
            id=f"{record_id}-{guest_type.slug}",
            name=name,
            type=guest_type.kind,
            child_index=guest_type.index,
            record_id=record_id,
            attending=attending,
            dietary_restrictions=dietary_restrictions,
        )

    @property
    def guest_type(self) -> GuestType:
        return GuestType(self.type, self.child_index)


class FamilyGroup(ApiModel):
    """Guests sharing one family record, plus the family-level answers."""
    record_id: str
    kids_invited: bool = False
    notes: str = ""
    song_request: str = ""
    guests: list[Guest] = []
