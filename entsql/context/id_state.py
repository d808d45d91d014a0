"""
Identifier state of a single entity instance.

Each entity moves through an explicit state instead of packing several
meanings into the numeric value of its id field:

- UNASSIGNED: not created and not referenced yet
- UNKNOWN_REFERENCE: the row exists in the database, its key is unknown
- KNOWN_REFERENCE: the row exists in the database with a known key
- ASSIGNED: the row is created by us, the value comes from the id generator

The numeric encoding used by older scripts and callers (``-1`` for an
unknown reference, ``-2 - id`` for a known reference) is still available
through ``IdState.encoded`` and ``IdState.from_stored_value``.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel

# Marker for an entity that needs to be referenced by its unique properties
UNKNOWN_ID_MARKER = -1


def encode_reference_id(entity_id: int) -> int:
    """Encode the id of an existing row, never collides with UNKNOWN_ID_MARKER."""
    if entity_id < 0:
        raise ValueError(f"Only non-negative ids can be referenced: {entity_id}")
    return -2 - entity_id


def decode_reference_id(stored: int) -> int:
    """Inverse of encode_reference_id."""
    if stored > UNKNOWN_ID_MARKER - 1:
        raise ValueError(f"Not an encoded reference id: {stored}")
    return -2 - stored


class IdStatus(str, Enum):
    UNASSIGNED = "unassigned"
    UNKNOWN_REFERENCE = "unknown_reference"
    KNOWN_REFERENCE = "known_reference"
    ASSIGNED = "assigned"


class IdState(BaseModel):
    """Immutable identifier state, value is set for KNOWN_REFERENCE and ASSIGNED."""
    status: IdStatus
    value: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def unassigned(cls) -> "IdState":
        return cls(status=IdStatus.UNASSIGNED)

    @classmethod
    def unknown_reference(cls) -> "IdState":
        return cls(status=IdStatus.UNKNOWN_REFERENCE)

    @classmethod
    def known_reference(cls, entity_id: int) -> "IdState":
        if entity_id < 0:
            raise ValueError(f"Only non-negative ids can be referenced: {entity_id}")
        return cls(status=IdStatus.KNOWN_REFERENCE, value=entity_id)

    @classmethod
    def assigned(cls, value: int) -> "IdState":
        return cls(status=IdStatus.ASSIGNED, value=value)

    @classmethod
    def from_stored_value(cls, stored: Optional[int], primitive: bool = False) -> "IdState":
        """
        Interpret the value found in the id field of an entity we have not seen yet.

        A non-negative value was set by the caller, so it denotes an existing row.
        """
        if stored is None or (primitive and stored == 0):
            return cls.unassigned()
        if stored == UNKNOWN_ID_MARKER:
            return cls.unknown_reference()
        if stored < 0:
            return cls.known_reference(decode_reference_id(stored))
        return cls.known_reference(stored)

    @property
    def encoded(self) -> Optional[int]:
        """The legacy numeric encoding of this state."""
        if self.status is IdStatus.UNASSIGNED:
            return None
        if self.status is IdStatus.UNKNOWN_REFERENCE:
            return UNKNOWN_ID_MARKER
        if self.status is IdStatus.KNOWN_REFERENCE:
            return encode_reference_id(self.value)
        return self.value

    @property
    def is_new(self) -> bool:
        return self.status is IdStatus.UNASSIGNED

    @property
    def is_reference(self) -> bool:
        return self.status in (IdStatus.UNKNOWN_REFERENCE, IdStatus.KNOWN_REFERENCE)
