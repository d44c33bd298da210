"""Record identifiers.

Records created by this service carry canonical UUID ids. Older records were
imported with arbitrary string ids, so a path identifier is parsed once at
the boundary into one of two variants and every store query asks the
variant for its candidate keys instead of re-testing the format.
"""
from dataclasses import dataclass
from typing import Tuple, Union
from uuid import UUID, uuid4

from .errors import ValidationError


@dataclass(frozen=True)
class CanonicalId:
    """A UUID id; may also be stored verbatim in a non-normalized form."""
    value: str
    raw: str

    @property
    def candidates(self) -> Tuple[str, ...]:
        if self.raw == self.value:
            return (self.value,)
        return (self.value, self.raw)


@dataclass(frozen=True)
class LegacyStringId:
    value: str

    @property
    def candidates(self) -> Tuple[str, ...]:
        return (self.value,)


RecordRef = Union[CanonicalId, LegacyStringId]


def new_id() -> str:
    return str(uuid4())


def parse_record_ref(raw: str) -> RecordRef:
    """Clean a path identifier and classify it.

    Anything from the first ``:`` onwards is dropped (clients have been seen
    appending route fragments to ids).
    """
    cleaned = raw.split(":")[0].strip()
    try:
        return CanonicalId(value=str(UUID(cleaned)), raw=cleaned)
    except ValueError:
        return LegacyStringId(value=cleaned)


def parse_canonical_id(raw: str, *, message: str = "Invalid ID") -> str:
    """Strict variant for records that only ever had canonical ids."""
    try:
        return str(UUID(raw.strip()))
    except ValueError:
        raise ValidationError(message)


__all__ = [
    "CanonicalId",
    "LegacyStringId",
    "RecordRef",
    "new_id",
    "parse_record_ref",
    "parse_canonical_id",
]
