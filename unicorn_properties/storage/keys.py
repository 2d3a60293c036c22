"""
Key derivation for the properties table.

Property records are sharded by ``property#<country>#<city>`` and ordered by
``<street>#<number>``. Both keys are lower-cased with spaces replaced by
hyphens; the exact output is part of the table layout and must not change.
"""

import re
from dataclasses import dataclass

from unicorn_properties.exceptions import PropertyIdValidationError

PROPERTY_ID_PATTERN = r"[a-z-]+/[a-z-]+/[a-z][a-z0-9-]*/[0-9-]+"
_PROPERTY_ID_RE = re.compile(PROPERTY_ID_PATTERN)


def _normalize(value: str) -> str:
    return value.replace(" ", "-").lower()


def partition_key(country: str, city: str) -> str:
    """
    Build the partition key for a property.

    Example:
        >>> partition_key("USA", "Anytown")
        'property#usa#anytown'
    """
    return f"property#{_normalize(f'{country}#{city}')}"


def sort_key(street: str, number: str | int) -> str:
    """
    Build the sort key for a property.

    Example:
        >>> sort_key("Main Street", "123")
        'main-street#123'
    """
    return _normalize(f"{street}#{number}")


def street_prefix(street: str) -> str:
    """Sort key prefix matching every number on a street."""
    return _normalize(street)


def is_valid_property_id(property_id: str | None) -> bool:
    """Check a property id against PROPERTY_ID_PATTERN."""
    if not property_id or not property_id.strip():
        return False
    return _PROPERTY_ID_RE.fullmatch(property_id) is not None


@dataclass(frozen=True)
class PropertyKey:
    """The four components of a property id and the table keys derived from them."""

    country: str
    city: str
    street: str
    number: str

    @property
    def pk(self) -> str:
        return partition_key(self.country, self.city)

    @property
    def sk(self) -> str:
        return sort_key(self.street, self.number)

    @property
    def property_id(self) -> str:
        return f"{self.country}/{self.city}/{self.street}/{self.number}"


def parse_property_id(property_id: str, validate: bool = False) -> PropertyKey:
    """
    Split a ``country/city/street/number`` property id.

    Args:
        property_id: Property id, e.g. ``usa/anytown/main-street/123``
        validate: If True, require a full match of PROPERTY_ID_PATTERN

    Returns:
        PropertyKey for the id

    Raises:
        PropertyIdValidationError: If validation is requested and fails, or the
            id does not have four segments
    """
    if validate and not is_valid_property_id(property_id):
        raise PropertyIdValidationError(property_id, PROPERTY_ID_PATTERN)

    parts = (property_id or "").split("/")
    if len(parts) != 4:
        raise PropertyIdValidationError(property_id, PROPERTY_ID_PATTERN)

    country, city, street, number = parts
    return PropertyKey(country=country, city=city, street=street, number=number)
