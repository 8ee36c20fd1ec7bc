"""Tagged field values decoded from remote records.

This module provides:
- FieldKind: Tag describing the shape of a field value
- FieldValue: A decoded field value (kind + payload)
- decode_field / decode_fields: Build FieldValue objects from JSON
- lookup: Dotted key path lookup through nested values

Link representation on the wire:
    {"sys": {"type": "Link", "linkType": "Entry", "id": "<identifier>"}}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldKind(Enum):
    """Shape of a field value."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"  # List of scalars (e.g. multi-select symbols)
    LINK = "link"
    LINK_SEQUENCE = "link_sequence"
    NESTED = "nested"
    ENTITY = "entity"  # Already-resolved local entity


@dataclass(frozen=True)
class FieldValue:
    """A decoded field value.

    Attributes:
        kind: Shape of the value.
        value: Payload. Scalars hold the raw value, sequences a list,
            links the target identifier, link sequences a list of
            identifiers, nested values a dict of FieldValue, entities the
            local entity object.
    """

    kind: FieldKind
    value: Any

    @classmethod
    def scalar(cls, value: Any) -> FieldValue:
        return cls(FieldKind.SCALAR, value)

    @classmethod
    def link(cls, identifier: str) -> FieldValue:
        return cls(FieldKind.LINK, identifier)

    @classmethod
    def links(cls, identifiers: list[str]) -> FieldValue:
        return cls(FieldKind.LINK_SEQUENCE, list(identifiers))

    @classmethod
    def entity(cls, entity: Any) -> FieldValue:
        return cls(FieldKind.ENTITY, entity)

    def plain(self) -> Any:
        """Convert back to a plain JSON-like Python value."""
        if self.kind is FieldKind.NESTED:
            return {key: child.plain() for key, child in self.value.items()}
        if self.kind is FieldKind.LINK:
            return link_dict(self.value)
        if self.kind is FieldKind.LINK_SEQUENCE:
            return [link_dict(identifier) for identifier in self.value]
        if self.kind is FieldKind.SEQUENCE:
            return list(self.value)
        return self.value


def link_dict(identifier: str) -> dict[str, Any]:
    """Build the wire representation of a link."""
    return {"sys": {"type": "Link", "id": identifier}}


def link_identifier(raw: Any) -> str | None:
    """Extract the target identifier of a raw link object.

    Returns:
        The identifier if raw looks like {"sys": {"id": ...}}, None otherwise.
    """
    if not isinstance(raw, dict):
        return None
    sys = raw.get("sys")
    if not isinstance(sys, dict):
        return None
    identifier = sys.get("id")
    if isinstance(identifier, str):
        return identifier
    return None


def _is_link(raw: Any) -> bool:
    # A bare {"sys": {...}} object is a reference, anything else is content
    return isinstance(raw, dict) and set(raw) == {"sys"} and link_identifier(raw) is not None


def _is_entity(raw: Any) -> bool:
    if isinstance(raw, (str, bytes, int, float, bool, dict, list)) or raw is None:
        return False
    return isinstance(getattr(raw, "identifier", None), str)


def decode_field(raw: Any) -> FieldValue:
    """Decode a raw JSON field value into a FieldValue."""
    if isinstance(raw, FieldValue):
        return raw
    if _is_entity(raw):
        return FieldValue.entity(raw)
    if _is_link(raw):
        return FieldValue.link(link_identifier(raw))  # type: ignore[arg-type]
    if isinstance(raw, list):
        if raw and all(_is_link(item) for item in raw):
            return FieldValue.links([link_identifier(item) for item in raw])  # type: ignore[misc]
        return FieldValue(FieldKind.SEQUENCE, list(raw))
    if isinstance(raw, dict):
        return FieldValue(FieldKind.NESTED, decode_fields(raw))
    return FieldValue.scalar(raw)


def decode_fields(raw: dict[str, Any]) -> dict[str, FieldValue]:
    """Decode every value of a field dictionary."""
    return {name: decode_field(value) for name, value in raw.items()}


def lookup(fields: dict[str, FieldValue], key_path: str) -> FieldValue | None:
    """Look up a dotted key path (e.g. "file.details.image.width").

    Args:
        fields: Decoded field dictionary.
        key_path: Dot-delimited path.

    Returns:
        The FieldValue at that path, or None if any segment is missing.
    """
    current: FieldValue | None = None
    scope: dict[str, FieldValue] | None = fields
    for segment in key_path.split("."):
        if scope is None or segment not in scope:
            return None
        current = scope[segment]
        scope = current.value if current.kind is FieldKind.NESTED else None
    return current
