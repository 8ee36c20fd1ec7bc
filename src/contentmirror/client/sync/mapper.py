"""Field mapping from remote records onto local entities.

This module provides:
- derive_mapping / derive_asset_mapping: Automatic mapping derivation
- encode_sequence / decode_sequence: Blob encoding of array fields
- build_setters: Per-type setter tables
- FieldMapper: Applies a mapping to an entity

A mapping goes from remote key path (dot-delimited, e.g. "file.url") to
local attribute name.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from contentmirror.client.fields import FieldKind, FieldValue, lookup
from contentmirror.client.sync.types import ConfigurationError

logger = logging.getLogger(__name__)

# Nested asset sub-objects considered by derived asset mappings
ASSET_NESTED_PATHS = ("file", "file.details.image")

URL_ATTRIBUTE = "url"

Setter = Callable[[Any, Any], None]


def derive_mapping(
    field_names: Iterable[str],
    attribute_names: Iterable[str],
    prefix: str = "",
) -> dict[str, str]:
    """Map remote fields onto attributes sharing the same name.

    Args:
        field_names: Remote field names.
        attribute_names: Attribute names of the local type.
        prefix: Prepended to remote keys (e.g. "file.").

    Returns:
        Remote key path -> attribute name.
    """
    fields = set(field_names)
    return {f"{prefix}{name}": name for name in sorted(set(attribute_names)) if name in fields}


def derive_asset_mapping(
    fields: Mapping[str, FieldValue],
    attribute_names: Iterable[str],
) -> dict[str, str]:
    """Derive an asset mapping, including "file" and "file.details.image".

    A name found at several levels maps to the deepest one, so an asset's
    "file.details.image.width" wins over a top-level "width" field.
    """
    attributes = set(attribute_names)
    mapping = derive_mapping(fields.keys(), attributes)
    for path in ASSET_NESTED_PATHS:
        nested = lookup(dict(fields), path)
        if nested is None or nested.kind is not FieldKind.NESTED:
            continue
        for key, attribute in derive_mapping(nested.value.keys(), attributes, prefix=f"{path}.").items():
            # Drop the shallower key mapped to the same attribute
            for shallower in [k for k, v in mapping.items() if v == attribute]:
                del mapping[shallower]
            mapping[key] = attribute
    return mapping


def encode_sequence(values: list[Any]) -> bytes:
    """Encode an array field value into an opaque blob."""
    return json.dumps(values, separators=(",", ":")).encode("utf-8")


def decode_sequence(blob: bytes | None) -> list[Any]:
    """Decode a blob written by encode_sequence."""
    if not blob:
        return []
    return list(json.loads(blob.decode("utf-8")))


def normalize_url(value: Any) -> Any:
    """Turn protocol-relative URLs ("//host/path") into https URLs."""
    if isinstance(value, str) and value.startswith("//"):
        return f"https:{value}"
    return value


def _make_setter(attribute: str) -> Setter:
    def setter(entity: Any, value: Any) -> None:
        setattr(entity, attribute, value)

    setter.__name__ = f"set_{attribute}"
    return setter


def build_setters(attribute_names: Iterable[str]) -> dict[str, Setter]:
    """Build the setter table of a local type."""
    return {name: _make_setter(name) for name in attribute_names}


class FieldMapper:
    """Writes mapped remote field values onto local entities.

    Setter tables are registered per type once (see prepare()); applying a
    mapping is then a direct call per attribute.
    """

    def __init__(self) -> None:
        self._setters: dict[type[Any], dict[str, Setter]] = {}

    def prepare(self, entity_type: type[Any], attribute_names: Iterable[str]) -> None:
        """Register the setter table of a local type."""
        self._setters[entity_type] = build_setters(attribute_names)

    def is_prepared(self, entity_type: type[Any]) -> bool:
        return entity_type in self._setters

    def convert(self, attribute: str, value: FieldValue | None) -> Any:
        """Convert a field value into what gets assigned to an attribute."""
        if value is None:
            return None
        if value.kind is FieldKind.SEQUENCE:
            return encode_sequence(value.value)
        plain = value.plain()
        if attribute == URL_ATTRIBUTE:
            return normalize_url(plain)
        return plain

    def apply(
        self,
        fields: Mapping[str, FieldValue],
        entity: Any,
        mapping: Mapping[str, str],
    ) -> None:
        """Assign every mapped field onto an entity.

        Args:
            fields: Decoded remote fields.
            entity: Local entity.
            mapping: Remote key path -> attribute name.

        Raises:
            ConfigurationError: If the entity type was not prepared or the
                mapping targets an unknown attribute.
        """
        entity_type = type(entity)
        setters = self._setters.get(entity_type)
        if setters is None:
            raise ConfigurationError(f"No setter table for {entity_type.__name__}")

        for key_path, attribute in mapping.items():
            setter = setters.get(attribute)
            if setter is None:
                raise ConfigurationError(
                    f"{entity_type.__name__} has no attribute {attribute!r} (mapped from {key_path!r})"
                )
            setter(entity, self.convert(attribute, lookup(dict(fields), key_path)))
