"""Registration of local entity types.

This module provides:
- TypeRegistry: Mutable builder used by integrators
- Registry: Immutable registration consumed by the Synchronizer
- EntryTypeMapping: Local type and optional field mapping of a content type
- MappingCache: Session cache of derived field mappings

Usage:
    types = TypeRegistry()
    types.register_entry_type("post", Post)
    types.register_entry_type("author", Author, {"name": "fullName"})
    types.register_asset_type(Image)
    types.register_space_type(SpaceRecord)
    registry = types.freeze()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from contentmirror.client.sync.types import ConfigurationError

logger = logging.getLogger(__name__)

# Remote key path -> local attribute name
FieldMapping = Mapping[str, str]

ASSET_CACHE_KEY = "<asset>"


@dataclass(frozen=True)
class EntryTypeMapping:
    """Local type of a content type, with an optional explicit mapping."""

    entity_type: type[Any]
    field_mapping: FieldMapping | None = None


@dataclass(frozen=True)
class Registry:
    """Immutable set of type registrations.

    Attributes:
        entry_types: Content type id -> EntryTypeMapping.
        asset_type: Local type of assets.
        asset_mapping: Optional explicit mapping for assets.
        space_type: Local type of the singleton space record.
    """

    entry_types: Mapping[str, EntryTypeMapping] = field(
        default_factory=lambda: MappingProxyType({})
    )
    asset_type: type[Any] | None = None
    asset_mapping: FieldMapping | None = None
    space_type: type[Any] | None = None

    def validate(self) -> None:
        """Check that a pass can run with this registry.

        Raises:
            ConfigurationError: If the asset type, the space type or every
                entry type is missing.
        """
        if self.asset_type is None:
            raise ConfigurationError("Define a type for assets using register_asset_type()")
        if not self.entry_types:
            raise ConfigurationError("Define a type for entries using register_entry_type()")
        if self.space_type is None:
            raise ConfigurationError("Define a type for spaces using register_space_type()")

    def entry_mapping_for(self, content_type_id: str) -> EntryTypeMapping | None:
        return self.entry_types.get(content_type_id)

    @property
    def all_entry_types(self) -> list[type[Any]]:
        """Distinct local entry types, in registration order."""
        seen: list[type[Any]] = []
        for mapping in self.entry_types.values():
            if mapping.entity_type not in seen:
                seen.append(mapping.entity_type)
        return seen


class TypeRegistry:
    """Builder for a Registry."""

    def __init__(self) -> None:
        self._entry_types: dict[str, EntryTypeMapping] = {}
        self._asset_type: type[Any] | None = None
        self._asset_mapping: FieldMapping | None = None
        self._space_type: type[Any] | None = None

    def register_entry_type(
        self,
        content_type_id: str,
        entity_type: type[Any],
        field_mapping: Mapping[str, str] | None = None,
    ) -> None:
        """Map entries of a content type to a local type.

        Without field_mapping, the mapping is derived from fields and
        attributes sharing the same name. The last call for a content type
        wins.

        Args:
            content_type_id: Remote content type id.
            entity_type: Local type (must have an identifier attribute).
            field_mapping: Optional remote key path -> attribute mapping.
        """
        if content_type_id in self._entry_types:
            logger.debug(f"Replacing registration of content type {content_type_id}")
        self._entry_types[content_type_id] = EntryTypeMapping(
            entity_type, _freeze(field_mapping)
        )

    def register_asset_type(
        self,
        entity_type: type[Any],
        field_mapping: Mapping[str, str] | None = None,
    ) -> None:
        """Map assets to a local type.

        Derived asset mappings also consider the sub-fields of "file" and
        "file.details.image" (e.g. a "width" attribute gets the image width).
        """
        self._asset_type = entity_type
        self._asset_mapping = _freeze(field_mapping)

    def register_space_type(self, entity_type: type[Any]) -> None:
        """Map the space record (holding the sync token) to a local type."""
        self._space_type = entity_type

    def freeze(self) -> Registry:
        """Build the immutable Registry."""
        return Registry(
            entry_types=MappingProxyType(dict(self._entry_types)),
            asset_type=self._asset_type,
            asset_mapping=self._asset_mapping,
            space_type=self._space_type,
        )


def _freeze(mapping: Mapping[str, str] | None) -> FieldMapping | None:
    if mapping is None:
        return None
    return MappingProxyType(dict(mapping))


class MappingCache:
    """Derived field mappings, computed once per key and reused for the session."""

    def __init__(self) -> None:
        self._mappings: dict[str, FieldMapping] = {}

    def get_or_derive(
        self,
        key: str,
        explicit: FieldMapping | None,
        derive: Callable[[], Mapping[str, str]],
    ) -> FieldMapping:
        """Return the explicit mapping, or the memoized derived one.

        Args:
            key: Content type id, or ASSET_CACHE_KEY.
            explicit: Registered mapping, if any.
            derive: Computes the mapping on first use.
        """
        if explicit is not None:
            return explicit
        if key not in self._mappings:
            self._mappings[key] = MappingProxyType(dict(derive()))
            logger.debug(f"Derived mapping for {key!r}: {dict(self._mappings[key])}")
        return self._mappings[key]

    def clear(self) -> None:
        self._mappings.clear()
