"""Deferred resolution of relationships between entries.

This module provides:
- LookupCache: Per-pass identifier index over entries and assets
- RelationshipResolver: Two-phase collection and resolution of links
- ResolutionReport: Counters of a resolution run

Architecture:
    A record may link to records that are not materialized yet (later in
    the same page, on a later page, or circularly). Links are therefore
    only collected while entries are materialized (phase 1) and wired once
    every record of the pass has been applied (phase 2).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from contentmirror.client.fields import FieldKind, FieldValue, link_identifier

if TYPE_CHECKING:
    from contentmirror.client.store import PersistenceStore

logger = logging.getLogger(__name__)

# Field name -> single target identifier or ordered target identifiers
PendingLinks = dict[str, str | list[str]]

# Relationship name -> (target class, holds a collection)
RelationshipTargets = Mapping[str, tuple[type[Any], bool]]


def identifier_of(target: Any) -> str | None:
    """Identifier a link target points to.

    Accepts link field values, resolved entity field values, raw link
    dicts ({"sys": {"id": ...}}) and local entities.
    """
    if isinstance(target, FieldValue):
        if target.kind is FieldKind.LINK:
            return target.value
        if target.kind is FieldKind.ENTITY:
            return identifier_of(target.value)
        if target.kind is FieldKind.NESTED:
            return identifier_of(target.plain())
        return None
    if isinstance(target, dict):
        return link_identifier(target)
    identifier = getattr(target, "identifier", None)
    return identifier if isinstance(identifier, str) else None


def _identifiers_of(targets: Iterable[Any]) -> list[str]:
    identifiers = []
    for target in targets:
        identifier = identifier_of(target)
        if identifier is not None:
            identifiers.append(identifier)
    return identifiers


def extract_links(value: FieldValue) -> str | list[str] | None:
    """Extract the target identifier(s) of a relationship field.

    Returns:
        A string for one-to-one links, a list for one-to-many links, or
        None if the value holds no link.
    """
    if value.kind is FieldKind.LINK_SEQUENCE:
        return list(value.value)
    if value.kind is FieldKind.SEQUENCE:
        return _identifiers_of(value.value)
    return identifier_of(value)


class LookupCache:
    """Identifier index over every registered entry type and the asset type.

    Built fresh for each resolution pass; never reused across passes.
    """

    def __init__(self, entries: dict[str, Any], assets: dict[str, Any]) -> None:
        self._entries = entries
        self._assets = assets

    @classmethod
    def build(
        cls,
        store: PersistenceStore,
        entry_types: Iterable[type[Any]],
        asset_type: type[Any] | None,
    ) -> LookupCache:
        entries: dict[str, Any] = {}
        for entry_type in entry_types:
            for entity in store.fetch_all(entry_type):
                entries[entity.identifier] = entity
        assets: dict[str, Any] = {}
        if asset_type is not None:
            for entity in store.fetch_all(asset_type):
                assets[entity.identifier] = entity
        return cls(entries, assets)

    def entry_for_identifier(self, identifier: str) -> Any | None:
        return self._entries.get(identifier)

    def item_for_identifier(self, identifier: str) -> Any | None:
        """Entry or asset with this identifier."""
        entity = self._entries.get(identifier)
        if entity is None:
            entity = self._assets.get(identifier)
        return entity

    def __len__(self) -> int:
        return len(self._entries) + len(self._assets)


@dataclass
class ResolutionReport:
    """Counters of a resolution run.

    Attributes:
        resolved: Links wired onto their source entity.
        unresolved: Links dropped because the target is missing.
        missing_sources: Pending sources no longer in the store.
    """

    resolved: int = 0
    unresolved: int = 0
    missing_sources: int = 0


class RelationshipResolver:
    """Collects pending links during a pass and wires them at the end."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingLinks] = {}

    @property
    def pending(self) -> Mapping[str, PendingLinks]:
        return self._pending

    def collect(
        self,
        identifier: str,
        fields: Mapping[str, FieldValue],
        relationship_names: Iterable[str],
    ) -> PendingLinks:
        """Phase 1: record the link targets of an entry.

        Args:
            identifier: Source entry identifier.
            fields: Decoded fields of the entry.
            relationship_names: Relationship-valued attributes of its type.

        Returns:
            The pending links stored for the entry (replacing earlier ones).
        """
        links: PendingLinks = {}
        for name in relationship_names:
            value = fields.get(name)
            if value is None:
                continue
            targets = extract_links(value)
            if targets is not None:
                links[name] = targets
        self._pending[identifier] = links
        return links

    def resolve(
        self,
        cache: LookupCache,
        targets_for: Callable[[type[Any]], RelationshipTargets] | None = None,
    ) -> ResolutionReport:
        """Phase 2: wire every pending link using the lookup cache.

        Missing targets are dropped without error: single links are set to
        None and collections leave the target out.

        Args:
            cache: Identifier index built for this pass.
            targets_for: Optional lookup of the declared relationships of a
                source type. When given, targets of another class are
                dropped like missing ones, and the declared cardinality
                decides what is assigned: a collection always gets a list,
                a single reference gets the first usable target.
        """
        report = ResolutionReport()
        for source_id, links in self._pending.items():
            entity = cache.entry_for_identifier(source_id)
            if entity is None:
                report.missing_sources += 1
                continue

            declared = targets_for(type(entity)) if targets_for is not None else {}
            for field_name, targets in links.items():
                target_ids = [targets] if isinstance(targets, str) else targets
                if field_name in declared:
                    target_type, many = declared[field_name]
                else:
                    target_type, many = None, not isinstance(targets, str)

                resolved = []
                for target_id in target_ids:
                    target = cache.item_for_identifier(target_id)
                    if target is None:
                        logger.debug(f"Dropping link {source_id}.{field_name} -> {target_id}")
                    elif target_type is not None and not isinstance(target, target_type):
                        logger.debug(
                            f"Dropping link {source_id}.{field_name} -> {target_id}: "
                            f"{type(target).__name__} is not a {target_type.__name__}"
                        )
                    else:
                        resolved.append(target)
                        continue
                    report.unresolved += 1

                if many:
                    report.resolved += len(resolved)
                    setattr(entity, field_name, resolved)
                    continue

                if len(resolved) > 1:
                    logger.debug(
                        f"Keeping first of {len(resolved)} links for {source_id}.{field_name}"
                    )
                    report.unresolved += len(resolved) - 1
                target = resolved[0] if resolved else None
                if target is not None:
                    report.resolved += 1
                setattr(entity, field_name, target)
        return report

    def clear(self) -> None:
        """Discard pending links."""
        self._pending.clear()
