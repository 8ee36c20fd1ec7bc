"""Idempotent create-or-update of local entities."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from contentmirror.client.store import IDENTITY_ATTRIBUTE
from contentmirror.client.sync.types import ConfigurationError

if TYPE_CHECKING:
    from contentmirror.client.fields import FieldValue
    from contentmirror.client.store import PersistenceStore
    from contentmirror.client.sync.mapper import FieldMapper

logger = logging.getLogger(__name__)


class EntityMaterializer:
    """Creates or updates the single local entity of a (type, identifier)."""

    def __init__(self, store: PersistenceStore, mapper: FieldMapper) -> None:
        self._store = store
        self._mapper = mapper

    def materialize(
        self,
        identifier: str,
        fields: Mapping[str, FieldValue],
        entity_type: type[Any],
        mapping: Mapping[str, str],
    ) -> tuple[Any, bool]:
        """Write a remote record onto its local entity.

        The entity is fetched by identifier first and only created when
        missing, so repeated calls never produce duplicates.

        Args:
            identifier: Remote identifier (natural key).
            fields: Decoded remote fields.
            entity_type: Local type.
            mapping: Remote key path -> attribute name.

        Returns:
            Tuple of (entity, created).

        Raises:
            ConfigurationError: If the mapping is empty.
            StoreError: If the store fails.
        """
        if not mapping:
            raise ConfigurationError(f"Empty mapping for {entity_type.__name__}")

        existing = self._store.fetch_all(entity_type, identifier)
        if existing:
            entity = existing[0]
            created = False
        else:
            entity = self._store.create(entity_type)
            setattr(entity, IDENTITY_ATTRIBUTE, identifier)
            created = True

        self._mapper.apply(fields, entity, mapping)
        logger.debug(
            f"{'Created' if created else 'Updated'} {entity_type.__name__} {identifier}"
        )
        return entity, created
