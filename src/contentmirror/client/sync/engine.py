"""Sync engine mirroring a remote space into the local store.

This module provides:
- Synchronizer: Runs synchronization passes

Pass lifecycle:
    IDLE -> FETCHING_DELTA -> APPLYING_CHANGES (repeated per page)
         -> RESOLVING_RELATIONSHIPS -> COMMITTING -> IDLE

    Without a stored token the pass is an initial sync (every record is a
    create, deletions are ignored); otherwise it is a delta pass. Pages are
    fetched until the source reports the last one, relationships are then
    resolved once, the new token is written to the space record and the
    store is committed. Any failure rolls the store back and leaves the
    token untouched, so the pass can simply be retried.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from contentmirror.client.store import StoreError
from contentmirror.client.sync.mapper import (
    FieldMapper,
    derive_asset_mapping,
    derive_mapping,
)
from contentmirror.client.sync.materializer import EntityMaterializer
from contentmirror.client.sync.registry import (
    ASSET_CACHE_KEY,
    MappingCache,
    Registry,
    TypeRegistry,
)
from contentmirror.client.sync.relationships import (
    LookupCache,
    RelationshipResolver,
    RelationshipTargets,
)
from contentmirror.client.sync.types import (
    CompletionCallback,
    FetchError,
    RecordKind,
    StateCallback,
    SyncCancelledError,
    SyncInProgressError,
    SyncResult,
)
from contentmirror.core.types import PassType, SyncState

if TYPE_CHECKING:
    from contentmirror.client.store import PersistenceStore
    from contentmirror.client.sync.types import Deletion, DeltaPage, Record

logger = logging.getLogger(__name__)

SYNC_TOKEN_ATTRIBUTE = "syncToken"


class DeltaSource(Protocol):
    """What the Synchronizer needs from the remote source."""

    def fetch_initial(self, matching: Mapping[str, Any] | None = None) -> DeltaPage: ...

    def fetch_delta(self, token: str) -> DeltaPage: ...


class Synchronizer:
    """Synchronizes a remote space into a PersistenceStore.

    Only one pass may run at a time; sync() raises SyncInProgressError
    when called while another pass is in flight.
    """

    def __init__(
        self,
        client: DeltaSource,
        store: PersistenceStore,
        registry: Registry | TypeRegistry,
        matching: Mapping[str, Any] | None = None,
        on_state_change: StateCallback | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: Remote delta source (e.g. DeliveryClient).
            store: Local store.
            registry: Type registrations.
            matching: Optional filter for initial syncs, e.g.
                {"type": "Entry", "content_type": "post"}.
            on_state_change: Optional callback on every state transition.
        """
        if isinstance(registry, TypeRegistry):
            registry = registry.freeze()
        self._client = client
        self._store = store
        self._registry = registry
        self._matching = dict(matching or {})
        self._on_state_change = on_state_change

        self._mapper = FieldMapper()
        self._mappings = MappingCache()
        self._materializer = EntityMaterializer(store, self._mapper)
        self._resolver = RelationshipResolver()
        self._relationship_names: dict[type[Any], set[str]] = {}
        self._relationship_targets: dict[type[Any], RelationshipTargets] = {}

        self._pass_lock = threading.Lock()
        self._cancelled = threading.Event()
        self._state = SyncState.IDLE
        self._last_result: SyncResult | None = None

        for entity_type in self._mapped_types():
            self._mapper.prepare(entity_type, store.properties_for(entity_type))

    # === Public API ===

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def last_result(self) -> SyncResult | None:
        """Counters of the last pass (None before the first one)."""
        return self._last_result

    @property
    def is_syncing(self) -> bool:
        return self._pass_lock.locked()

    @property
    def sync_token(self) -> str | None:
        """The persisted continuation token, None before the first sync."""
        self._registry.validate()
        spaces = self._store.fetch_all(self._registry.space_type)
        if not spaces:
            return None
        return getattr(spaces[0], SYNC_TOKEN_ATTRIBUTE)

    def cancel(self) -> None:
        """Cancel the running pass at the next page boundary.

        The request stays pending until a pass ends, so a cancel issued
        right before sync() cancels that pass.
        """
        self._cancelled.set()

    def sync(self, on_complete: CompletionCallback | None = None) -> bool:
        """Run one synchronization pass.

        Args:
            on_complete: Optional callback receiving the success flag.

        Returns:
            True if the pass was committed, False if it failed.

        Raises:
            ConfigurationError: If a type registration is missing or a
                mapping is unusable.
            SyncInProgressError: If another pass is running.
        """
        self._registry.validate()
        for entity_type in self._mapped_types():
            if not self._mapper.is_prepared(entity_type):
                self._mapper.prepare(entity_type, self._store.properties_for(entity_type))

        if not self._pass_lock.acquire(blocking=False):
            raise SyncInProgressError("A synchronization pass is already running")
        try:
            success = self._run_pass()
        finally:
            self._pass_lock.release()

        if on_complete is not None:
            on_complete(success)
        return success

    # === Pass lifecycle ===

    def _run_pass(self) -> bool:
        self._resolver.clear()
        result: SyncResult | None = None

        try:
            space = self._fetch_space()
            token = getattr(space, SYNC_TOKEN_ATTRIBUTE)
            result = SyncResult(pass_type=PassType.INITIAL if token is None else PassType.DELTA)
            self._last_result = result
            logger.info(f"Starting {result.pass_type.value} sync")

            new_token = self._fetch_and_apply(token, result)

            self._set_state(SyncState.RESOLVING_RELATIONSHIPS)
            cache = LookupCache.build(
                self._store, self._registry.all_entry_types, self._registry.asset_type
            )
            report = self._resolver.resolve(cache, self._relationship_targets_for)
            result.unresolved_links = report.unresolved
            if report.unresolved:
                logger.info(f"{report.unresolved} link(s) point to missing records")

            self._check_cancelled()
            self._set_state(SyncState.COMMITTING)
            setattr(space, SYNC_TOKEN_ATTRIBUTE, new_token)
            self._store.save()
        except (FetchError, StoreError, SyncCancelledError) as e:
            self._store.rollback()
            if result is None:
                result = SyncResult(pass_type=PassType.DELTA)
                self._last_result = result
            result.error = str(e)
            self._set_state(SyncState.FAILED)
            logger.error(f"Sync failed: {e}")
            return False
        except Exception:
            self._store.rollback()
            self._set_state(SyncState.FAILED)
            raise
        finally:
            self._resolver.clear()
            self._cancelled.clear()

        result.success = True
        self._set_state(SyncState.IDLE)
        logger.info(
            f"Sync complete: {result.created} created, {result.updated} updated, "
            f"{result.deleted} deleted, {len(result.skipped)} skipped "
            f"({result.pages} page(s))"
        )
        return True

    def _fetch_and_apply(self, token: str | None, result: SyncResult) -> str:
        """Fetch every page of the pass and apply it.

        Returns:
            The new continuation token.
        """
        next_token = token
        while True:
            self._check_cancelled()
            self._set_state(SyncState.FETCHING_DELTA)
            if result.pages == 0 and result.pass_type is PassType.INITIAL:
                page = self._client.fetch_initial(self._matching)
            else:
                page = self._client.fetch_delta(next_token)  # type: ignore[arg-type]
            result.pages += 1

            self._set_state(SyncState.APPLYING_CHANGES)
            self._apply_page(page, result)

            next_token = page.next_token
            if next_token is None:
                raise FetchError("Page carries no continuation token")
            if not page.has_more:
                return next_token

    def _apply_page(self, page: DeltaPage, result: SyncResult) -> None:
        logger.debug(
            f"Applying page {result.pages}: {len(page.records)} record(s), "
            f"{len(page.deletions)} deletion(s)"
        )
        for record in page.assets:
            self._apply_asset(record, result)
        for record in page.entries:
            self._apply_entry(record, result)

        if result.pass_type is PassType.DELTA:
            for deletion in page.deletions:
                self._apply_deletion(deletion, result)

    # === Record handling ===

    def _apply_asset(self, record: Record, result: SyncResult) -> None:
        asset_type = self._registry.asset_type
        mapping = self._mappings.get_or_derive(
            ASSET_CACHE_KEY,
            self._registry.asset_mapping,
            lambda: derive_asset_mapping(record.fields, self._store.properties_for(asset_type)),
        )
        self._materialize(record, asset_type, mapping, result)

    def _apply_entry(self, record: Record, result: SyncResult) -> None:
        content_type_id = record.content_type_id
        entry_type = (
            self._registry.entry_mapping_for(content_type_id) if content_type_id else None
        )
        if entry_type is None:
            logger.debug(
                f"Ignoring entry {record.identifier} of unregistered content type {content_type_id}"
            )
            return

        entity_type = entry_type.entity_type
        mapping = self._mappings.get_or_derive(
            content_type_id,  # type: ignore[arg-type]
            entry_type.field_mapping,
            lambda: derive_mapping(record.fields.keys(), self._store.properties_for(entity_type)),
        )
        if self._materialize(record, entity_type, mapping, result):
            self._resolver.collect(
                record.identifier, record.fields, self._relationships_for(entity_type)
            )

    def _materialize(
        self,
        record: Record,
        entity_type: type[Any],
        mapping: Mapping[str, str],
        result: SyncResult,
    ) -> bool:
        """Materialize one record; store failures skip the record."""
        try:
            with self._store.savepoint():
                _, created = self._materializer.materialize(
                    record.identifier, record.fields, entity_type, mapping
                )
        except StoreError as e:
            logger.warning(f"Skipping {record.kind.value} {record.identifier}: {e}")
            result.skipped.append(record.identifier)
            return False

        if created:
            result.created += 1
        else:
            result.updated += 1
        return True

    def _apply_deletion(self, deletion: Deletion, result: SyncResult) -> None:
        if deletion.kind is RecordKind.ASSET:
            entity_types = [self._registry.asset_type]
        else:
            entity_types = self._registry.all_entry_types

        try:
            with self._store.savepoint():
                removed = sum(
                    self._store.delete(entity_type, deletion.identifier)
                    for entity_type in entity_types
                )
        except StoreError as e:
            logger.warning(f"Skipping deletion of {deletion.identifier}: {e}")
            result.skipped.append(deletion.identifier)
            return

        result.deleted += removed
        logger.debug(f"Deleted {deletion.kind.value} {deletion.identifier} ({removed} local)")

    # === Helpers ===

    def _fetch_space(self) -> Any:
        """Return the singleton space record, creating it if missing."""
        space_type = self._registry.space_type
        spaces = self._store.fetch_all(space_type)
        if not spaces:
            logger.debug(f"Creating {space_type.__name__} record")
            return self._store.create(space_type)
        if len(spaces) > 1:
            logger.warning(f"Found {len(spaces)} {space_type.__name__} records, using the first")
        return spaces[0]

    def _relationships_for(self, entity_type: type[Any]) -> set[str]:
        if entity_type not in self._relationship_names:
            self._relationship_names[entity_type] = self._store.relationships_for(entity_type)
        return self._relationship_names[entity_type]

    def _relationship_targets_for(self, entity_type: type[Any]) -> RelationshipTargets:
        if entity_type not in self._relationship_targets:
            self._relationship_targets[entity_type] = self._store.relationship_targets(entity_type)
        return self._relationship_targets[entity_type]

    def _mapped_types(self) -> list[type[Any]]:
        types = list(self._registry.all_entry_types)
        if self._registry.asset_type is not None:
            types.append(self._registry.asset_type)
        return types

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise SyncCancelledError("Sync cancelled")

    def _set_state(self, state: SyncState) -> None:
        if state is self._state:
            return
        logger.debug(f"Sync state: {self._state.value} -> {state.value}")
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)
