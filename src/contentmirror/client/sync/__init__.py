"""Synchronization of a remote space into the local store.

Architecture:
    DeliveryClient -> Synchronizer -> EntityMaterializer -> PersistenceStore
                                   -> RelationshipResolver

Components:
- **TypeRegistry / Registry**: Which local type mirrors which remote type
- **FieldMapper**: Writes remote field values onto local attributes
- **EntityMaterializer**: Idempotent create-or-update by identifier
- **RelationshipResolver**: Collects links per entry, wires them after the pass
- **Synchronizer**: Drives the pass lifecycle and owns the sync token

All public symbols are re-exported here.
"""

from contentmirror.client.sync.engine import DeltaSource, Synchronizer
from contentmirror.client.sync.mapper import (
    FieldMapper,
    build_setters,
    decode_sequence,
    derive_asset_mapping,
    derive_mapping,
    encode_sequence,
    normalize_url,
)
from contentmirror.client.sync.materializer import EntityMaterializer
from contentmirror.client.sync.registry import (
    EntryTypeMapping,
    MappingCache,
    Registry,
    TypeRegistry,
)
from contentmirror.client.sync.relationships import (
    LookupCache,
    RelationshipResolver,
    RelationshipTargets,
    ResolutionReport,
    extract_links,
    identifier_of,
)
from contentmirror.client.sync.retry import retry_with_backoff
from contentmirror.client.sync.types import (
    CompletionCallback,
    ConfigurationError,
    Deletion,
    DeltaPage,
    FetchError,
    Record,
    RecordKind,
    StateCallback,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
    SyncResult,
)

__all__ = [
    # Engine
    "DeltaSource",
    "Synchronizer",
    # Mapping
    "FieldMapper",
    "build_setters",
    "decode_sequence",
    "derive_asset_mapping",
    "derive_mapping",
    "encode_sequence",
    "normalize_url",
    # Materializer
    "EntityMaterializer",
    # Registry
    "EntryTypeMapping",
    "MappingCache",
    "Registry",
    "TypeRegistry",
    # Relationships
    "LookupCache",
    "RelationshipResolver",
    "RelationshipTargets",
    "ResolutionReport",
    "extract_links",
    "identifier_of",
    # Retry
    "retry_with_backoff",
    # Types
    "CompletionCallback",
    "ConfigurationError",
    "Deletion",
    "DeltaPage",
    "FetchError",
    "Record",
    "RecordKind",
    "StateCallback",
    "SyncCancelledError",
    "SyncError",
    "SyncInProgressError",
    "SyncResult",
]
