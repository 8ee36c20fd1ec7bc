"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, ConfigurationError, SyncInProgressError, SyncCancelledError,
  FetchError: Exception classes
- RecordKind, Record, Deletion, DeltaPage: Decoded delta pages
- SyncResult: Counters of a synchronization pass
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from contentmirror.core.types import PassType, SyncState

if TYPE_CHECKING:
    from contentmirror.client.fields import FieldValue


class SyncError(Exception):
    """Base exception for sync errors."""


class ConfigurationError(SyncError):
    """Missing type registration or unusable field mapping.

    Raised before any network interaction and never retried.
    """


class SyncInProgressError(SyncError):
    """A synchronization pass is already running."""


class SyncCancelledError(SyncError):
    """The running pass was cancelled."""


class FetchError(SyncError):
    """The remote source could not deliver a page."""


class RecordKind(str, Enum):
    """Kind of remote record."""

    ENTRY = "entry"
    ASSET = "asset"


@dataclass
class Record:
    """A created or updated remote record.

    Attributes:
        identifier: Remote id, unique across entry types.
        kind: Entry or asset.
        fields: Decoded field values, keyed by field name.
        content_type_id: Content type of entries (None for assets).
    """

    identifier: str
    kind: RecordKind
    fields: dict[str, FieldValue]
    content_type_id: str | None = None


@dataclass
class Deletion:
    """A record deleted remotely."""

    identifier: str
    kind: RecordKind


@dataclass
class DeltaPage:
    """One page of a delta (or initial) fetch.

    Attributes:
        records: Created or updated records, in source order.
        deletions: Deleted records.
        next_token: Token for the next page if has_more, else the new
            continuation token.
        has_more: Whether the logical pass continues on another page.
    """

    records: list[Record] = field(default_factory=list)
    deletions: list[Deletion] = field(default_factory=list)
    next_token: str | None = None
    has_more: bool = False

    @property
    def entries(self) -> list[Record]:
        return [r for r in self.records if r.kind is RecordKind.ENTRY]

    @property
    def assets(self) -> list[Record]:
        return [r for r in self.records if r.kind is RecordKind.ASSET]


@dataclass
class SyncResult:
    """Counters of a synchronization pass."""

    pass_type: PassType
    pages: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: list[str] = field(default_factory=list)
    unresolved_links: int = 0
    success: bool = False
    error: str | None = None


# Type aliases for callbacks
CompletionCallback = Callable[[bool], None]
StateCallback = Callable[[SyncState], None]
