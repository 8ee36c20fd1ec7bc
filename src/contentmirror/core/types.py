"""Shared types for contentmirror."""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """State of the synchronization pass.

    The success path is IDLE -> FETCHING_DELTA -> APPLYING_CHANGES ->
    RESOLVING_RELATIONSHIPS -> COMMITTING -> IDLE. Any step may end in FAILED.
    """

    IDLE = "idle"
    FETCHING_DELTA = "fetching_delta"
    APPLYING_CHANGES = "applying_changes"
    RESOLVING_RELATIONSHIPS = "resolving_relationships"
    COMMITTING = "committing"
    FAILED = "failed"


class PassType(str, Enum):
    """Kind of synchronization pass."""

    INITIAL = "initial"  # No stored token, everything is a create
    DELTA = "delta"
