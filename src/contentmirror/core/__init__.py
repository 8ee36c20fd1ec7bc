"""Core module - Shared configuration and types."""

from contentmirror.core.config import SourceConfig
from contentmirror.core.types import PassType, SyncState

__all__ = [
    # Config
    "SourceConfig",
    # Types
    "PassType",
    "SyncState",
]
