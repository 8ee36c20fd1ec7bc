"""Shared fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from contentmirror.client.store import PersistenceStore
from contentmirror.client.sync import Registry
from tests.models import build_registry


@pytest.fixture
def store(tmp_path: Path) -> Iterator[PersistenceStore]:
    """Create a store on a temporary SQLite database."""
    s = PersistenceStore(tmp_path / "mirror.db")
    yield s
    s.close()


@pytest.fixture
def registry() -> Registry:
    """Registry covering every test model."""
    return build_registry()
