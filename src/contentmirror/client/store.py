"""Local object store backed by SQLAlchemy.

This module provides:
- PersistenceStore: Generic repository over mirrored entity types
- StoreError: Raised for any store failure

The store's session is the change-set of a synchronization pass: creates,
updates and deletes are staged in it and only become durable on save().
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import create_engine, event, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contentmirror.client.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

T = TypeVar("T")

IDENTITY_ATTRIBUTE = "identifier"


class StoreError(Exception):
    """Raised when the local store fails to fetch, create, delete or save."""


def _enable_savepoints(engine: Engine) -> None:
    """Let pysqlite hand transaction control to SQLAlchemy.

    Without this the driver issues its own BEGIN/COMMIT and SAVEPOINTs
    (used for per-record rollback) do not work.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


class PersistenceStore:
    """SQLAlchemy repository for mirrored entities.

    Lookups only support "identifier equals X" and "match all", which is
    everything the synchronizer needs.
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        url: str | None = None,
        base: type[DeclarativeBase] = Base,
    ) -> None:
        """Open (and create if needed) the store.

        Args:
            db_path: Path to a SQLite database file.
            url: Full SQLAlchemy URL, used instead of db_path.
            base: Declarative base holding the mirrored models.
        """
        if url is None:
            if db_path is None:
                raise ValueError("Either db_path or url is required")
            path = Path(db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{path}"

        self._engine: Engine = create_engine(url, echo=False)
        if self._engine.dialect.name == "sqlite":
            _enable_savepoints(self._engine)

        base.metadata.create_all(self._engine)
        self._session = Session(self._engine, expire_on_commit=False)

    @property
    def session(self) -> Session:
        """The session holding the current change-set."""
        return self._session

    def close(self) -> None:
        """Close the session and dispose the engine."""
        self._session.close()
        self._engine.dispose()

    def __enter__(self) -> PersistenceStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # === Repository operations ===

    def fetch_all(self, entity_type: type[T], identifier: str | None = None) -> list[T]:
        """Fetch entities of a type.

        Args:
            entity_type: Mapped class to query.
            identifier: Only return the entity with this identifier. None
                matches all entities.

        Returns:
            Matching entities, staged ones included.
        """
        stmt = select(entity_type)
        if identifier is not None:
            stmt = stmt.where(getattr(entity_type, IDENTITY_ATTRIBUTE) == identifier)
        try:
            return list(self._session.scalars(stmt))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch {entity_type.__name__}: {e}") from e

    def create(self, entity_type: type[T]) -> T:
        """Create and stage a new entity of a type."""
        try:
            entity = entity_type()
            self._session.add(entity)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create {entity_type.__name__}: {e}") from e
        return entity

    def delete(self, entity_type: type[Any], identifier: str) -> int:
        """Delete entities of a type by identifier.

        Returns:
            Number of deleted rows.
        """
        # ORM deletes so association rows of relationships go too
        entities = self.fetch_all(entity_type, identifier)
        try:
            for entity in entities:
                self._session.delete(entity)
            self._session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete {entity_type.__name__} {identifier}: {e}") from e
        return len(entities)

    # === Introspection ===

    def properties_for(self, entity_type: type[Any]) -> set[str]:
        """Names of the plain (column) attributes of a type."""
        return {attr.key for attr in inspect(entity_type).column_attrs}

    def relationships_for(self, entity_type: type[Any]) -> set[str]:
        """Names of the relationship-valued attributes of a type."""
        return {rel.key for rel in inspect(entity_type).relationships}

    def relationship_targets(self, entity_type: type[Any]) -> dict[str, tuple[type[Any], bool]]:
        """Target class and collection flag of each relationship of a type.

        Returns:
            Relationship name -> (target class, holds a collection).
        """
        return {
            rel.key: (rel.mapper.class_, bool(rel.uselist))
            for rel in inspect(entity_type).relationships
        }

    # === Transactions ===

    @contextlib.contextmanager
    def savepoint(self) -> Iterator[None]:
        """Stage a group of writes that is rolled back on its own on failure.

        Raises:
            StoreError: If the writes could not be flushed.
        """
        try:
            with self._session.begin_nested():
                yield
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def save(self) -> None:
        """Commit every staged change.

        Raises:
            StoreError: If the commit failed; staged changes are discarded.
        """
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to save: {e}") from e
        logger.debug("Store changes committed")

    def rollback(self) -> None:
        """Discard every staged change."""
        self._session.rollback()
