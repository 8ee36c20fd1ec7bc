"""Tests for EntityMaterializer."""

import pytest

from contentmirror.client.fields import decode_fields
from contentmirror.client.store import PersistenceStore
from contentmirror.client.sync import ConfigurationError, EntityMaterializer, FieldMapper
from tests.models import Category, Post


@pytest.fixture
def materializer(store: PersistenceStore) -> EntityMaterializer:
    mapper = FieldMapper()
    mapper.prepare(Post, store.properties_for(Post))
    mapper.prepare(Category, store.properties_for(Category))
    return EntityMaterializer(store, mapper)


MAPPING = {"title": "title", "views": "views"}


class TestMaterialize:
    """Tests for create-or-update."""

    def test_creates_entity(self, store: PersistenceStore, materializer: EntityMaterializer) -> None:
        """A new identifier creates an entity."""
        entity, created = materializer.materialize(
            "p1", decode_fields({"title": "A", "views": 1}), Post, MAPPING
        )

        assert created is True
        assert entity.identifier == "p1"
        assert entity.title == "A"
        assert store.fetch_all(Post, "p1") == [entity]

    def test_updates_in_place(self, store: PersistenceStore, materializer: EntityMaterializer) -> None:
        """A known identifier updates the existing entity."""
        first, _ = materializer.materialize("p1", decode_fields({"title": "A"}), Post, MAPPING)
        second, created = materializer.materialize(
            "p1", decode_fields({"title": "B", "views": 5}), Post, MAPPING
        )

        assert created is False
        assert second is first
        assert second.title == "B"
        assert second.views == 5

    def test_idempotent(self, store: PersistenceStore, materializer: EntityMaterializer) -> None:
        """Repeating a materialization never duplicates."""
        fields = decode_fields({"title": "A"})
        for _ in range(5):
            materializer.materialize("p1", fields, Post, MAPPING)

        assert len(store.fetch_all(Post)) == 1

    def test_idempotent_after_save(
        self, store: PersistenceStore, materializer: EntityMaterializer
    ) -> None:
        """Committed entities are found again by identifier."""
        materializer.materialize("p1", decode_fields({"title": "A"}), Post, MAPPING)
        store.save()
        materializer.materialize("p1", decode_fields({"title": "B"}), Post, MAPPING)
        store.save()

        posts = store.fetch_all(Post)
        assert len(posts) == 1
        assert posts[0].title == "B"

    def test_identifier_scoped_by_type(
        self, store: PersistenceStore, materializer: EntityMaterializer
    ) -> None:
        """The same identifier in two types yields one entity per type."""
        materializer.materialize("x", decode_fields({"title": "post"}), Post, MAPPING)
        materializer.materialize("x", decode_fields({"title": "cat"}), Category, {"title": "title"})

        assert len(store.fetch_all(Post, "x")) == 1
        assert len(store.fetch_all(Category, "x")) == 1

    def test_empty_mapping(self, store: PersistenceStore, materializer: EntityMaterializer) -> None:
        """Empty mappings are rejected before touching the store."""
        with pytest.raises(ConfigurationError, match="Empty mapping"):
            materializer.materialize("p1", decode_fields({"x": 1}), Post, {})

        assert store.fetch_all(Post) == []
