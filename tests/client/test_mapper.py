"""Tests for field mapping."""

import pytest

from contentmirror.client.fields import FieldValue, decode_fields
from contentmirror.client.sync import (
    ConfigurationError,
    FieldMapper,
    build_setters,
    decode_sequence,
    derive_asset_mapping,
    derive_mapping,
    encode_sequence,
    normalize_url,
)


class Target:
    """Plain object standing in for a local entity."""

    url = None
    title = None
    tags = None
    width = None
    file = None


ATTRIBUTES = {"url", "title", "tags", "width", "file"}


@pytest.fixture
def mapper() -> FieldMapper:
    m = FieldMapper()
    m.prepare(Target, ATTRIBUTES)
    return m


class TestDeriveMapping:
    """Tests for mapping derivation."""

    def test_intersection(self) -> None:
        """Only names present on both sides are mapped."""
        mapping = derive_mapping(["title", "body", "extra"], ["title", "body", "identifier"])
        assert mapping == {"title": "title", "body": "body"}

    def test_prefix(self) -> None:
        """Prefixes apply to the remote side only."""
        assert derive_mapping(["url"], ["url"], prefix="file.") == {"file.url": "url"}

    def test_no_overlap(self) -> None:
        assert derive_mapping(["a"], ["b"]) == {}

    def test_asset_mapping(self) -> None:
        """Asset mappings include file and image details."""
        fields = decode_fields(
            {
                "title": "Logo",
                "file": {
                    "url": "//x/logo.png",
                    "fileName": "logo.png",
                    "details": {"size": 10, "image": {"width": 64, "height": 32}},
                },
            }
        )
        mapping = derive_asset_mapping(
            fields, ["identifier", "title", "url", "fileName", "width", "height", "size"]
        )
        assert mapping == {
            "title": "title",
            "file.url": "url",
            "file.fileName": "fileName",
            "file.details.image.width": "width",
            "file.details.image.height": "height",
        }

    def test_asset_mapping_without_file(self) -> None:
        """Assets without file only map top-level fields."""
        fields = decode_fields({"title": "Pending upload"})
        assert derive_asset_mapping(fields, ["title", "url"]) == {"title": "title"}

    def test_asset_mapping_prefers_nested(self) -> None:
        """A nested field wins over a top-level field of the same name."""
        fields = decode_fields({"url": "top", "file": {"url": "nested"}})
        assert derive_asset_mapping(fields, ["url"]) == {"file.url": "url"}


class TestSequenceEncoding:
    """Tests for blob encoding of arrays."""

    def test_encode_is_bytes(self) -> None:
        assert isinstance(encode_sequence(["a", "b"]), bytes)

    def test_decode(self) -> None:
        assert decode_sequence(encode_sequence(["a", 1, None])) == ["a", 1, None]

    def test_decode_empty(self) -> None:
        assert decode_sequence(None) == []
        assert decode_sequence(b"") == []


class TestNormalizeUrl:
    """Tests for protocol-relative URL normalization."""

    def test_protocol_relative(self) -> None:
        assert normalize_url("//images.example.com/a.png") == "https://images.example.com/a.png"

    def test_absolute_unchanged(self) -> None:
        assert normalize_url("http://example.com/a.png") == "http://example.com/a.png"

    def test_non_string_unchanged(self) -> None:
        assert normalize_url(None) is None


class TestFieldMapper:
    """Tests for FieldMapper.apply."""

    def test_url_attribute_normalized(self, mapper: FieldMapper) -> None:
        """Protocol-relative values mapped to url get https."""
        target = Target()
        fields = decode_fields({"file": {"url": "//images.example.com/a.png"}})

        mapper.apply(fields, target, {"file.url": "url"})

        assert target.url == "https://images.example.com/a.png"

    def test_other_attribute_not_normalized(self, mapper: FieldMapper) -> None:
        """Only the url attribute is rewritten."""
        target = Target()
        mapper.apply(decode_fields({"title": "//not-a-url"}), target, {"title": "title"})
        assert target.title == "//not-a-url"

    def test_plain_url_unchanged(self, mapper: FieldMapper) -> None:
        target = Target()
        mapper.apply(decode_fields({"url": "https://x/y"}), target, {"url": "url"})
        assert target.url == "https://x/y"

    def test_array_encoded(self, mapper: FieldMapper) -> None:
        """Arrays are assigned as blobs."""
        target = Target()
        mapper.apply(decode_fields({"tags": ["a", "b"]}), target, {"tags": "tags"})
        assert target.tags == encode_sequence(["a", "b"])

    def test_nested_assigned_as_dict(self, mapper: FieldMapper) -> None:
        target = Target()
        mapper.apply(decode_fields({"file": {"url": "//x"}}), target, {"file": "file"})
        assert target.file == {"url": "//x"}

    def test_missing_field_assigns_none(self, mapper: FieldMapper) -> None:
        """Fields absent from the record clear the attribute."""
        target = Target()
        target.title = "old"
        mapper.apply({}, target, {"title": "title"})
        assert target.title is None

    def test_scalar_as_is(self, mapper: FieldMapper) -> None:
        target = Target()
        mapper.apply({"width": FieldValue.scalar(12)}, target, {"width": "width"})
        assert target.width == 12

    def test_unknown_attribute(self, mapper: FieldMapper) -> None:
        """Mapping onto a missing attribute is a configuration error."""
        with pytest.raises(ConfigurationError, match="nope"):
            mapper.apply(decode_fields({"title": "T"}), Target(), {"title": "nope"})

    def test_unprepared_type(self) -> None:
        """Types need a setter table."""
        with pytest.raises(ConfigurationError):
            FieldMapper().apply({}, Target(), {"title": "title"})


class TestBuildSetters:
    """Tests for setter tables."""

    def test_setters_assign(self) -> None:
        setters = build_setters(["title"])
        target = Target()
        setters["title"](target, "T")
        assert target.title == "T"
