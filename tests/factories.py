"""Builders for remote records and a scripted delta source."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from contentmirror.client.fields import decode_fields
from contentmirror.client.sync import Deletion, DeltaPage, FetchError, Record, RecordKind


def link(identifier: str) -> dict[str, Any]:
    """Raw link to another record."""
    return {"sys": {"type": "Link", "linkType": "Entry", "id": identifier}}


def entry(identifier: str, content_type: str, **fields: Any) -> Record:
    """Entry record with raw JSON field values."""
    return Record(
        identifier=identifier,
        kind=RecordKind.ENTRY,
        fields=decode_fields(fields),
        content_type_id=content_type,
    )


def asset(identifier: str, **fields: Any) -> Record:
    """Asset record with raw JSON field values."""
    return Record(identifier=identifier, kind=RecordKind.ASSET, fields=decode_fields(fields))


def image_asset(identifier: str, url: str = "//images.example.com/a.png") -> Record:
    """Asset with the nested file / image details structure."""
    return asset(
        identifier,
        title=f"Image {identifier}",
        file={
            "url": url,
            "fileName": "a.png",
            "contentType": "image/png",
            "details": {"size": 1024, "image": {"width": 640, "height": 480}},
        },
    )


def deleted_entry(identifier: str) -> Deletion:
    return Deletion(identifier=identifier, kind=RecordKind.ENTRY)


def deleted_asset(identifier: str) -> Deletion:
    return Deletion(identifier=identifier, kind=RecordKind.ASSET)


def page(
    records: list[Record] | None = None,
    deletions: list[Deletion] | None = None,
    token: str = "token-1",
    has_more: bool = False,
) -> DeltaPage:
    return DeltaPage(
        records=list(records or []),
        deletions=list(deletions or []),
        next_token=token,
        has_more=has_more,
    )


class ScriptedSource:
    """Delta source returning queued pages (or raising queued errors).

    Attributes:
        calls: ("initial", matching) or ("delta", token) per fetch.
    """

    def __init__(self, *pages: DeltaPage | Exception) -> None:
        self._pages: list[DeltaPage | Exception] = list(pages)
        self.calls: list[tuple[str, Any]] = []

    def queue(self, *pages: DeltaPage | Exception) -> None:
        self._pages.extend(pages)

    def _next(self) -> DeltaPage:
        if not self._pages:
            raise FetchError("No page queued")
        item = self._pages.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def fetch_initial(self, matching: Mapping[str, Any] | None = None) -> DeltaPage:
        self.calls.append(("initial", dict(matching or {})))
        return self._next()

    def fetch_delta(self, token: str) -> DeltaPage:
        self.calls.append(("delta", token))
        return self._next()
