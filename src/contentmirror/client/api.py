"""HTTP client for the remote content delivery sync API.

This module provides:
- DeliveryClient: Fetches initial and delta sync pages
- Decoding of sync items into Record / Deletion objects
- APIError and its subclasses

Wire format (Contentful-compatible sync endpoint):
    GET /spaces/{space}/environments/{env}/sync?initial=true
    GET /spaces/{space}/environments/{env}/sync?sync_token=...

    {"items": [...], "nextPageUrl": "...?sync_token=X"}   more pages follow
    {"items": [...], "nextSyncUrl": "...?sync_token=Y"}   end of the pass
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from contentmirror.client.fields import decode_fields
from contentmirror.client.sync.retry import retry_with_backoff
from contentmirror.client.sync.types import (
    Deletion,
    DeltaPage,
    FetchError,
    Record,
    RecordKind,
)
from contentmirror.core.config import SourceConfig

logger = logging.getLogger(__name__)

RATE_LIMIT_RESET_HEADER = "X-Contentful-RateLimit-Reset"

_ITEM_KINDS = {
    "Entry": RecordKind.ENTRY,
    "Asset": RecordKind.ASSET,
}

_DELETION_KINDS = {
    "DeletedEntry": RecordKind.ENTRY,
    "DeletedAsset": RecordKind.ASSET,
}


class APIError(FetchError):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Access token rejected."""


class NotFoundError(APIError):
    """Space, environment or sync token not found."""


class RateLimitError(APIError):
    """Too many requests.

    Attributes:
        reset: Seconds until requests are accepted again, if known.
    """

    def __init__(self, message: str, reset: float | None = None) -> None:
        super().__init__(message, 429)
        self.reset = reset


class TransportError(APIError):
    """The request could not be sent or no response was received."""


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        return str(data.get("message") or data.get("detail") or default)
    return default


def token_from_url(url: str) -> str | None:
    """Extract the sync_token query parameter of a next page/sync URL."""
    return httpx.URL(url).params.get("sync_token")


def unwrap_locale(value: Any, locale: str) -> Any:
    """Pick the value of a localized field ({"en-US": value}).

    Falls back to the first available locale when the requested one is
    missing (non-localized fields only carry the default locale).
    """
    if not isinstance(value, dict) or not value:
        return value
    if locale in value:
        return value[locale]
    return next(iter(value.values()))


def decode_item(item: Mapping[str, Any], locale: str) -> Record | Deletion | None:
    """Decode a sync item.

    Returns:
        A Record for entries and assets, a Deletion for deleted ones, or
        None for unknown item types.
    """
    sys = item.get("sys") or {}
    item_type = sys.get("type")
    identifier = sys.get("id")
    if not isinstance(identifier, str):
        logger.warning(f"Ignoring sync item without id: {sys}")
        return None

    if item_type in _DELETION_KINDS:
        return Deletion(identifier=identifier, kind=_DELETION_KINDS[item_type])

    if item_type not in _ITEM_KINDS:
        logger.debug(f"Ignoring sync item {identifier} of type {item_type}")
        return None

    raw_fields = {
        name: unwrap_locale(value, locale)
        for name, value in (item.get("fields") or {}).items()
    }
    content_type_id = None
    if item_type == "Entry":
        content_type_id = ((sys.get("contentType") or {}).get("sys") or {}).get("id")

    return Record(
        identifier=identifier,
        kind=_ITEM_KINDS[item_type],
        fields=decode_fields(raw_fields),
        content_type_id=content_type_id,
    )


def decode_page(data: Mapping[str, Any], locale: str) -> DeltaPage:
    """Decode a sync response body into a DeltaPage."""
    page = DeltaPage()
    for item in data.get("items") or []:
        decoded = decode_item(item, locale)
        if isinstance(decoded, Record):
            page.records.append(decoded)
        elif isinstance(decoded, Deletion):
            page.deletions.append(decoded)

    if data.get("nextPageUrl"):
        page.next_token = token_from_url(data["nextPageUrl"])
        page.has_more = True
    elif data.get("nextSyncUrl"):
        page.next_token = token_from_url(data["nextSyncUrl"])
    else:
        raise APIError("Sync response carries neither nextPageUrl nor nextSyncUrl")

    if page.next_token is None:
        raise APIError("Sync response URL carries no sync_token")
    return page


class DeliveryClient:
    """HTTP client for the delivery sync API."""

    def __init__(
        self,
        config: SourceConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Space, credentials and connection settings.
            transport: Optional httpx transport (used in tests).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.access_token}"},
            transport=transport,
        )

    @property
    def config(self) -> SourceConfig:
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> DeliveryClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError(_error_message(response, "Invalid access token"), 401)
        if response.status_code == 404:
            raise NotFoundError(_error_message(response, "Resource not found"), 404)
        if response.status_code == 429:
            reset = response.headers.get(RATE_LIMIT_RESET_HEADER)
            raise RateLimitError(
                _error_message(response, "Rate limit exceeded"),
                reset=float(reset) if reset else None,
            )
        if response.status_code >= 400:
            raise APIError(_error_message(response, "Unknown error"), response.status_code)
        return response

    def _get_page(self, params: dict[str, Any]) -> DeltaPage:
        def request() -> DeltaPage:
            try:
                response = self._client.get(self._config.sync_path, params=params)
            except httpx.RequestError as e:
                raise TransportError(f"Request failed: {e}") from e
            try:
                data = self._handle_response(response).json()
            except ValueError as e:
                raise APIError(f"Invalid sync response: {e}", response.status_code) from e
            return decode_page(data, self._config.locale)

        return retry_with_backoff(
            request,
            max_retries=self._config.max_retries,
            retryable_exceptions=(RateLimitError, TransportError),
            delay_for=lambda e: getattr(e, "reset", None),
        )

    # === Sync operations ===

    def fetch_initial(self, matching: Mapping[str, Any] | None = None) -> DeltaPage:
        """Fetch the first page of an initial sync.

        Args:
            matching: Optional filter, e.g. {"type": "Entry",
                "content_type": "post"}.

        Returns:
            The first page; further pages are fetched with fetch_delta().
        """
        params: dict[str, Any] = {"initial": "true"}
        if matching:
            params.update(matching)
        logger.debug(f"Fetching initial sync page ({params})")
        return self._get_page(params)

    def fetch_delta(self, token: str) -> DeltaPage:
        """Fetch a delta page for a sync token or a next-page token."""
        logger.debug("Fetching delta sync page")
        return self._get_page({"sync_token": token})
