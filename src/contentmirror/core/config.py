"""Shared configuration classes for contentmirror.

This module defines the configuration used to reach the remote content source.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE_URL = "https://cdn.contentful.com"


@dataclass
class SourceConfig:
    """Configuration for connecting to a remote content space.

    Attributes:
        space_id: Identifier of the remote space to mirror.
        access_token: Delivery API access token.
        environment: Environment of the space (default "master").
        base_url: Base URL of the delivery API.
        locale: Locale used to unwrap localized field values.
        timeout: Request timeout in seconds.
        max_retries: Retries for rate-limited or failed requests.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    space_id: str
    access_token: str
    environment: str = "master"
    base_url: str = DEFAULT_BASE_URL
    locale: str = "en-US"
    timeout: float = 30.0
    max_retries: int = 3
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")

    @property
    def sync_path(self) -> str:
        """Path of the sync endpoint, relative to base_url."""
        return f"/spaces/{self.space_id}/environments/{self.environment}/sync"

    @property
    def sync_url(self) -> str:
        """Absolute URL of the sync endpoint."""
        return f"{self.base_url}{self.sync_path}"
