"""Tests for shared configuration."""

from contentmirror.core.config import DEFAULT_BASE_URL, SourceConfig


class TestSourceConfig:
    """Tests for SourceConfig."""

    def test_defaults(self) -> None:
        config = SourceConfig(space_id="s1", access_token="tok")

        assert config.environment == "master"
        assert config.base_url == DEFAULT_BASE_URL
        assert config.locale == "en-US"
        assert config.max_retries == 3
        assert config.verify_ssl is True

    def test_strips_trailing_slash(self) -> None:
        config = SourceConfig(space_id="s1", access_token="tok", base_url="http://test/")
        assert config.base_url == "http://test"

    def test_sync_path(self) -> None:
        config = SourceConfig(space_id="s1", access_token="tok", environment="staging")
        assert config.sync_path == "/spaces/s1/environments/staging/sync"

    def test_sync_url(self) -> None:
        config = SourceConfig(space_id="s1", access_token="tok", base_url="http://test")
        assert config.sync_url == "http://test/spaces/s1/environments/master/sync"
