"""Configuration utilities for the contentmirror CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

from contentmirror.client.sync import Registry, TypeRegistry
from contentmirror.core.config import SourceConfig

# Keys required before a sync can run
REQUIRED_KEYS = ("space_id", "access_token", "registry")


def get_config_dir() -> Path:
    """Get the configuration directory for contentmirror.

    Returns:
        Path to ~/.contentmirror or equivalent.
    """
    return Path.home() / ".contentmirror"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_database_path(config: dict[str, Any]) -> Path:
    """Get the mirror database path (configured or default)."""
    if config.get("database"):
        return Path(config["database"]).expanduser().resolve()
    return get_config_dir() / "mirror.db"


def missing_keys(config: dict[str, Any]) -> list[str]:
    """Required configuration keys that are not set."""
    return [key for key in REQUIRED_KEYS if not config.get(key)]


def source_config_from(config: dict[str, Any]) -> SourceConfig:
    """Build a SourceConfig from the CLI configuration."""
    options: dict[str, Any] = {}
    for key in ("environment", "base_url", "locale"):
        if config.get(key):
            options[key] = config[key]
    return SourceConfig(
        space_id=config["space_id"],
        access_token=config["access_token"],
        **options,
    )


def load_registry(path: str) -> Registry:
    """Import a registry factory given as "package.module:callable".

    The callable takes no arguments and returns a TypeRegistry or Registry.

    Raises:
        ValueError: If the path is malformed or does not yield a registry.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Registry must look like 'package.module:callable', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import {module_name}: {e}") from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{path} is not callable")

    registry = factory()
    if isinstance(registry, TypeRegistry):
        registry = registry.freeze()
    if not isinstance(registry, Registry):
        raise ValueError(f"{path} returned {type(registry).__name__}, expected a registry")
    return registry
