"""Command-line interface for contentmirror.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Configure the space to mirror
- sync: Run one synchronization pass
- status: Show configuration and sync token
"""

from __future__ import annotations

import click

from contentmirror.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_database_path,
    load_config,
    load_registry,
    save_config,
)
from contentmirror.client.cli.init import init
from contentmirror.client.cli.sync import status, sync


@click.group()
@click.version_option(package_name="contentmirror")
def cli() -> None:
    """contentmirror - Mirror a remote content space into a local database."""


cli.add_command(init)
cli.add_command(sync)
cli.add_command(status)

__all__ = [
    "cli",
    "get_config_dir",
    "get_config_file",
    "get_database_path",
    "load_config",
    "load_registry",
    "save_config",
]
