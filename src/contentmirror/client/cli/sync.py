"""Sync commands for contentmirror CLI.

Commands:
- sync: Run one synchronization pass
- status: Show configuration and sync token
"""

from __future__ import annotations

import logging
import sys

import click

from contentmirror.client.cli.config import (
    get_database_path,
    load_config,
    load_registry,
    missing_keys,
    source_config_from,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def sync(verbose: bool) -> None:
    """Run one synchronization pass.

    Fetches everything on the first run, then only what changed since the
    last successful pass. Exits with status 1 if the pass failed.
    """
    from contentmirror.client.api import DeliveryClient
    from contentmirror.client.store import PersistenceStore
    from contentmirror.client.sync import ConfigurationError, Synchronizer

    _configure_logging(verbose)

    config = load_config()
    missing = missing_keys(config)
    if missing:
        click.echo(
            f"Error: Missing configuration ({', '.join(missing)}). Run 'contentmirror init' first.",
            err=True,
        )
        sys.exit(1)

    try:
        registry = load_registry(config["registry"])
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with DeliveryClient(source_config_from(config)) as client, PersistenceStore(
        get_database_path(config)
    ) as store:
        synchronizer = Synchronizer(client, store, registry, matching=config.get("matching"))
        try:
            success = synchronizer.sync()
        except ConfigurationError as e:
            click.echo(f"Configuration error: {e}", err=True)
            sys.exit(1)

        result = synchronizer.last_result

    if not success:
        error = result.error if result else "unknown error"
        click.echo(f"Sync failed: {error}", err=True)
        sys.exit(1)

    if result is not None:
        click.echo(
            f"Sync complete ({result.pass_type.value}): {result.created} created, "
            f"{result.updated} updated, {result.deleted} deleted"
        )
        if result.skipped:
            click.echo(f"  Skipped: {', '.join(result.skipped)}")
        if result.unresolved_links:
            click.echo(f"  Unresolved links: {result.unresolved_links}")


@click.command()
def status() -> None:
    """Show configuration and the stored sync token."""
    from contentmirror.client.store import PersistenceStore
    from contentmirror.client.sync import ConfigurationError, Synchronizer

    config = load_config()
    missing = missing_keys(config)
    if missing:
        click.echo(f"Not configured (missing: {', '.join(missing)})")
        return

    database = get_database_path(config)
    click.echo(f"Space:    {config['space_id']} ({config.get('environment', 'master')})")
    click.echo(f"Registry: {config['registry']}")
    click.echo(f"Database: {database}")

    if not database.exists():
        click.echo("Sync token: none (never synced)")
        return

    try:
        registry = load_registry(config["registry"])
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with PersistenceStore(database) as store:
        try:
            token = Synchronizer(None, store, registry).sync_token  # type: ignore[arg-type]
        except ConfigurationError as e:
            click.echo(f"Configuration error: {e}", err=True)
            sys.exit(1)

    click.echo(f"Sync token: {token or 'none (never synced)'}")
