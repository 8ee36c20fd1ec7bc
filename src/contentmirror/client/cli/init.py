"""Init command for contentmirror CLI.

Commands:
- init: Configure the space to mirror
"""

from __future__ import annotations

import click

from contentmirror.client.cli.config import (
    get_database_path,
    load_config,
    save_config,
)


@click.command()
@click.option("--space-id", prompt="Space ID", help="Remote space to mirror.")
@click.option(
    "--access-token",
    prompt="Delivery access token",
    hide_input=True,
    help="Delivery API access token.",
)
@click.option(
    "--registry",
    prompt="Registry factory (package.module:callable)",
    help="Callable returning the type registry.",
)
@click.option("--environment", default="master", show_default=True, help="Space environment.")
@click.option("--locale", default="en-US", show_default=True, help="Locale of mirrored fields.")
@click.option("--database", default=None, help="SQLite database path.")
def init(
    space_id: str,
    access_token: str,
    registry: str,
    environment: str,
    locale: str,
    database: str | None,
) -> None:
    """Configure the space to mirror.

    Existing settings are overwritten; the stored sync token lives in the
    database and is kept.
    """
    config = load_config()
    config.update(
        {
            "space_id": space_id,
            "access_token": access_token,
            "registry": registry,
            "environment": environment,
            "locale": locale,
        }
    )
    if database:
        config["database"] = database
    save_config(config)

    click.echo(f"Configured space {space_id} ({environment})")
    click.echo(f"Database: {get_database_path(config)}")
