"""Configure command for the wikisync CLI.

Commands:
- configure: Store default upload settings
"""

from __future__ import annotations

import click

from wikisync.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--root", default=None, help="Default page tree directory.")
@click.option("--api-url", default=None, help="Default wiki API endpoint.")
@click.option("--username", default=None, help="Default account name.")
@click.option("--site-name", default=None, help="Default name for generated headings.")
def configure(
    root: str | None,
    api_url: str | None,
    username: str | None,
    site_name: str | None,
) -> None:
    """Store default settings for 'wikisync upload'.

    Passwords are never stored; use $WIKISYNC_PASSWORD instead.
    """
    config = load_config()
    updates = {
        "root": root,
        "api_url": api_url,
        "username": username,
        "site_name": site_name,
    }
    for key, value in updates.items():
        if value is not None:
            config[key] = value

    if not any(value is not None for value in updates.values()):
        if not config:
            click.echo("No defaults stored.")
        for key, value in sorted(config.items()):
            click.echo(f"{key} = {value}")
        return

    save_config(config)
    click.echo(f"Saved defaults to {get_config_file()}")
