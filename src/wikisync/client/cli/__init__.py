"""Command-line interface for wikisync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- upload: Synchronize a local page tree to the wiki
- configure: Store default upload settings
"""

from __future__ import annotations

import click

from wikisync.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from wikisync.client.cli.configure import configure
from wikisync.client.cli.upload import upload


@click.group()
@click.version_option(package_name="wikisync")
def cli() -> None:
    """wikisync - Publish a page tree to a wiki."""


cli.add_command(upload)
cli.add_command(configure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
