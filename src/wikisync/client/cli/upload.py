"""Upload command for the wikisync CLI.

Commands:
- upload: Synchronize a local page tree to the wiki
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from wikisync.client.cli.config import DEFAULT_PASSWORD, load_config, resolve_defaults
from wikisync.core.config import SyncConfig
from wikisync.core.types import RunState


class ClickEchoHandler(logging.Handler):
    """Logging handler that writes records through click.echo.

    Errors go to stderr; warnings and errors are colored.
    """

    LEVEL_COLORS = {
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "red",
    }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            color = self.LEVEL_COLORS.get(record.levelno)
            if color:
                msg = click.style(msg, fg=color)
            click.echo(msg, err=record.levelno >= logging.ERROR)
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Route wikisync log records to the terminal.

    Args:
        verbose: Show debug messages.

    Returns:
        The configured package logger.
    """
    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    # Replace handlers so repeated invocations do not duplicate output
    wikisync_logger = logging.getLogger("wikisync")
    wikisync_logger.handlers.clear()
    wikisync_logger.addHandler(handler)
    wikisync_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return wikisync_logger


@click.command()
@click.argument("root", required=False, type=click.Path(path_type=Path, file_okay=False))
@click.argument("api_url", required=False)
@click.argument("username", required=False)
@click.argument("password", required=False, envvar="WIKISYNC_PASSWORD")
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help="Maximum uploads in flight.",
)
@click.option(
    "--rate-delay",
    type=click.FloatRange(min=0.0),
    default=0.1,
    show_default=True,
    help="Seconds to wait between submitting uploads.",
)
@click.option("--site-name", default=None, help="Name used in generated page headings.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output.")
def upload(
    root: Path | None,
    api_url: str | None,
    username: str | None,
    password: str | None,
    concurrency: int,
    rate_delay: float,
    site_name: str | None,
    verbose: bool,
) -> None:
    """Upload a page tree to the wiki.

    ROOT defaults to ./mediawiki-pages, API_URL to
    http://localhost:8080/w/api.php, USERNAME to Admin and PASSWORD to
    dockerpass (or $WIKISYNC_PASSWORD). Defaults can be changed with
    'wikisync configure'.
    """
    from wikisync.client.sync import sync_wiki

    setup_logging(verbose)

    try:
        defaults = resolve_defaults(load_config())
        config = SyncConfig(
            api_url=api_url or defaults["api_url"],
            username=username or defaults["username"],
            password=password or DEFAULT_PASSWORD,
            root=root or Path(defaults["root"]),
            max_concurrent=concurrency,
            submit_delay=rate_delay,
            site_name=site_name or defaults["site_name"],
        )
        click.echo(f"Uploading {config.root} to {config.api_url}...")
        stats = asyncio.run(sync_wiki(config))
    except Exception as e:
        click.echo(f"\nProcess failed: {e}", err=True)
        sys.exit(RunState.FATAL.exit_code)

    if stats.errors:
        click.echo(click.style(f"\nCompleted with {stats.errors} errors", fg="yellow"))
    click.echo("\nProcess completed successfully")
