"""Entry point: ``dokploy-tui`` / ``python -m dokploy_tui``."""

from __future__ import annotations

import logging
import os

import click

from . import __version__
from .cache import default_cache_file
from .config import default_config_file, get_server_config
from .scheduler import DEFAULT_INTERVAL

DEFAULT_LOG_FILE = "/tmp/dokploy-tui.log"

_log = logging.getLogger("dokploy-tui")


# ---------------------------------------------------------------------------
# Debug logging: writes to $DOKPLOY_TUI_LOG (default /tmp/dokploy-tui.log)
# ---------------------------------------------------------------------------


def setup_logging(path: str | None = None, debug: bool = False) -> None:
    _log.setLevel(logging.DEBUG if debug else logging.INFO)
    _log.propagate = False
    if _log.handlers:
        return
    fh = logging.FileHandler(path or os.environ.get("DOKPLOY_TUI_LOG") or DEFAULT_LOG_FILE)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    ))
    _log.addHandler(fh)


@click.command()
@click.option("--server", "alias", default=None, help="Server alias to open (default: current alias).")
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_INTERVAL,
    show_default=True,
    help="Auto-refresh interval in seconds.",
)
@click.option("--no-auto-refresh", is_flag=True, help="Start with auto-refresh paused.")
@click.option("--config", "config_file", default=None, help="Path to config.json.")
@click.option("--debug", is_flag=True, help="Log at DEBUG level.")
@click.version_option(__version__, prog_name="dokploy-tui")
def main(alias, interval, no_auto_refresh, config_file, debug):
    """Browse and operate Dokploy projects from the terminal."""
    setup_logging(debug=debug)
    config_file = config_file or default_config_file()

    server = get_server_config(config_file, alias)
    if not server.is_configured:
        # The app still starts; the first load reports "Not authenticated".
        click.echo(click.style(f"Server '{server.alias}' is not configured.", fg="yellow"), err=True)
    _log.info("starting: server=%s interval=%.1fs", server.alias, interval)

    from .app import DokployApp

    app = DokployApp(
        config_file,
        default_cache_file(),
        alias=alias,
        interval=interval,
        auto_refresh=not no_auto_refresh,
    )
    app.run()


if __name__ == "__main__":
    main()
