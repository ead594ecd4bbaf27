"""
FILE: lanes/cli/commands/system.py
PURPOSE: System commands (version, daemon)
"""

from pathlib import Path
from typing import Optional

import typer

from ..main import app, console, error_console, __version__
from ...config import config_path, load_config
from ...feed import broker
from ...logging_utils import configure_logging


@app.command()
def version():
    """Show lanes version."""
    console.print(f"lanes v{__version__}")


@app.command()
def daemon(
    socket_path: Optional[Path] = typer.Option(None, "--socket", help="Unix socket to listen on"),
):
    """
    Run the feed broker that keeps open boards in sync.

    Example:
        lanes daemon
        lanes daemon --socket /tmp/lanes.sock
    """
    config, _ = load_config(config_path())
    path = socket_path or config.feed_socket
    configure_logging(config.log_file, config.log_level)
    console.print(f"[green]✓[/green] Feed broker listening on {path} [dim](ctrl+c to stop)[/dim]")
    try:
        broker.serve(path)
    except OSError as e:
        error_console.print(f"[red]Error:[/red] cannot listen on {path}: {e}")
        raise typer.Exit(1)
