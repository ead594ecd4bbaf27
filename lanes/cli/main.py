"""
FILE: lanes/cli/main.py
PURPOSE: Typer-based CLI; with no command it opens the board
EXPORTS:
  - app (Typer application), project_app, column_app, task_app
  - console, error_console
  - print_json(data)
  - main() (entry point)
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - lanes.config, lanes.core.service
  - lanes.feed.client (tells running boards about CLI changes)
NOTES:
  - All listing/creating commands support --json
  - Error messages go to stderr; exit codes: 0=success, 1=error
  - Commands call the service layer only
"""

import json
import logging

import typer
from rich.console import Console

from .. import __version__
from ..config import config_path, load_config
from ..core import service
from ..feed.client import FeedClient

logger = logging.getLogger(__name__)

# Typer app setup
app = typer.Typer(
    name="lanes",
    help="Terminal kanban board with live multi-instance sync",
    add_completion=False,
)

project_app = typer.Typer(name="project", help="Project management commands")
column_app = typer.Typer(name="column", help="Column management commands")
task_app = typer.Typer(name="task", help="Task management commands")
app.add_typer(project_app, name="project")
app.add_typer(column_app, name="column")
app.add_typer(task_app, name="task")

console = Console()
error_console = Console(stderr=True)


def print_json(data) -> None:
    """Print JSON verbatim (no markup, emoji, highlighting or wrapping)."""
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def _start_publisher(config):
    """
    Connect to the feed so running boards hear about this command's
    changes. Returns a cleanup callable (a no-op without a broker).
    """
    if not config.feed_enabled or not config.feed_socket.exists():
        return lambda: None
    client = FeedClient(str(config.feed_socket), deliver=lambda msg: None)
    try:
        client.connect()
    except OSError as e:
        logger.debug("No feed broker at %s: %s", config.feed_socket, e)
        return lambda: None
    service.subscribe(client.publish)

    def stop():
        service.unsubscribe(client.publish)
        client.close()

    return stop


@app.callback(invoke_without_command=True)
def default_command(ctx: typer.Context):
    """
    Open the board when no command is given; otherwise prepare the
    command (config and change publishing).
    """
    config, problems = load_config(config_path())
    for problem in problems:
        error_console.print(f"[yellow]Config:[/yellow] {problem}")

    if ctx.invoked_subcommand is None:
        from ..tui.app import run_board
        run_board(config)
        return

    if ctx.invoked_subcommand != "daemon":
        ctx.call_on_close(_start_publisher(config))
    ctx.obj = config


# Import command modules to register commands with app
from .commands import (  # noqa: E402
    version,
    daemon,
    project_add,
    project_ls,
    project_rm,
    column_add,
    column_ls,
    task_add,
    task_ls,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
