"""
FILE: lanes/cli/commands/columns.py
PURPOSE: Column commands (column_add, column_ls)
"""

from typing import Optional

import typer
from rich.table import Table

from ..main import column_app, console, error_console, print_json
from ...core import service
from ...core.exceptions import (
    LanesError,
    ColumnNotFoundError,
    InvalidInputError,
    ProjectNotFoundError,
)


def require_project(project_id: int):
    """Return the project or raise ProjectNotFoundError."""
    project = service.get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


@column_app.command("add")
def column_add(
    name: str = typer.Argument(..., help="Column name"),
    project_id: int = typer.Option(..., "--project", "-p", help="Project ID"),
    after_id: Optional[int] = typer.Option(None, "--after", help="Insert after this column ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a column; it goes last unless --after is given.

    Example:
        lanes column add "Todo" --project 1
        lanes column add "Review" --project 1 --after 2
    """
    try:
        require_project(project_id)
        column = service.create_column(name, project_id, after_id)

        if json_output:
            print_json(column.to_json())
        else:
            console.print(f"[green]✓[/green] Created column {column.id}: {column.name}")

    except (InvalidInputError, ProjectNotFoundError, ColumnNotFoundError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


@column_app.command("ls")
def column_ls(
    project_id: int = typer.Option(..., "--project", "-p", help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List a project's columns in board order.

    Example:
        lanes column ls --project 1
    """
    try:
        project = require_project(project_id)
        columns = service.list_columns(project_id)

        if json_output:
            print_json([
                {
                    "id": c.id,
                    "name": c.name,
                    "project_id": c.project_id,
                    "tasks": service.count_tasks_in_column(c.id),
                }
                for c in columns
            ])
            return

        if not columns:
            console.print(f"[dim]No columns in {project.name}[/dim]")
            return

        table = Table(title=f"Columns: {project.name}")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Tasks", style="dim", justify="right")
        for column in columns:
            table.add_row(str(column.id), column.name, str(service.count_tasks_in_column(column.id)))
        console.print(table)

    except ProjectNotFoundError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)
