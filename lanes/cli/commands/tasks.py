"""
FILE: lanes/cli/commands/tasks.py
PURPOSE: Task commands (task_add, task_ls)
"""

from typing import Optional

import typer
from rich.table import Table

from ..main import console, error_console, print_json, task_app
from ...core import service
from ...core.exceptions import (
    LanesError,
    ColumnNotFoundError,
    InvalidInputError,
    ProjectNotFoundError,
)
from .columns import require_project


@task_app.command("add")
def task_add(
    title: str = typer.Argument(..., help="Task title"),
    column_id: Optional[int] = typer.Option(None, "--column", "-c", help="Column ID"),
    project_id: Optional[int] = typer.Option(None, "--project", "-p", help="Project ID (uses its first column)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Task description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a task at the end of a column.

    Example:
        lanes task add "Write docs" --column 3
        lanes task add "Fix bug" --project 1
    """
    try:
        if column_id is None:
            if project_id is None:
                raise InvalidInputError("Give --column or --project")
            require_project(project_id)
            columns = service.list_columns(project_id)
            if not columns:
                raise InvalidInputError(f"Project {project_id} has no columns")
            column_id = columns[0].id

        task = service.create_task(title=title, column_id=column_id, description=description)

        if json_output:
            print_json(task.to_json())
        else:
            console.print(f"[green]✓[/green] Created task #{task.ticket_number}: {task.title}")

    except (InvalidInputError, ProjectNotFoundError, ColumnNotFoundError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


@task_app.command("ls")
def task_ls(
    project_id: int = typer.Option(..., "--project", "-p", help="Project ID"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Only tasks whose title matches"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List a project's tasks column by column.

    Example:
        lanes task ls --project 1
        lanes task ls --project 1 --query bug --json
    """
    try:
        project = require_project(project_id)
        columns = service.list_columns(project_id)
        tasks = service.list_task_summaries(project_id, query)

        if json_output:
            print_json([
                {
                    "id": t.id,
                    "ticket_number": t.ticket_number,
                    "title": t.title,
                    "column_id": column.id,
                    "column": column.name,
                    "position": t.position,
                    "priority": t.priority_description,
                    "type": t.type_description,
                    "labels": [label.name for label in t.labels],
                    "blocked": t.is_blocked,
                }
                for column in columns
                for t in tasks.get(column.id, [])
            ])
            return

        total = sum(len(tasks.get(c.id, [])) for c in columns)
        if total == 0:
            console.print("[dim]No tasks found[/dim]")
            return

        table = Table(title=f"Tasks: {project.name}")
        table.add_column("#", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Column", style="magenta")
        table.add_column("Priority", style="yellow")
        table.add_column("Labels", style="dim")
        for column in columns:
            for task in tasks.get(column.id, []):
                title = f"[red]⛔[/red] {task.title}" if task.is_blocked else task.title
                table.add_row(
                    str(task.ticket_number),
                    title,
                    column.name,
                    task.priority_description,
                    ", ".join(label.name for label in task.labels),
                )
        console.print(table)
        console.print(f"\n[dim]Total: {total} task(s)[/dim]")

    except ProjectNotFoundError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)
