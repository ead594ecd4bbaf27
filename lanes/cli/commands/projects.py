"""
FILE: lanes/cli/commands/projects.py
PURPOSE: Project management commands (project_add, project_ls, project_rm)
"""

from typing import Optional

import typer
from rich.table import Table

from ..main import console, error_console, print_json, project_app
from ...core import service
from ...core.exceptions import (
    LanesError,
    InvalidInputError,
    ProjectNotFoundError,
)


@project_app.command("add")
def project_add(
    name: str = typer.Argument(..., help="Project name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Project description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a new project.

    Example:
        lanes project add "Work"
        lanes project add "Personal" --json
    """
    try:
        project = service.create_project(name, description)

        if json_output:
            print_json(project.to_json())
        else:
            console.print(f"[green]✓[/green] Created project {project.id}: {project.name}")

    except InvalidInputError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


@project_app.command("ls")
def project_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List all projects.

    Example:
        lanes project ls
        lanes project ls --json
    """
    try:
        projects = service.list_projects()

        if json_output:
            print_json([
                {
                    "id": p.id,
                    "name": p.name,
                    "description": p.description,
                    "created_at": p.created_at,
                }
                for p in projects
            ])
            return

        if not projects:
            console.print("[dim]No projects found[/dim]")
            return

        table = Table(title="Projects")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Created", style="dim")
        for project in projects:
            created_display = project.created_at.split("T")[0] if project.created_at else ""
            table.add_row(str(project.id), project.name, created_display)
        console.print(table)
        console.print(f"\n[dim]Total: {len(projects)} project(s)[/dim]")

    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


@project_app.command("rm")
def project_rm(
    project_id: int = typer.Argument(..., help="Project ID to delete"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete a project with its columns, tasks and labels.

    Example:
        lanes project rm 2
        lanes project rm 2 --yes
    """
    try:
        project = service.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        if not yes and not json_output:
            confirm = typer.confirm(f"Delete project {project.id}: {project.name} and everything in it?")
            if not confirm:
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)

        service.delete_project(project_id)

        if json_output:
            print_json({"deleted": project_id})
        else:
            console.print(f"[green]✓[/green] Deleted project {project.id}: {project.name}")

    except ProjectNotFoundError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LanesError as e:
        error_console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)
