from __future__ import annotations

import typer
from rich import print

from .common import store_errors


def list_projects_cmd(*, store_from_path, db_path: str | None) -> None:
    """List projects, newest first."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            projects = store.list_projects()
        if not projects:
            print("[yellow]No projects yet[/yellow]")
            return
        for project in projects:
            description = f" - {project.description}" if project.description else ""
            print(f"[bold]{project.id}[/bold] {project.name}{description} ({project.created_at})")
    finally:
        store.close()


def create_project_cmd(
    *,
    store_from_path,
    db_path: str | None,
    name: str,
    description: str | None,
    bootstrap_session: bool,
) -> None:
    """Create a project."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            project = store.create_project(
                name, description, bootstrap_session=bootstrap_session
            )
        print(f"[green]✓ Created project {project.name}[/green]")
        print(project.id)
        if project.current_session_id:
            print(f"  Session: {project.current_session_id}")
    finally:
        store.close()


def show_project_cmd(*, store_from_path, db_path: str | None, project_id: str) -> None:
    """Show a project with its sessions and artifacts."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            project = store.get_project(project_id)
            if project is None:
                print(f"[red]Project {project_id} not found[/red]")
                raise typer.Exit(code=1)
            context = store.load_project_context(project_id)
            artifacts = store.list_artifacts(project_id)
        print(f"[bold]{project.name}[/bold] ({project.id})")
        if project.description:
            print(project.description)
        print(f"- Sessions: {len(context.sessions)}")
        for summary in context.sessions:
            marker = "*" if summary["id"] == context.current_session_id else " "
            title = summary["title"] or "(untitled)"
            print(f"  {marker} {summary['id']} {title} {summary['last_message']}")
        print(f"- Artifacts: {len(artifacts)}")
        for artifact in artifacts:
            print(f"    {artifact.id} {artifact.title} ({len(artifact.variables)} variables)")
    finally:
        store.close()


def rename_project_cmd(
    *,
    store_from_path,
    db_path: str | None,
    project_id: str,
    name: str,
    description: str | None,
) -> None:
    """Rename a project or change its description."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            project = store.update_project(project_id, name=name, description=description)
        if project is None:
            print(f"[yellow]Project {project_id} not found; nothing changed[/yellow]")
            return
        print(f"[green]✓ Updated project {project.name}[/green]")
    finally:
        store.close()


def delete_project_cmd(*, store_from_path, db_path: str | None, project_id: str) -> None:
    """Delete a project and everything it owns."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            deleted = store.delete_project(project_id)
        if not deleted:
            print(f"[yellow]Project {project_id} not found; nothing deleted[/yellow]")
            return
        print(f"[green]✓ Deleted project {project_id}[/green]")
    finally:
        store.close()
