from __future__ import annotations

import json
from dataclasses import asdict

import typer
from rich import print

from .common import store_errors


def list_sessions_cmd(*, store_from_path, db_path: str | None, project_id: str) -> None:
    """List a project's sessions, marking the current one."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            project = store.get_project(project_id)
            if project is None:
                print(f"[red]Project {project_id} not found[/red]")
                raise typer.Exit(code=1)
            sessions = store.list_sessions(project_id)
        for session in sessions:
            marker = "*" if session.id == project.current_session_id else " "
            title = session.title or "(untitled)"
            print(f"{marker} {session.id} {title} {session.last_message or ''}")
    finally:
        store.close()


def new_session_cmd(*, store_from_path, db_path: str | None, project_id: str) -> None:
    """Start a new session and make it current."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            session = store.create_session(project_id)
        print(f"[green]✓ Created session {session.id}[/green]")
    finally:
        store.close()


def select_session_cmd(
    *, store_from_path, db_path: str | None, project_id: str, session_id: str
) -> None:
    """Make a session the project's current one."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            session = store.select_session(project_id, session_id)
        if session is None:
            print(f"[red]Session {session_id} not found in project {project_id}[/red]")
            raise typer.Exit(code=1)
        print(f"[green]✓ Current session is {session.id}[/green]")
    finally:
        store.close()


def show_session_cmd(
    *, store_from_path, db_path: str | None, project_id: str, session_id: str
) -> None:
    """Print a session's history and state as JSON."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            session = store.get_session(project_id, session_id)
        if session is None:
            print(f"[red]Session {session_id} not found in project {project_id}[/red]")
            raise typer.Exit(code=1)
        typer.echo(json.dumps(asdict(session), ensure_ascii=False, indent=2))
    finally:
        store.close()


def delete_session_cmd(
    *, store_from_path, db_path: str | None, project_id: str, session_id: str
) -> None:
    """Delete a session; the current pointer moves to the newest remaining one."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            deleted = store.delete_session(project_id, session_id)
            project = store.get_project(project_id)
        if not deleted:
            print(f"[yellow]Session {session_id} not found; nothing deleted[/yellow]")
            return
        print(f"[green]✓ Deleted session {session_id}[/green]")
        if project is not None:
            print(f"  Current session: {project.current_session_id or '-'}")
    finally:
        store.close()
