from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich import print

from .common import store_errors


def _read_variables(variables_file: str | None) -> list[Any] | None:
    if not variables_file:
        return None
    path = Path(variables_file).expanduser()
    if not path.exists():
        print(f"[red]Variables file not found: {path}[/red]")
        raise typer.Exit(code=1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"[red]Invalid JSON in {path}: {exc}[/red]")
        raise typer.Exit(code=1) from None
    if not isinstance(data, list):
        print("[red]Variables file must contain a JSON array[/red]")
        raise typer.Exit(code=1)
    return data


def list_artifacts_cmd(*, store_from_path, db_path: str | None, project_id: str) -> None:
    """List a project's artifacts, newest first."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            artifacts = store.list_artifacts(project_id)
        if not artifacts:
            print("[yellow]No artifacts[/yellow]")
            return
        for artifact in artifacts:
            print(f"[bold]{artifact.id}[/bold] {artifact.title} ({len(artifact.variables)} variables)")
    finally:
        store.close()


def create_artifact_cmd(
    *,
    store_from_path,
    db_path: str | None,
    project_id: str,
    title: str | None,
    problem: str | None,
    prompt: str | None,
    prompt_file: str | None,
    variables_file: str | None,
) -> None:
    """Save a prompt template as an artifact."""

    if prompt_file:
        prompt = Path(prompt_file).expanduser().read_text(encoding="utf-8")
    variables = _read_variables(variables_file)
    store = store_from_path(db_path)
    try:
        with store_errors():
            artifact = store.create_artifact(
                project_id,
                title=title,
                problem=problem,
                prompt_content=prompt,
                variables=variables,
            )
        print(f"[green]✓ Created artifact {artifact.title}[/green]")
        print(artifact.id)
        if variables is not None and len(artifact.variables) != len(variables):
            dropped = len(variables) - len(artifact.variables)
            print(f"[yellow]Skipped {dropped} invalid variable(s)[/yellow]")
    finally:
        store.close()


def show_artifact_cmd(
    *, store_from_path, db_path: str | None, project_id: str, artifact_id: str
) -> None:
    """Print an artifact and its sessions as JSON."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            artifact = store.get_artifact(project_id, artifact_id)
            if artifact is None:
                print(f"[red]Artifact {artifact_id} not found in project {project_id}[/red]")
                raise typer.Exit(code=1)
            sessions = store.list_artifact_sessions(project_id, artifact_id)
        typer.echo(
            json.dumps(
                {
                    "id": artifact.id,
                    "title": artifact.title,
                    "problem": artifact.problem,
                    "prompt_content": artifact.prompt_content,
                    "variables": artifact.variables,
                    "current_session_id": artifact.current_session_id,
                    "sessions": [s.id for s in sessions],
                },
                ensure_ascii=False,
                indent=2,
            )
        )
    finally:
        store.close()


def delete_artifact_cmd(
    *, store_from_path, db_path: str | None, project_id: str, artifact_id: str
) -> None:
    """Delete an artifact and its sessions."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            deleted = store.delete_artifact(project_id, artifact_id)
        if not deleted:
            print(f"[yellow]Artifact {artifact_id} not found; nothing deleted[/yellow]")
            return
        print(f"[green]✓ Deleted artifact {artifact_id}[/green]")
    finally:
        store.close()


def list_artifact_sessions_cmd(
    *, store_from_path, db_path: str | None, project_id: str, artifact_id: str
) -> None:
    """List an artifact's sessions, marking the current one."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            artifact = store.get_artifact(project_id, artifact_id)
            if artifact is None:
                print(f"[red]Artifact {artifact_id} not found in project {project_id}[/red]")
                raise typer.Exit(code=1)
            sessions = store.list_artifact_sessions(project_id, artifact_id)
        for session in sessions:
            marker = "*" if session.id == artifact.current_session_id else " "
            print(f"{marker} {session.id} {session.title or '(untitled)'} {session.last_message or ''}")
    finally:
        store.close()


def new_artifact_session_cmd(
    *, store_from_path, db_path: str | None, project_id: str, artifact_id: str
) -> None:
    """Start a new session against an artifact."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            session = store.create_artifact_session(project_id, artifact_id)
        print(f"[green]✓ Created artifact session {session.id}[/green]")
    finally:
        store.close()


def select_artifact_session_cmd(
    *,
    store_from_path,
    db_path: str | None,
    project_id: str,
    artifact_id: str,
    session_id: str,
) -> None:
    """Make an artifact session current."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            session = store.select_artifact_session(project_id, artifact_id, session_id)
        if session is None:
            print(f"[red]Artifact session {session_id} not found[/red]")
            raise typer.Exit(code=1)
        print(f"[green]✓ Current artifact session is {session.id}[/green]")
    finally:
        store.close()


def delete_artifact_session_cmd(
    *,
    store_from_path,
    db_path: str | None,
    project_id: str,
    artifact_id: str,
    session_id: str,
) -> None:
    """Delete an artifact session."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            deleted = store.delete_artifact_session(project_id, artifact_id, session_id)
        if not deleted:
            print(f"[yellow]Artifact session {session_id} not found; nothing deleted[/yellow]")
            return
        print(f"[green]✓ Deleted artifact session {session_id}[/green]")
    finally:
        store.close()
