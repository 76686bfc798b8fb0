from __future__ import annotations

import json

import typer
from rich import print

from . import __version__
from .commands.artifact_cmds import (
    create_artifact_cmd,
    delete_artifact_cmd,
    delete_artifact_session_cmd,
    list_artifact_sessions_cmd,
    list_artifacts_cmd,
    new_artifact_session_cmd,
    select_artifact_session_cmd,
    show_artifact_cmd,
)
from .commands.common import (
    configure_logging,
    read_config_or_exit,
    store_from_path,
    write_config_or_exit,
)
from .commands.import_export_cmds import export_project_cmd, import_project_cmd
from .commands.project_cmds import (
    create_project_cmd,
    delete_project_cmd,
    list_projects_cmd,
    rename_project_cmd,
    show_project_cmd,
)
from .commands.session_cmds import (
    delete_session_cmd,
    list_sessions_cmd,
    new_session_cmd,
    select_session_cmd,
    show_session_cmd,
)
from .config import (
    CONFIG_ENV_OVERRIDES,
    PromptSmithConfig,
    get_config_path,
    get_env_overrides,
)

app = typer.Typer(help="promptsmith: local projects, sessions and prompt artifacts")
project_app = typer.Typer(help="Manage projects")
session_app = typer.Typer(help="Manage wizard sessions within a project")
artifact_app = typer.Typer(help="Manage prompt artifacts")
artifact_session_app = typer.Typer(help="Manage sessions run against an artifact")
config_app = typer.Typer(help="Inspect and edit the config file")
app.add_typer(project_app, name="project")
app.add_typer(session_app, name="session")
app.add_typer(artifact_app, name="artifact")
app.add_typer(artifact_session_app, name="artifact-session")
app.add_typer(config_app, name="config")

DB_PATH_HELP = "Path to SQLite database"


def _store(db_path: str | None):
    return store_from_path(db_path)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose)


@project_app.command("list")
def project_list(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """List projects, newest first."""
    list_projects_cmd(store_from_path=_store, db_path=db_path)


@project_app.command("create")
def project_create(
    name: str,
    description: str = typer.Option(None, help="Optional description"),
    bootstrap_session: bool = typer.Option(
        True, "--bootstrap-session/--no-session", help="Create the first session too"
    ),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Create a project."""
    create_project_cmd(
        store_from_path=_store,
        db_path=db_path,
        name=name,
        description=description,
        bootstrap_session=bootstrap_session,
    )


@project_app.command("show")
def project_show(
    project_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Show a project with its sessions and artifacts."""
    show_project_cmd(store_from_path=_store, db_path=db_path, project_id=project_id)


@project_app.command("rename")
def project_rename(
    project_id: str,
    name: str,
    description: str = typer.Option(None, help="New description"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Rename a project."""
    rename_project_cmd(
        store_from_path=_store,
        db_path=db_path,
        project_id=project_id,
        name=name,
        description=description,
    )


@project_app.command("delete")
def project_delete(
    project_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Delete a project with its sessions, artifacts and artifact sessions."""
    if not yes:
        typer.confirm(f"Delete project {project_id} and everything in it?", abort=True)
    delete_project_cmd(store_from_path=_store, db_path=db_path, project_id=project_id)


@session_app.command("list")
def session_list(project_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """List sessions (* marks the current one)."""
    list_sessions_cmd(store_from_path=_store, db_path=db_path, project_id=project_id)


@session_app.command("new")
def session_new(project_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Start a new session and make it current."""
    new_session_cmd(store_from_path=_store, db_path=db_path, project_id=project_id)


@session_app.command("select")
def session_select(
    project_id: str, session_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Make a session current."""
    select_session_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, session_id=session_id
    )


@session_app.command("show")
def session_show(
    project_id: str, session_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Print a session as JSON."""
    show_session_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, session_id=session_id
    )


@session_app.command("delete")
def session_delete(
    project_id: str, session_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Delete a session."""
    delete_session_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, session_id=session_id
    )


@artifact_app.command("list")
def artifact_list(project_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """List artifacts in a project."""
    list_artifacts_cmd(store_from_path=_store, db_path=db_path, project_id=project_id)


@artifact_app.command("create")
def artifact_create(
    project_id: str,
    title: str = typer.Option(None, help="Artifact title"),
    problem: str = typer.Option(None, help="Problem the prompt solves"),
    prompt: str = typer.Option(None, help="Prompt template text"),
    prompt_file: str = typer.Option(None, help="Read the prompt template from a file"),
    variables_file: str = typer.Option(None, help="JSON array of variable definitions"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Save a prompt template as an artifact."""
    create_artifact_cmd(
        store_from_path=_store,
        db_path=db_path,
        project_id=project_id,
        title=title,
        problem=problem,
        prompt=prompt,
        prompt_file=prompt_file,
        variables_file=variables_file,
    )


@artifact_app.command("show")
def artifact_show(
    project_id: str, artifact_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Print an artifact as JSON."""
    show_artifact_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, artifact_id=artifact_id
    )


@artifact_app.command("delete")
def artifact_delete(
    project_id: str, artifact_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Delete an artifact and its sessions."""
    delete_artifact_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, artifact_id=artifact_id
    )


@artifact_session_app.command("list")
def artifact_session_list(
    project_id: str, artifact_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """List sessions of an artifact (* marks the current one)."""
    list_artifact_sessions_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, artifact_id=artifact_id
    )


@artifact_session_app.command("new")
def artifact_session_new(
    project_id: str, artifact_id: str, db_path: str = typer.Option(None, help=DB_PATH_HELP)
) -> None:
    """Start a new artifact session and make it current."""
    new_artifact_session_cmd(
        store_from_path=_store, db_path=db_path, project_id=project_id, artifact_id=artifact_id
    )


@artifact_session_app.command("select")
def artifact_session_select(
    project_id: str,
    artifact_id: str,
    session_id: str,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Make an artifact session current."""
    select_artifact_session_cmd(
        store_from_path=_store,
        db_path=db_path,
        project_id=project_id,
        artifact_id=artifact_id,
        session_id=session_id,
    )


@artifact_session_app.command("delete")
def artifact_session_delete(
    project_id: str,
    artifact_id: str,
    session_id: str,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Delete an artifact session."""
    delete_artifact_session_cmd(
        store_from_path=_store,
        db_path=db_path,
        project_id=project_id,
        artifact_id=artifact_id,
        session_id=session_id,
    )


@app.command("export")
def export_project(
    project_id: str,
    output: str = typer.Option(
        "promptsmith-export.json", "--output", "-o", help="Output file path (use '-' for stdout)"
    ),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Export a project to a portable JSON snapshot."""
    export_project_cmd(store_from_path=_store, db_path=db_path, project_id=project_id, output=output)


@app.command("import")
def import_project(
    input_file: str = typer.Argument(..., help="Export file to import (use '-' for stdin)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without importing"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Import a snapshot as a new project with fresh ids."""
    import_project_cmd(store_from_path=_store, db_path=db_path, input_file=input_file, dry_run=dry_run)


@config_app.command("show")
def config_show() -> None:
    """Print the config file contents."""
    data = read_config_or_exit()
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))
    for key in get_env_overrides():
        print(f"[yellow]{key} is overridden by {CONFIG_ENV_OVERRIDES[key]}[/yellow]")


@config_app.command("set")
def config_set(key: str, value: str) -> None:
    """Set a config key in the config file."""
    if key not in PromptSmithConfig.__dataclass_fields__:
        print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(code=1)
    data = read_config_or_exit()
    data[key] = value
    write_config_or_exit(data)
    print(f"[green]✓ Set {key} in {get_config_path()}[/green]")


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)
