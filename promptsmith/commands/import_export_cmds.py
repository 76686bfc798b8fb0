from __future__ import annotations

from collections.abc import Mapping

import typer
from rich import print

from ..config import load_config
from ..store import EXPORT_VERSION, dump_export, load_export
from .common import store_errors


def export_project_cmd(
    *,
    store_from_path,
    db_path: str | None,
    project_id: str,
    output: str,
) -> None:
    """Export a project's full record graph to a JSON file."""

    store = store_from_path(db_path)
    try:
        with store_errors():
            payload = store.export_project(project_id)
        text = dump_export(payload, output, indent=load_config().export_indent)
        if output == "-":
            return
        size_kb = len(text.encode("utf-8")) / 1024
        print(f"[green]✓ Exported to {output}[/green]")
        print(f"  Size: {size_kb:.1f} KB")
        print(f"  Sessions: {len(payload['sessions'])}")
        print(f"  Artifacts: {len(payload['artifacts'])}")
        print(f"  Artifact sessions: {len(payload['artifact_sessions'])}")
    finally:
        store.close()


def import_project_cmd(
    *,
    store_from_path,
    db_path: str | None,
    input_file: str,
    dry_run: bool,
) -> None:
    """Import an exported project as a new project with fresh ids."""

    with store_errors():
        import_data = load_export(input_file)
    if not isinstance(import_data, Mapping):
        print("[red]Import file must contain a JSON object[/red]")
        raise typer.Exit(code=1)

    raw_project = import_data.get("project")
    project_name = raw_project.get("name") if isinstance(raw_project, Mapping) else None
    artifact_sessions = import_data.get("artifact_sessions", import_data.get("artifactSessions"))

    def _count(value: object) -> int:
        return len(value) if isinstance(value, list) else 0

    print("[bold]Import Preview[/bold]")
    print(f"- Export version: {import_data.get('version', EXPORT_VERSION)}")
    print(f"- Exported at: {import_data.get('exported_at')}")
    print(f"- Project: {project_name}")
    print(f"- Sessions: {_count(import_data.get('sessions'))}")
    print(f"- Artifacts: {_count(import_data.get('artifacts'))}")
    print(f"- Artifact sessions: {_count(artifact_sessions)}")

    if dry_run:
        print("\n[yellow]Dry run - no data will be imported[/yellow]")
        return

    store = store_from_path(db_path)
    try:
        with store_errors():
            result = store.import_project(import_data)
        print(f"\n[green]✓ Imported project {result.project_id}[/green]")
        print(f"  Sessions: {result.sessions}")
        print(f"  Artifacts: {result.artifacts}")
        print(f"  Artifact sessions: {result.artifact_sessions}")
        if result.dropped_artifact_sessions:
            print(
                f"[yellow]  Dropped {result.dropped_artifact_sessions} artifact session(s) "
                "with unknown artifacts[/yellow]"
            )
    finally:
        store.close()
