import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from promptsmith import __version__
from promptsmith.cli import app
from promptsmith.store import PromptStore

runner = CliRunner()


def _db(tmp_path: Path) -> str:
    return str(tmp_path / "promptsmith.sqlite")


def _only_project(db_path: str):
    with PromptStore(db_path) as store:
        projects = store.list_projects()
    assert len(projects) == 1
    return projects[0]


def test_root_help_lists_command_groups() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("project", "session", "artifact", "export", "import"):
        assert name in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_project_create_and_list(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    result = runner.invoke(app, ["project", "create", "Demo", "--db-path", db_path])
    assert result.exit_code == 0, result.stdout
    project = _only_project(db_path)
    assert project.name == "Demo"
    assert project.id in result.stdout
    assert project.current_session_id is not None

    listed = runner.invoke(app, ["project", "list", "--db-path", db_path])
    assert listed.exit_code == 0
    assert "Demo" in listed.stdout


def test_project_create_without_session(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    result = runner.invoke(app, ["project", "create", "Demo", "--no-session", "--db-path", db_path])
    assert result.exit_code == 0
    assert _only_project(db_path).current_session_id is None


def test_blank_project_name_exits_with_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["project", "create", "  ", "--db-path", _db(tmp_path)])
    assert result.exit_code == 1
    assert "project name is required" in result.stdout


def test_session_new_for_missing_project_exits_with_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["session", "new", "missing", "--db-path", _db(tmp_path)])
    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_session_commands_move_current_pointer(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    runner.invoke(app, ["project", "create", "Demo", "--db-path", db_path])
    project = _only_project(db_path)
    first = project.current_session_id

    result = runner.invoke(app, ["session", "new", project.id, "--db-path", db_path])
    assert result.exit_code == 0
    assert _only_project(db_path).current_session_id != first

    result = runner.invoke(app, ["session", "select", project.id, first, "--db-path", db_path])
    assert result.exit_code == 0
    assert _only_project(db_path).current_session_id == first

    shown = runner.invoke(app, ["session", "show", project.id, first, "--db-path", db_path])
    assert shown.exit_code == 0
    assert json.loads(shown.stdout)["id"] == first

    result = runner.invoke(app, ["session", "delete", project.id, first, "--db-path", db_path])
    assert result.exit_code == 0
    assert _only_project(db_path).current_session_id not in (None, first)


def test_artifact_create_from_files(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    runner.invoke(app, ["project", "create", "Demo", "--no-session", "--db-path", db_path])
    project = _only_project(db_path)
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("Write a haiku about {{topic}}", encoding="utf-8")
    variables_file = tmp_path / "vars.json"
    variables_file.write_text(json.dumps([{"key": "topic"}, {"key": "bad key"}]))

    result = runner.invoke(
        app,
        [
            "artifact",
            "create",
            project.id,
            "--title",
            "Haiku",
            "--prompt-file",
            str(prompt_file),
            "--variables-file",
            str(variables_file),
            "--db-path",
            db_path,
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert "Skipped 1 invalid variable" in result.stdout

    with PromptStore(db_path) as store:
        artifact = store.list_artifacts(project.id)[0]
    assert artifact.prompt_content == "Write a haiku about {{topic}}"
    assert [v["key"] for v in artifact.variables] == ["topic"]

    shown = runner.invoke(
        app, ["artifact", "show", project.id, artifact.id, "--db-path", db_path]
    )
    assert shown.exit_code == 0
    assert json.loads(shown.stdout)["title"] == "Haiku"


def test_export_import_roundtrip(tmp_path: Path) -> None:
    source_db = _db(tmp_path)
    runner.invoke(app, ["project", "create", "Demo", "--db-path", source_db])
    project = _only_project(source_db)
    export_file = tmp_path / "export.json"

    result = runner.invoke(
        app, ["export", project.id, "-o", str(export_file), "--db-path", source_db]
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(export_file.read_text())
    assert payload["project"]["id"] == project.id

    dest_db = str(tmp_path / "dest.sqlite")
    preview = runner.invoke(app, ["import", str(export_file), "--dry-run", "--db-path", dest_db])
    assert preview.exit_code == 0
    assert "Dry run" in preview.stdout
    assert not Path(dest_db).exists()

    result = runner.invoke(app, ["import", str(export_file), "--db-path", dest_db])
    assert result.exit_code == 0, result.stdout
    imported = _only_project(dest_db)
    assert imported.name == "Demo"
    assert imported.id != project.id


def test_export_to_stdout(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    runner.invoke(app, ["project", "create", "Demo", "--db-path", db_path])
    project = _only_project(db_path)
    result = runner.invoke(app, ["export", project.id, "-o", "-", "--db-path", db_path])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["version"] == 1


def test_import_rejects_unsupported_version(tmp_path: Path) -> None:
    export_file = tmp_path / "future.json"
    export_file.write_text(json.dumps({"version": 9, "project": {"name": "Future"}}))
    result = runner.invoke(app, ["import", str(export_file), "--db-path", _db(tmp_path)])
    assert result.exit_code == 1
    assert "unsupported export version" in result.stdout


def test_project_delete_with_yes(tmp_path: Path) -> None:
    db_path = _db(tmp_path)
    runner.invoke(app, ["project", "create", "Demo", "--db-path", db_path])
    project = _only_project(db_path)
    result = runner.invoke(app, ["project", "delete", project.id, "--yes", "--db-path", db_path])
    assert result.exit_code == 0
    with PromptStore(db_path) as store:
        assert store.list_projects() == []


def test_config_set_and_show(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "summary_max_chars", "40"])
    assert result.exit_code == 0
    shown = runner.invoke(app, ["config", "show"])
    assert json.loads(shown.stdout) == {"summary_max_chars": "40"}

    unknown = runner.invoke(app, ["config", "set", "nope", "1"])
    assert unknown.exit_code == 1


def test_import_rejects_non_utf8_file(tmp_path: Path) -> None:
    export_file = tmp_path / "latin1.json"
    export_file.write_bytes(b'{"project": {"name": "\xff\xfe"}}')
    result = runner.invoke(app, ["import", str(export_file), "--db-path", _db(tmp_path)])
    assert result.exit_code == 1
    assert "not valid UTF-8" in result.stdout


def test_config_show_reports_env_overrides(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("PROMPTSMITH_DB", str(tmp_path / "env.sqlite"))
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "db_path is overridden by PROMPTSMITH_DB" in result.stdout
