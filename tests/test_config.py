import json
from pathlib import Path

import pytest

from promptsmith.config import (
    get_config_path,
    get_env_overrides,
    load_config,
    read_config_file,
    write_config_file,
)
from promptsmith.store import PromptStore


def test_read_config_file_rejects_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.raises(ValueError, match="invalid config json"):
        read_config_file(config_path)


def test_read_config_file_rejects_non_object(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]")
    with pytest.raises(ValueError, match="config must be an object"):
        read_config_file(config_path)


def test_read_config_file_missing_or_blank_is_empty(tmp_path: Path) -> None:
    assert read_config_file(tmp_path / "missing.json") == {}
    blank = tmp_path / "blank.json"
    blank.write_text("  \n")
    assert read_config_file(blank) == {}


def test_write_config_file_creates_parent(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.json"
    written = write_config_file({"summary_max_chars": 40}, config_path)
    assert written == config_path
    assert json.loads(config_path.read_text()) == {"summary_max_chars": 40}


def test_get_config_path_honors_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target = tmp_path / "custom.json"
    monkeypatch.setenv("PROMPTSMITH_CONFIG", str(target))
    assert get_config_path() == target


def test_load_config_defaults_when_file_missing() -> None:
    cfg = load_config()
    assert cfg.db_path == "~/.promptsmith.sqlite"
    assert cfg.summary_max_chars == 60
    assert cfg.busy_timeout_ms == 5000
    assert cfg.export_indent == 2
    assert cfg.log_level is None


def test_load_config_reads_file_and_ignores_unknown_keys(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"db_path": str(tmp_path / "p.sqlite"), "summary_max_chars": "30", "x": 1})
    )
    cfg = load_config(config_path)
    assert cfg.db_path == str(tmp_path / "p.sqlite")
    assert cfg.summary_max_chars == 30
    assert not hasattr(cfg, "x")


def test_load_config_ignores_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{oops")
    assert load_config(config_path).summary_max_chars == 60


def test_env_overrides_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"summary_max_chars": 30, "log_level": "info"}))
    monkeypatch.setenv("PROMPTSMITH_SUMMARY_MAX_CHARS", "80")
    monkeypatch.setenv("PROMPTSMITH_DB", ":memory:")
    cfg = load_config(config_path)
    assert cfg.summary_max_chars == 80
    assert cfg.db_path == ":memory:"
    assert cfg.log_level == "info"
    assert get_env_overrides() == {"db_path": ":memory:", "summary_max_chars": "80"}


def test_invalid_int_warns_and_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMPTSMITH_BUSY_TIMEOUT_MS", "soon")
    with pytest.warns(RuntimeWarning, match="busy_timeout_ms"):
        cfg = load_config()
    assert cfg.busy_timeout_ms == 5000


def test_store_from_config_uses_summary_length(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMPTSMITH_SUMMARY_MAX_CHARS", "5")
    with PromptStore.from_config(load_config(), ":memory:") as store:
        project = store.create_project("Demo", bootstrap_session=True)
        session = store.update_session_history(
            project.id,
            project.current_session_id,
            [{"role": "user", "content": "a longer message", "timestamp": 1}],
        )
    assert session.last_message == "a lon…"
