from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from promptsmith.store import PromptStore


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PROMPTSMITH_CONFIG", str(tmp_path / "config" / "config.json"))
    for var in (
        "PROMPTSMITH_DB",
        "PROMPTSMITH_SUMMARY_MAX_CHARS",
        "PROMPTSMITH_BUSY_TIMEOUT_MS",
        "PROMPTSMITH_EXPORT_INDENT",
        "PROMPTSMITH_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def store() -> Iterator[PromptStore]:
    prompt_store = PromptStore(":memory:")
    try:
        yield prompt_store
    finally:
        prompt_store.close()
