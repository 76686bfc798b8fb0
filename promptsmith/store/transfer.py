"""Project snapshot export and re-keyed import.

Export keeps original ids. Import assigns fresh ids to every record, rewrites
foreign keys through per-entity old->new maps and writes the whole graph in
one transaction, so a half-imported project is never visible.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..db import (
    ALL_STORES,
    STORE_ARTIFACT_SESSIONS,
    STORE_ARTIFACTS,
    STORE_PROJECTS,
    STORE_SESSIONS,
)
from ..errors import NotFoundError, ValidationError
from ..ids import create_id
from ..sanitize import (
    sanitize_history,
    sanitize_session_state,
    sanitize_variables,
    summarize_content,
)
from .artifacts import DEFAULT_ARTIFACT_PROBLEM, DEFAULT_ARTIFACT_PROMPT
from .types import ExportPayload
from .utils import now_iso

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1
IMPORTED_PROJECT_NAME = "Imported project"
IMPORTED_ARTIFACT_TITLE = "Imported artifact"


@dataclass
class ImportResult:
    project_id: str
    sessions: int
    artifacts: int
    artifact_sessions: int
    dropped_artifact_sessions: int
    id_map: dict[str, dict[str, str]]


def export_project(store: PromptStore, project_id: str) -> ExportPayload:
    with store.db.transaction(ALL_STORES, "readonly") as tx:
        project = tx.store(STORE_PROJECTS).get(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        sessions = tx.store(STORE_SESSIONS).index("project_id").get_all(project_id)
        artifacts = tx.store(STORE_ARTIFACTS).index("project_id").get_all(project_id)
        artifact_sessions = (
            tx.store(STORE_ARTIFACT_SESSIONS).index("project_id").get_all(project_id)
        )
    return {
        "version": EXPORT_VERSION,
        "exported_at": now_iso(),
        "project": project,
        "sessions": sessions,
        "artifacts": artifacts,
        "artifact_sessions": artifact_sessions,
    }


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _stripped(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _entries(raw: Mapping[str, Any], *keys: str) -> list[Mapping[str, Any]]:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            return []
        return [item for item in value if item and isinstance(item, Mapping)]
    return []


def _fk(raw: Mapping[str, Any], snake: str, camel: str) -> str | None:
    value = raw.get(snake)
    if value is None:
        value = raw.get(camel)
    return _str_or_none(value)


def _timestamp(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _last_message(history: list[Any], raw: Mapping[str, Any], max_chars: int) -> str:
    if history:
        return summarize_content(history[-1]["content"], max_chars)
    return summarize_content(_str_or_none(raw.get("last_message")), max_chars)


def import_project(store: PromptStore, payload: Any) -> ImportResult:
    if not isinstance(payload, Mapping):
        raise ValidationError("import payload must be an object")
    version = payload.get("version")
    # bool is an int subclass; True must not pass as version 1
    if version is not None and (type(version) is not int or version != EXPORT_VERSION):
        raise ValidationError(f"unsupported export version: {version!r}")
    raw_project = payload.get("project")
    if not isinstance(raw_project, Mapping):
        raise ValidationError("import payload is missing the project")

    max_chars = store.summary_max_chars
    now = now_iso()
    new_project_id = create_id()
    project: dict[str, Any] = {
        "id": new_project_id,
        "name": _stripped(raw_project.get("name")) or IMPORTED_PROJECT_NAME,
        "description": _stripped(raw_project.get("description")),
        "created_at": now,
        "updated_at": now,
        "current_session_id": None,
    }

    session_ids: dict[str, str] = {}
    sessions: list[dict[str, Any]] = []
    for raw in _entries(payload, "sessions"):
        new_id = create_id()
        original_id = _str_or_none(raw.get("id"))
        if original_id:
            session_ids[original_id] = new_id
        history = sanitize_history(raw.get("history"))
        state = sanitize_session_state(raw.get("state"))
        title = _str_or_none(raw.get("title"))
        if title is None and state is not None:
            title = state["title"]
        sessions.append(
            {
                "id": new_id,
                "project_id": new_project_id,
                "created_at": _timestamp(raw.get("created_at"), now),
                "updated_at": now,
                "history": history,
                "state": state,
                "title": title,
                "last_message": _last_message(history, raw, max_chars),
            }
        )

    artifact_ids: dict[str, str] = {}
    artifacts: list[dict[str, Any]] = []
    original_artifact_pointers: dict[str, str | None] = {}
    for raw in _entries(payload, "artifacts"):
        new_id = create_id()
        original_id = _str_or_none(raw.get("id"))
        if original_id:
            artifact_ids[original_id] = new_id
        original_artifact_pointers[new_id] = _str_or_none(raw.get("current_session_id"))
        artifacts.append(
            {
                "id": new_id,
                "project_id": new_project_id,
                "title": _stripped(raw.get("title")) or IMPORTED_ARTIFACT_TITLE,
                "problem": _stripped(raw.get("problem")) or DEFAULT_ARTIFACT_PROBLEM,
                "prompt_content": _stripped(raw.get("prompt_content")) or DEFAULT_ARTIFACT_PROMPT,
                "variables": sanitize_variables(raw.get("variables")),
                "created_at": _timestamp(raw.get("created_at"), now),
                "updated_at": now,
                "current_session_id": None,
            }
        )

    artifact_session_ids: dict[str, str] = {}
    artifact_sessions: list[dict[str, Any]] = []
    first_session_by_artifact: dict[str, str] = {}
    session_owner: dict[str, str] = {}
    dropped = 0
    for raw in _entries(payload, "artifact_sessions", "artifactSessions"):
        old_artifact_id = _fk(raw, "artifact_id", "artifactId")
        artifact_id = artifact_ids.get(old_artifact_id) if old_artifact_id else None
        if artifact_id is None:
            dropped += 1
            continue
        new_id = create_id()
        original_id = _str_or_none(raw.get("id"))
        if original_id:
            artifact_session_ids[original_id] = new_id
        first_session_by_artifact.setdefault(artifact_id, new_id)
        session_owner[new_id] = artifact_id
        history = sanitize_history(raw.get("history"))
        artifact_sessions.append(
            {
                "id": new_id,
                "project_id": new_project_id,
                "artifact_id": artifact_id,
                "created_at": _timestamp(raw.get("created_at"), now),
                "updated_at": now,
                "history": history,
                "title": _str_or_none(raw.get("title")),
                "last_message": _last_message(history, raw, max_chars),
            }
        )

    for artifact in artifacts:
        original_pointer = original_artifact_pointers.get(artifact["id"])
        remapped = artifact_session_ids.get(original_pointer) if original_pointer else None
        if remapped is None or session_owner.get(remapped) != artifact["id"]:
            remapped = first_session_by_artifact.get(artifact["id"])
        artifact["current_session_id"] = remapped

    original_pointer = _str_or_none(raw_project.get("current_session_id"))
    current_session_id = session_ids.get(original_pointer) if original_pointer else None
    if current_session_id is None and sessions:
        current_session_id = sessions[0]["id"]
    project["current_session_id"] = current_session_id

    with store.db.transaction(ALL_STORES, "readwrite") as tx:
        tx.store(STORE_PROJECTS).put(project)
        session_store = tx.store(STORE_SESSIONS)
        for session in sessions:
            session_store.put(session)
        artifact_store = tx.store(STORE_ARTIFACTS)
        for artifact in artifacts:
            artifact_store.put(artifact)
        artifact_session_store = tx.store(STORE_ARTIFACT_SESSIONS)
        for artifact_session in artifact_sessions:
            artifact_session_store.put(artifact_session)

    logger.info(
        "imported project %s (sessions=%d artifacts=%d artifact_sessions=%d dropped=%d)",
        new_project_id,
        len(sessions),
        len(artifacts),
        len(artifact_sessions),
        dropped,
    )
    original_project_id = _str_or_none(raw_project.get("id"))
    return ImportResult(
        project_id=new_project_id,
        sessions=len(sessions),
        artifacts=len(artifacts),
        artifact_sessions=len(artifact_sessions),
        dropped_artifact_sessions=dropped,
        id_map={
            "projects": {original_project_id: new_project_id} if original_project_id else {},
            "sessions": session_ids,
            "artifacts": artifact_ids,
            "artifact_sessions": artifact_session_ids,
        },
    )


def dump_export(payload: ExportPayload, output: str | Path, *, indent: int = 2) -> str:
    """Serialize ``payload`` to ``output`` ("-" for stdout) and return the JSON text."""

    text = json.dumps(payload, ensure_ascii=False, indent=indent or None)
    if str(output) == "-":
        sys.stdout.write(text + "\n")
        return text
    path = Path(output).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
    return text


def load_export(source: str | Path) -> Any:
    path = None if str(source) == "-" else Path(source).expanduser()
    if path is not None and not path.exists():
        raise NotFoundError("export file", str(path))
    try:
        text = sys.stdin.read() if path is None else path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(f"export file is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise ValidationError(f"cannot read export file: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"invalid export json: {exc}") from exc
