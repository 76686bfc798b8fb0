from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..db import STORE_ARTIFACT_SESSIONS, STORE_ARTIFACTS, STORE_PROJECTS
from ..errors import NotFoundError, ValidationError
from ..ids import create_id
from ..sanitize import ArtifactVariable, sanitize_variables
from .types import Artifact
from .utils import newest_first, now_iso

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_TITLE = "Untitled artifact"
DEFAULT_ARTIFACT_PROBLEM = "Describe the problem this artifact solves."
DEFAULT_ARTIFACT_PROMPT = "Write the prompt template here."


def _owned(record: dict[str, Any] | None, project_id: str) -> bool:
    return record is not None and record.get("project_id") == project_id


def _text_or_default(value: str | None, default: str) -> str:
    if value is None:
        return default
    return value.strip() or default


def _required_text(value: str, field_name: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"artifact {field_name} is required")
    return text


def list_artifacts(store: PromptStore, project_id: str) -> list[Artifact]:
    records = store.db.with_store(
        STORE_ARTIFACTS, "readonly", lambda s: s.index("project_id").get_all(project_id)
    )
    return [Artifact.from_record(r) for r in newest_first(records)]


def get_artifact(store: PromptStore, project_id: str, artifact_id: str) -> Artifact | None:
    record = store.db.with_store(STORE_ARTIFACTS, "readonly", lambda s: s.get(artifact_id))
    return Artifact.from_record(record) if _owned(record, project_id) else None


def create_artifact(
    store: PromptStore,
    project_id: str,
    *,
    title: str | None = None,
    problem: str | None = None,
    prompt_content: str | None = None,
    variables: list[ArtifactVariable] | None = None,
) -> Artifact:
    now = now_iso()
    record = {
        "id": create_id(),
        "project_id": project_id,
        "title": _text_or_default(title, DEFAULT_ARTIFACT_TITLE),
        "problem": _text_or_default(problem, DEFAULT_ARTIFACT_PROBLEM),
        "prompt_content": _text_or_default(prompt_content, DEFAULT_ARTIFACT_PROMPT),
        "variables": sanitize_variables(variables or []),
        "created_at": now,
        "updated_at": now,
        "current_session_id": None,
    }
    with store.db.transaction([STORE_PROJECTS, STORE_ARTIFACTS], "readwrite") as tx:
        if tx.store(STORE_PROJECTS).get(project_id) is None:
            raise NotFoundError("project", project_id)
        tx.store(STORE_ARTIFACTS).put(record)
    logger.debug("created artifact %s in project %s", record["id"], project_id)
    return Artifact.from_record(record)


def update_artifact(
    store: PromptStore,
    project_id: str,
    artifact_id: str,
    *,
    title: str,
    problem: str,
    prompt_content: str,
    variables: list[ArtifactVariable] | None = None,
) -> Artifact:
    patch = {
        "title": _required_text(title, "title"),
        "problem": _required_text(problem, "problem"),
        "prompt_content": _required_text(prompt_content, "prompt_content"),
        "variables": sanitize_variables(variables or []),
    }
    with store.db.transaction(STORE_ARTIFACTS, "readwrite") as tx:
        artifacts = tx.store(STORE_ARTIFACTS)
        record = artifacts.get(artifact_id)
        if record is None or not _owned(record, project_id):
            raise NotFoundError("artifact", artifact_id)
        record.update(patch)
        record["updated_at"] = now_iso()
        artifacts.put(record)
    return Artifact.from_record(record)


def delete_artifact(store: PromptStore, project_id: str, artifact_id: str) -> bool:
    """Delete an artifact together with every session recorded against it."""

    with store.db.transaction([STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS], "readwrite") as tx:
        artifacts = tx.store(STORE_ARTIFACTS)
        if not _owned(artifacts.get(artifact_id), project_id):
            return False
        artifacts.delete(artifact_id)
        sessions = tx.store(STORE_ARTIFACT_SESSIONS)
        keys = sessions.index("artifact_id").get_all_keys(artifact_id)
        for key in keys:
            sessions.delete(key)
    logger.debug("deleted artifact %s with %d sessions", artifact_id, len(keys))
    return True
