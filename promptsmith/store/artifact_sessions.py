from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..db import STORE_ARTIFACT_SESSIONS, STORE_ARTIFACTS, Transaction
from ..errors import NotFoundError
from ..ids import create_id
from ..sanitize import HistoryItem, sanitize_history, summarize_history
from .types import ArtifactSession
from .utils import newest_first, now_iso, repoint_parent

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _owned(record: dict[str, Any] | None, project_id: str, artifact_id: str) -> bool:
    return (
        record is not None
        and record.get("project_id") == project_id
        and record.get("artifact_id") == artifact_id
    )


def _artifact_owned(record: dict[str, Any] | None, project_id: str) -> bool:
    return record is not None and record.get("project_id") == project_id


def insert_artifact_session(tx: Transaction, artifact: dict[str, Any]) -> dict[str, Any]:
    """Insert an empty artifact session and point the artifact at it."""

    now = now_iso()
    session = {
        "id": create_id(),
        "project_id": artifact["project_id"],
        "artifact_id": artifact["id"],
        "created_at": now,
        "updated_at": now,
        "history": [],
        "title": None,
        "last_message": "",
    }
    tx.store(STORE_ARTIFACT_SESSIONS).put(session)
    tx.store(STORE_ARTIFACTS).put(
        {**artifact, "current_session_id": session["id"], "updated_at": now}
    )
    return session


def list_artifact_sessions(
    store: PromptStore, project_id: str, artifact_id: str
) -> list[ArtifactSession]:
    records = store.db.with_store(
        STORE_ARTIFACT_SESSIONS,
        "readonly",
        lambda s: s.index("artifact_id").get_all(artifact_id),
    )
    return [
        ArtifactSession.from_record(r)
        for r in newest_first(records)
        if r.get("project_id") == project_id
    ]


def get_artifact_session(
    store: PromptStore, project_id: str, artifact_id: str, session_id: str
) -> ArtifactSession | None:
    record = store.db.with_store(
        STORE_ARTIFACT_SESSIONS, "readonly", lambda s: s.get(session_id)
    )
    if not _owned(record, project_id, artifact_id):
        return None
    return ArtifactSession.from_record(record)


def create_artifact_session(
    store: PromptStore, project_id: str, artifact_id: str
) -> ArtifactSession:
    with store.db.transaction([STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS], "readwrite") as tx:
        artifact = tx.store(STORE_ARTIFACTS).get(artifact_id)
        if artifact is None or not _artifact_owned(artifact, project_id):
            raise NotFoundError("artifact", artifact_id)
        record = insert_artifact_session(tx, artifact)
    logger.debug("created artifact session %s for artifact %s", record["id"], artifact_id)
    return ArtifactSession.from_record(record)


def select_artifact_session(
    store: PromptStore, project_id: str, artifact_id: str, session_id: str
) -> ArtifactSession | None:
    with store.db.transaction([STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS], "readwrite") as tx:
        record = tx.store(STORE_ARTIFACT_SESSIONS).get(session_id)
        if not _owned(record, project_id, artifact_id):
            return None
        artifacts = tx.store(STORE_ARTIFACTS)
        artifact = artifacts.get(artifact_id)
        if artifact is None or not _artifact_owned(artifact, project_id):
            return None
        if artifact.get("current_session_id") != session_id:
            artifacts.put({**artifact, "current_session_id": session_id, "updated_at": now_iso()})
    return ArtifactSession.from_record(record)


def update_artifact_session(
    store: PromptStore,
    project_id: str,
    artifact_id: str,
    session_id: str,
    *,
    history: list[HistoryItem] | None = _UNSET,
    title: str | None = _UNSET,
) -> ArtifactSession | None:
    with store.db.transaction(STORE_ARTIFACT_SESSIONS, "readwrite") as tx:
        sessions = tx.store(STORE_ARTIFACT_SESSIONS)
        record = sessions.get(session_id)
        if record is None or not _owned(record, project_id, artifact_id):
            return None
        if history is not _UNSET:
            record["history"] = sanitize_history(history or [])
            record["last_message"] = summarize_history(
                record["history"], store.summary_max_chars
            )
        if title is not _UNSET:
            record["title"] = title
        record["updated_at"] = now_iso()
        sessions.put(record)
    return ArtifactSession.from_record(record)


def update_artifact_session_history(
    store: PromptStore,
    project_id: str,
    artifact_id: str,
    session_id: str,
    history: list[HistoryItem],
) -> ArtifactSession | None:
    return update_artifact_session(store, project_id, artifact_id, session_id, history=history)


def update_artifact_session_title(
    store: PromptStore, project_id: str, artifact_id: str, session_id: str, title: str
) -> ArtifactSession | None:
    return update_artifact_session(store, project_id, artifact_id, session_id, title=title)


def delete_artifact_session(
    store: PromptStore, project_id: str, artifact_id: str, session_id: str
) -> bool:
    with store.db.transaction([STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS], "readwrite") as tx:
        sessions = tx.store(STORE_ARTIFACT_SESSIONS)
        if not _owned(sessions.get(session_id), project_id, artifact_id):
            return False
        sessions.delete(session_id)
        artifacts = tx.store(STORE_ARTIFACTS)
        artifact = artifacts.get(artifact_id)
        if artifact is not None:
            repoint_parent(artifacts, artifact, sessions.index("artifact_id"), session_id)
    logger.debug("deleted artifact session %s from artifact %s", session_id, artifact_id)
    return True
