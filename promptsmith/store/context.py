"""Read models assembled from the repositories for the UI layer.

Each loader runs in a single transaction. The only write any of them performs
is repairing the parent's ``current_session_id`` (or lazily creating the
first child); history and state are never touched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..db import STORE_ARTIFACT_SESSIONS, STORE_ARTIFACTS, STORE_PROJECTS, STORE_SESSIONS
from .artifact_sessions import insert_artifact_session
from .sessions import insert_session
from .types import Artifact, ArtifactContext, ProjectContext, SessionContext
from .utils import newest_first, now_iso, resolve_current_child, summarize_record

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)


def load_project_context(store: PromptStore, project_id: str) -> ProjectContext:
    with store.db.transaction([STORE_PROJECTS, STORE_SESSIONS], "readwrite") as tx:
        projects = tx.store(STORE_PROJECTS)
        project = projects.get(project_id)
        if project is None:
            return ProjectContext()

        sessions = newest_first(tx.store(STORE_SESSIONS).index("project_id").get_all(project_id))
        pointer = project.get("current_session_id")
        current_id = resolve_current_child(pointer, sessions)
        if current_id is None:
            created = insert_session(tx, project)
            sessions = [created]
            current_id = created["id"]
            logger.debug("bootstrapped session %s for project %s", current_id, project_id)
        elif current_id != pointer:
            projects.put({**project, "current_session_id": current_id, "updated_at": now_iso()})
            logger.info(
                "repaired project %s current session %s -> %s", project_id, pointer, current_id
            )

    current = next(s for s in sessions if s["id"] == current_id)
    return ProjectContext(
        sessions=[summarize_record(s, store.summary_max_chars) for s in sessions],
        history=list(current.get("history") or []),
        state=current.get("state"),
        current_session_id=current_id,
    )


def load_session_context(store: PromptStore, project_id: str, session_id: str) -> SessionContext:
    session = store.select_session(project_id, session_id)
    if session is None:
        return SessionContext()
    return SessionContext(history=session.history, state=session.state)


def load_artifact_context(store: PromptStore, project_id: str, artifact_id: str) -> ArtifactContext:
    with store.db.transaction([STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS], "readwrite") as tx:
        artifacts = tx.store(STORE_ARTIFACTS)
        artifact = artifacts.get(artifact_id)
        if artifact is None or artifact.get("project_id") != project_id:
            return ArtifactContext()

        sessions = newest_first(
            tx.store(STORE_ARTIFACT_SESSIONS).index("artifact_id").get_all(artifact_id)
        )
        pointer = artifact.get("current_session_id")
        current_id = resolve_current_child(pointer, sessions)
        if current_id is None:
            created = insert_artifact_session(tx, artifact)
            artifact = artifacts.get(artifact_id) or artifact
            sessions = [created]
            current_id = created["id"]
            logger.debug("bootstrapped session %s for artifact %s", current_id, artifact_id)
        elif current_id != pointer:
            artifact = {**artifact, "current_session_id": current_id, "updated_at": now_iso()}
            artifacts.put(artifact)
            logger.info(
                "repaired artifact %s current session %s -> %s", artifact_id, pointer, current_id
            )

    current = next(s for s in sessions if s["id"] == current_id)
    return ArtifactContext(
        artifact=Artifact.from_record(artifact),
        sessions=[summarize_record(s, store.summary_max_chars) for s in sessions],
        history=list(current.get("history") or []),
        current_session_id=current_id,
    )


def load_artifact_session(
    store: PromptStore, project_id: str, artifact_id: str, session_id: str
) -> SessionContext:
    session = store.select_artifact_session(project_id, artifact_id, session_id)
    if session is None:
        return SessionContext()
    return SessionContext(history=session.history)
