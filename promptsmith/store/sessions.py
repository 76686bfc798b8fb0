from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..db import STORE_PROJECTS, STORE_SESSIONS, Transaction
from ..errors import NotFoundError
from ..ids import create_id
from ..sanitize import (
    HistoryItem,
    SessionState,
    default_session_state,
    sanitize_history,
    sanitize_session_state,
    summarize_history,
)
from .types import Session
from .utils import newest_first, now_iso, repoint_parent

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _owned(record: dict[str, Any] | None, project_id: str) -> bool:
    return record is not None and record.get("project_id") == project_id


def insert_session(tx: Transaction, project: dict[str, Any]) -> dict[str, Any]:
    """Insert an empty session and make it the project's current one.

    Must run inside a readwrite transaction over projects and sessions.
    """

    now = now_iso()
    session = {
        "id": create_id(),
        "project_id": project["id"],
        "created_at": now,
        "updated_at": now,
        "history": [],
        "state": None,
        "title": None,
        "last_message": "",
    }
    tx.store(STORE_SESSIONS).put(session)
    tx.store(STORE_PROJECTS).put(
        {**project, "current_session_id": session["id"], "updated_at": now}
    )
    return session


def list_sessions(store: PromptStore, project_id: str) -> list[Session]:
    records = store.db.with_store(
        STORE_SESSIONS, "readonly", lambda s: s.index("project_id").get_all(project_id)
    )
    return [Session.from_record(r) for r in newest_first(records)]


def get_session(store: PromptStore, project_id: str, session_id: str) -> Session | None:
    record = store.db.with_store(STORE_SESSIONS, "readonly", lambda s: s.get(session_id))
    return Session.from_record(record) if _owned(record, project_id) else None


def create_session(store: PromptStore, project_id: str) -> Session:
    with store.db.transaction([STORE_PROJECTS, STORE_SESSIONS], "readwrite") as tx:
        project = tx.store(STORE_PROJECTS).get(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        record = insert_session(tx, project)
    logger.debug("created session %s in project %s", record["id"], project_id)
    return Session.from_record(record)


def select_session(store: PromptStore, project_id: str, session_id: str) -> Session | None:
    with store.db.transaction([STORE_PROJECTS, STORE_SESSIONS], "readwrite") as tx:
        record = tx.store(STORE_SESSIONS).get(session_id)
        if not _owned(record, project_id):
            return None
        projects = tx.store(STORE_PROJECTS)
        project = projects.get(project_id)
        if project is None:
            return None
        if project.get("current_session_id") != session_id:
            projects.put({**project, "current_session_id": session_id, "updated_at": now_iso()})
    return Session.from_record(record)


def update_session(
    store: PromptStore,
    project_id: str,
    session_id: str,
    *,
    history: list[HistoryItem] | None = _UNSET,
    state: SessionState | None = _UNSET,
    title: str | None = _UNSET,
) -> Session | None:
    """Read-modify-write a session. Returns ``None`` when it is not owned by the project."""

    with store.db.transaction(STORE_SESSIONS, "readwrite") as tx:
        sessions = tx.store(STORE_SESSIONS)
        record = sessions.get(session_id)
        if record is None or not _owned(record, project_id):
            return None
        if history is not _UNSET:
            record["history"] = sanitize_history(history or [])
            record["last_message"] = summarize_history(
                record["history"], store.summary_max_chars
            )
        if state is not _UNSET:
            next_state = sanitize_session_state(state)
            record["state"] = next_state
            if next_state is not None and next_state["title"] is not None:
                record["title"] = next_state["title"]
        if title is not _UNSET:
            record["title"] = title
            if isinstance(record.get("state"), dict):
                record["state"] = {**record["state"], "title": title}
        record["updated_at"] = now_iso()
        sessions.put(record)
    return Session.from_record(record)


def update_session_history(
    store: PromptStore, project_id: str, session_id: str, history: list[HistoryItem]
) -> Session | None:
    return update_session(store, project_id, session_id, history=history)


def update_session_state(
    store: PromptStore, project_id: str, session_id: str, state: SessionState
) -> Session | None:
    return update_session(store, project_id, session_id, state=state)


def update_session_title(
    store: PromptStore, project_id: str, session_id: str, title: str
) -> Session | None:
    return update_session(store, project_id, session_id, title=title)


def update_session_model_config(
    store: PromptStore,
    project_id: str,
    session_id: str,
    model_id: str | None,
    output_format: str | None,
) -> Session | None:
    with store.db.transaction(STORE_SESSIONS, "readwrite") as tx:
        sessions = tx.store(STORE_SESSIONS)
        record = sessions.get(session_id)
        if record is None or not _owned(record, project_id):
            return None
        state = sanitize_session_state(record.get("state")) or default_session_state()
        state["model_id"] = model_id
        state["target_model"] = model_id
        state["output_format"] = output_format
        record["state"] = state
        record["updated_at"] = now_iso()
        sessions.put(record)
    return Session.from_record(record)


def delete_session(store: PromptStore, project_id: str, session_id: str) -> bool:
    with store.db.transaction([STORE_PROJECTS, STORE_SESSIONS], "readwrite") as tx:
        sessions = tx.store(STORE_SESSIONS)
        if not _owned(sessions.get(session_id), project_id):
            return False
        sessions.delete(session_id)
        projects = tx.store(STORE_PROJECTS)
        project = projects.get(project_id)
        if project is not None:
            repoint_parent(projects, project, sessions.index("project_id"), session_id)
    logger.debug("deleted session %s from project %s", session_id, project_id)
    return True
