from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..db import (
    ALL_STORES,
    STORE_ARTIFACT_SESSIONS,
    STORE_ARTIFACTS,
    STORE_PROJECTS,
    STORE_SESSIONS,
)
from ..errors import ValidationError
from ..ids import create_id
from .sessions import insert_session
from .types import Project
from .utils import newest_first, now_iso

if TYPE_CHECKING:
    from ._store import PromptStore

logger = logging.getLogger(__name__)


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None


def list_projects(store: PromptStore) -> list[Project]:
    records = store.db.with_store(STORE_PROJECTS, "readonly", lambda s: s.get_all())
    return [Project.from_record(r) for r in newest_first(records)]


def get_project(store: PromptStore, project_id: str) -> Project | None:
    record = store.db.with_store(STORE_PROJECTS, "readonly", lambda s: s.get(project_id))
    return Project.from_record(record) if record else None


def create_project(
    store: PromptStore,
    name: str,
    description: str | None = None,
    *,
    bootstrap_session: bool = False,
) -> Project:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("project name is required")
    now = now_iso()
    record = {
        "id": create_id(),
        "name": clean_name,
        "description": _clean_description(description),
        "created_at": now,
        "updated_at": now,
        "current_session_id": None,
    }
    with store.db.transaction([STORE_PROJECTS, STORE_SESSIONS], "readwrite") as tx:
        tx.store(STORE_PROJECTS).put(record)
        if bootstrap_session:
            session = insert_session(tx, record)
            record = {**record, "current_session_id": session["id"]}
    logger.info("created project %s", record["id"])
    return Project.from_record(record)


def update_project(
    store: PromptStore,
    project_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Project | None:
    if name is not None and not name.strip():
        raise ValidationError("project name is required")
    with store.db.transaction(STORE_PROJECTS, "readwrite") as tx:
        projects = tx.store(STORE_PROJECTS)
        record = projects.get(project_id)
        if record is None:
            return None
        if name is not None:
            record["name"] = name.strip()
        if description is not None:
            record["description"] = _clean_description(description)
        record["updated_at"] = now_iso()
        projects.put(record)
    return Project.from_record(record)


def delete_project(store: PromptStore, project_id: str) -> bool:
    """Delete a project with all of its sessions, artifacts and artifact sessions."""

    with store.db.transaction(ALL_STORES, "readwrite") as tx:
        projects = tx.store(STORE_PROJECTS)
        if projects.get(project_id) is None:
            return False
        counts: dict[str, int] = {}
        for name in (STORE_ARTIFACT_SESSIONS, STORE_ARTIFACTS, STORE_SESSIONS):
            child_store = tx.store(name)
            keys = child_store.index("project_id").get_all_keys(project_id)
            for key in keys:
                child_store.delete(key)
            counts[name] = len(keys)
        projects.delete(project_id)
    logger.info(
        "deleted project %s (sessions=%d artifacts=%d artifact_sessions=%d)",
        project_id,
        counts[STORE_SESSIONS],
        counts[STORE_ARTIFACTS],
        counts[STORE_ARTIFACT_SESSIONS],
    )
    return True
