from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Sequence
from typing import Any

from ..db import StoreIndex
from ..sanitize import summarize_content
from .types import SessionSummary

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


def newest_first(records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    # Records arrive in insertion order; ties on created_at keep the later insert first.
    ordered = sorted(
        enumerate(records),
        key=lambda pair: (str(pair[1].get("created_at") or ""), pair[0]),
        reverse=True,
    )
    return [record for _, record in ordered]


def summarize_record(record: dict[str, Any], max_chars: int) -> SessionSummary:
    last_message = record.get("last_message")
    if last_message is None:
        history = record.get("history") or []
        last_message = summarize_content(history[-1].get("content") if history else "", max_chars)
    title = record.get("title")
    if title is None:
        state = record.get("state")
        if isinstance(state, dict):
            title = state.get("title")
    return {
        "id": record["id"],
        "title": title,
        "created_at": record["created_at"],
        "last_message": last_message,
    }


def newest_child_id(index: StoreIndex, parent_id: str) -> str | None:
    children = newest_first(index.get_all(parent_id))
    return children[0]["id"] if children else None


def resolve_current_child(
    pointer: str | None, children: Sequence[dict[str, Any]]
) -> str | None:
    """Return ``pointer`` when it names one of ``children``, else the newest child."""

    if pointer and any(child["id"] == pointer for child in children):
        return pointer
    ordered = newest_first(children)
    return ordered[0]["id"] if ordered else None


def repoint_parent(
    parent_store: Any,
    parent: dict[str, Any],
    child_index: StoreIndex,
    removed_id: str,
) -> str | None:
    """Repair ``parent.current_session_id`` after ``removed_id`` was deleted.

    Runs inside the caller's transaction. Returns the new pointer value.
    """

    if parent.get("current_session_id") != removed_id:
        return parent.get("current_session_id")
    next_id = newest_child_id(child_index, parent["id"])
    parent_store.put({**parent, "current_session_id": next_id, "updated_at": now_iso()})
    logger.debug(
        "repointed %s %s from %s to %s", parent_store.name, parent["id"], removed_id, next_id
    )
    return next_id
