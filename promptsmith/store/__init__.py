from __future__ import annotations

from ._store import PromptStore
from .transfer import EXPORT_VERSION, ImportResult, dump_export, load_export
from .types import (
    Artifact,
    ArtifactContext,
    ArtifactSession,
    ExportPayload,
    Project,
    ProjectContext,
    Session,
    SessionContext,
    SessionSummary,
)

__all__ = [
    "EXPORT_VERSION",
    "Artifact",
    "ArtifactContext",
    "ArtifactSession",
    "ExportPayload",
    "ImportResult",
    "Project",
    "ProjectContext",
    "PromptStore",
    "Session",
    "SessionContext",
    "SessionSummary",
    "dump_export",
    "load_export",
]
