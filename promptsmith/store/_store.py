from __future__ import annotations

from pathlib import Path
from typing import Any

from ..config import PromptSmithConfig
from ..db import DEFAULT_DB_PATH, Database
from ..sanitize import DEFAULT_SUMMARY_MAX_CHARS, ArtifactVariable, HistoryItem, SessionState
from . import artifact_sessions as store_artifact_sessions
from . import artifacts as store_artifacts
from . import context as store_context
from . import projects as store_projects
from . import sessions as store_sessions
from . import transfer as store_transfer
from .types import (
    Artifact,
    ArtifactContext,
    ArtifactSession,
    ExportPayload,
    Project,
    ProjectContext,
    Session,
    SessionContext,
)


class PromptStore:
    """Entry point for every project, session and artifact operation.

    Wraps one ``Database`` handle; the repositories in this package take the
    store as their first argument and never open connections themselves.
    """

    def __init__(
        self,
        db_path: Path | str = DEFAULT_DB_PATH,
        *,
        database: Database | None = None,
        summary_max_chars: int = DEFAULT_SUMMARY_MAX_CHARS,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db = database or Database(db_path, busy_timeout_ms=busy_timeout_ms)
        self.summary_max_chars = summary_max_chars

    @classmethod
    def from_config(
        cls, cfg: PromptSmithConfig, db_path: Path | str | None = None
    ) -> PromptStore:
        return cls(
            db_path or cfg.db_path,
            summary_max_chars=cfg.summary_max_chars,
            busy_timeout_ms=cfg.busy_timeout_ms,
        )

    def open(self) -> PromptStore:
        self.db.open()
        return self

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> PromptStore:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Projects

    def list_projects(self) -> list[Project]:
        return store_projects.list_projects(self)

    def get_project(self, project_id: str) -> Project | None:
        return store_projects.get_project(self, project_id)

    def create_project(
        self, name: str, description: str | None = None, *, bootstrap_session: bool = False
    ) -> Project:
        return store_projects.create_project(
            self, name, description, bootstrap_session=bootstrap_session
        )

    def update_project(
        self, project_id: str, *, name: str | None = None, description: str | None = None
    ) -> Project | None:
        return store_projects.update_project(self, project_id, name=name, description=description)

    def delete_project(self, project_id: str) -> bool:
        return store_projects.delete_project(self, project_id)

    # Sessions

    def list_sessions(self, project_id: str) -> list[Session]:
        return store_sessions.list_sessions(self, project_id)

    def get_session(self, project_id: str, session_id: str) -> Session | None:
        return store_sessions.get_session(self, project_id, session_id)

    def create_session(self, project_id: str) -> Session:
        return store_sessions.create_session(self, project_id)

    def select_session(self, project_id: str, session_id: str) -> Session | None:
        return store_sessions.select_session(self, project_id, session_id)

    def update_session(self, project_id: str, session_id: str, **changes: Any) -> Session | None:
        return store_sessions.update_session(self, project_id, session_id, **changes)

    def update_session_history(
        self, project_id: str, session_id: str, history: list[HistoryItem]
    ) -> Session | None:
        return store_sessions.update_session_history(self, project_id, session_id, history)

    def update_session_state(
        self, project_id: str, session_id: str, state: SessionState
    ) -> Session | None:
        return store_sessions.update_session_state(self, project_id, session_id, state)

    def update_session_title(self, project_id: str, session_id: str, title: str) -> Session | None:
        return store_sessions.update_session_title(self, project_id, session_id, title)

    def update_session_model_config(
        self,
        project_id: str,
        session_id: str,
        model_id: str | None,
        output_format: str | None,
    ) -> Session | None:
        return store_sessions.update_session_model_config(
            self, project_id, session_id, model_id, output_format
        )

    def delete_session(self, project_id: str, session_id: str) -> bool:
        return store_sessions.delete_session(self, project_id, session_id)

    # Artifacts

    def list_artifacts(self, project_id: str) -> list[Artifact]:
        return store_artifacts.list_artifacts(self, project_id)

    def get_artifact(self, project_id: str, artifact_id: str) -> Artifact | None:
        return store_artifacts.get_artifact(self, project_id, artifact_id)

    def create_artifact(
        self,
        project_id: str,
        *,
        title: str | None = None,
        problem: str | None = None,
        prompt_content: str | None = None,
        variables: list[ArtifactVariable] | None = None,
    ) -> Artifact:
        return store_artifacts.create_artifact(
            self,
            project_id,
            title=title,
            problem=problem,
            prompt_content=prompt_content,
            variables=variables,
        )

    def update_artifact(
        self,
        project_id: str,
        artifact_id: str,
        *,
        title: str,
        problem: str,
        prompt_content: str,
        variables: list[ArtifactVariable] | None = None,
    ) -> Artifact:
        return store_artifacts.update_artifact(
            self,
            project_id,
            artifact_id,
            title=title,
            problem=problem,
            prompt_content=prompt_content,
            variables=variables,
        )

    def delete_artifact(self, project_id: str, artifact_id: str) -> bool:
        return store_artifacts.delete_artifact(self, project_id, artifact_id)

    # Artifact sessions

    def list_artifact_sessions(self, project_id: str, artifact_id: str) -> list[ArtifactSession]:
        return store_artifact_sessions.list_artifact_sessions(self, project_id, artifact_id)

    def get_artifact_session(
        self, project_id: str, artifact_id: str, session_id: str
    ) -> ArtifactSession | None:
        return store_artifact_sessions.get_artifact_session(
            self, project_id, artifact_id, session_id
        )

    def create_artifact_session(self, project_id: str, artifact_id: str) -> ArtifactSession:
        return store_artifact_sessions.create_artifact_session(self, project_id, artifact_id)

    def select_artifact_session(
        self, project_id: str, artifact_id: str, session_id: str
    ) -> ArtifactSession | None:
        return store_artifact_sessions.select_artifact_session(
            self, project_id, artifact_id, session_id
        )

    def update_artifact_session(
        self, project_id: str, artifact_id: str, session_id: str, **changes: Any
    ) -> ArtifactSession | None:
        return store_artifact_sessions.update_artifact_session(
            self, project_id, artifact_id, session_id, **changes
        )

    def update_artifact_session_history(
        self, project_id: str, artifact_id: str, session_id: str, history: list[HistoryItem]
    ) -> ArtifactSession | None:
        return store_artifact_sessions.update_artifact_session_history(
            self, project_id, artifact_id, session_id, history
        )

    def update_artifact_session_title(
        self, project_id: str, artifact_id: str, session_id: str, title: str
    ) -> ArtifactSession | None:
        return store_artifact_sessions.update_artifact_session_title(
            self, project_id, artifact_id, session_id, title
        )

    def delete_artifact_session(self, project_id: str, artifact_id: str, session_id: str) -> bool:
        return store_artifact_sessions.delete_artifact_session(
            self, project_id, artifact_id, session_id
        )

    # Context

    def load_project_context(self, project_id: str) -> ProjectContext:
        return store_context.load_project_context(self, project_id)

    def load_session_context(self, project_id: str, session_id: str) -> SessionContext:
        return store_context.load_session_context(self, project_id, session_id)

    def load_artifact_context(self, project_id: str, artifact_id: str) -> ArtifactContext:
        return store_context.load_artifact_context(self, project_id, artifact_id)

    def load_artifact_session(
        self, project_id: str, artifact_id: str, session_id: str
    ) -> SessionContext:
        return store_context.load_artifact_session(self, project_id, artifact_id, session_id)

    # Export / import

    def export_project(self, project_id: str) -> ExportPayload:
        return store_transfer.export_project(self, project_id)

    def import_project(self, payload: Any) -> store_transfer.ImportResult:
        return store_transfer.import_project(self, payload)
