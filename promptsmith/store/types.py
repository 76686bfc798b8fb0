from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, TypedDict

from ..sanitize import ArtifactVariable, HistoryItem, SessionState


@dataclass
class Project:
    id: str
    name: str
    created_at: str
    updated_at: str
    description: str | None = None
    current_session_id: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Project:
        return cls(
            id=record["id"],
            name=record["name"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            description=record.get("description"),
            current_session_id=record.get("current_session_id"),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Session:
    id: str
    project_id: str
    created_at: str
    updated_at: str
    history: list[HistoryItem] = field(default_factory=list)
    state: SessionState | None = None
    title: str | None = None
    last_message: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Session:
        return cls(
            id=record["id"],
            project_id=record["project_id"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            history=list(record.get("history") or []),
            state=record.get("state"),
            title=record.get("title"),
            last_message=record.get("last_message"),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Artifact:
    id: str
    project_id: str
    title: str
    problem: str
    prompt_content: str
    created_at: str
    updated_at: str
    variables: list[ArtifactVariable] = field(default_factory=list)
    current_session_id: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Artifact:
        return cls(
            id=record["id"],
            project_id=record["project_id"],
            title=record["title"],
            problem=record["problem"],
            prompt_content=record["prompt_content"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            variables=list(record.get("variables") or []),
            current_session_id=record.get("current_session_id"),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ArtifactSession:
    id: str
    project_id: str
    artifact_id: str
    created_at: str
    updated_at: str
    history: list[HistoryItem] = field(default_factory=list)
    title: str | None = None
    last_message: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ArtifactSession:
        return cls(
            id=record["id"],
            project_id=record["project_id"],
            artifact_id=record["artifact_id"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            history=list(record.get("history") or []),
            title=record.get("title"),
            last_message=record.get("last_message"),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


class SessionSummary(TypedDict):
    id: str
    title: str | None
    created_at: str
    last_message: str


@dataclass
class ProjectContext:
    sessions: list[SessionSummary] = field(default_factory=list)
    history: list[HistoryItem] = field(default_factory=list)
    state: SessionState | None = None
    current_session_id: str | None = None


@dataclass
class SessionContext:
    history: list[HistoryItem] = field(default_factory=list)
    state: SessionState | None = None


@dataclass
class ArtifactContext:
    artifact: Artifact | None = None
    sessions: list[SessionSummary] = field(default_factory=list)
    history: list[HistoryItem] = field(default_factory=list)
    current_session_id: str | None = None


class ExportPayload(TypedDict):
    version: int
    exported_at: str
    project: dict[str, Any]
    sessions: list[dict[str, Any]]
    artifacts: list[dict[str, Any]]
    artifact_sessions: list[dict[str, Any]]
