from promptsmith import db
from promptsmith.store import PromptStore


def test_project_context_for_missing_project_is_empty(store: PromptStore) -> None:
    context = store.load_project_context("missing")
    assert context.sessions == []
    assert context.current_session_id is None
    assert store.list_projects() == []


def test_project_context_bootstraps_first_session_once(store: PromptStore) -> None:
    project = store.create_project("Demo")
    first = store.load_project_context(project.id)
    again = store.load_project_context(project.id)

    assert first.current_session_id is not None
    assert again.current_session_id == first.current_session_id
    assert len(store.list_sessions(project.id)) == 1
    assert store.get_project(project.id).current_session_id == first.current_session_id


def test_project_context_returns_current_history_and_summaries(store: PromptStore) -> None:
    project = store.create_project("Demo", bootstrap_session=True)
    older = project.current_session_id
    newer = store.create_session(project.id)
    history = [{"role": "user", "content": "__FORM__:{}", "timestamp": 1}]
    store.update_session_history(project.id, older, history)
    store.update_session_title(project.id, older, "Older")
    store.select_session(project.id, older)

    context = store.load_project_context(project.id)
    assert context.current_session_id == older
    assert context.history == history
    assert [s["id"] for s in context.sessions] == [newer.id, older]
    older_summary = context.sessions[1]
    assert older_summary["title"] == "Older"
    assert older_summary["last_message"] == "Submitted form"


def test_project_context_repairs_stale_pointer(store: PromptStore) -> None:
    project = store.create_project("Demo", bootstrap_session=True)
    newest = store.create_session(project.id)
    record = project.to_record()
    record["current_session_id"] = "gone"
    store.db.with_store(db.STORE_PROJECTS, "readwrite", lambda s: s.put(record))

    context = store.load_project_context(project.id)
    assert context.current_session_id == newest.id
    assert store.get_project(project.id).current_session_id == newest.id


def test_session_context_selects_session(store: PromptStore) -> None:
    project = store.create_project("Demo", bootstrap_session=True)
    first = project.current_session_id
    store.create_session(project.id)
    store.update_session_state(project.id, first, {"final_prompt": "Done", "is_finished": True})

    context = store.load_session_context(project.id, first)
    assert context.state["final_prompt"] == "Done"
    assert store.get_project(project.id).current_session_id == first

    missing = store.load_session_context(project.id, "missing")
    assert missing.history == []
    assert missing.state is None


def test_artifact_context_creates_exactly_one_session(store: PromptStore) -> None:
    project = store.create_project("Demo")
    artifact = store.create_artifact(project.id, title="Haiku", prompt_content="Write {{topic}}")

    first = store.load_artifact_context(project.id, artifact.id)
    second = store.load_artifact_context(project.id, artifact.id)

    assert first.artifact is not None
    assert first.artifact.prompt_content == "Write {{topic}}"
    assert first.artifact.current_session_id == first.current_session_id
    assert second.current_session_id == first.current_session_id
    assert len(store.list_artifact_sessions(project.id, artifact.id)) == 1


def test_artifact_context_repairs_stale_pointer(store: PromptStore) -> None:
    project = store.create_project("Demo")
    artifact = store.create_artifact(project.id, title="Haiku")
    session = store.create_artifact_session(project.id, artifact.id)
    record = store.get_artifact(project.id, artifact.id).to_record()
    record["current_session_id"] = "gone"
    store.db.with_store(db.STORE_ARTIFACTS, "readwrite", lambda s: s.put(record))

    context = store.load_artifact_context(project.id, artifact.id)
    assert context.current_session_id == session.id
    assert context.artifact.current_session_id == session.id
    assert store.get_artifact(project.id, artifact.id).current_session_id == session.id


def test_artifact_context_for_foreign_artifact_is_empty(store: PromptStore) -> None:
    demo = store.create_project("Demo")
    other = store.create_project("Other")
    artifact = store.create_artifact(demo.id, title="Haiku")

    context = store.load_artifact_context(other.id, artifact.id)
    assert context.artifact is None
    assert store.list_artifact_sessions(demo.id, artifact.id) == []


def test_load_artifact_session_selects_and_returns_history(store: PromptStore) -> None:
    project = store.create_project("Demo")
    artifact = store.create_artifact(project.id, title="Haiku")
    first = store.create_artifact_session(project.id, artifact.id)
    store.create_artifact_session(project.id, artifact.id)
    history = [{"role": "assistant", "content": "Here you go", "timestamp": 5}]
    store.update_artifact_session_history(project.id, artifact.id, first.id, history)

    context = store.load_artifact_session(project.id, artifact.id, first.id)
    assert context.history == history
    assert store.get_artifact(project.id, artifact.id).current_session_id == first.id
