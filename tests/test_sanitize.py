from promptsmith.sanitize import (
    DELIBERATIONS_LABEL,
    FORM_LABEL,
    default_session_state,
    sanitize_deliberations,
    sanitize_draft_answers,
    sanitize_history,
    sanitize_questions,
    sanitize_session_state,
    sanitize_variables,
    summarize_content,
)

VALID_HISTORY = [
    {"role": "user", "content": "Write a haiku prompt", "timestamp": 1700000000000},
    {"role": "assistant", "content": "What season?", "timestamp": 1700000001000.5},
]

VALID_VARIABLES = [
    {"key": "topic", "label": "Topic", "type": "string", "required": True},
    {
        "key": "tone",
        "label": "Tone",
        "type": "enum",
        "required": False,
        "options": ["formal", "casual"],
        "default": "casual",
    },
    {"key": "tags", "label": "Tags", "type": "list", "required": False, "joiner": ", "},
]


def test_sanitize_history_is_idempotent_on_valid_input() -> None:
    assert sanitize_history(VALID_HISTORY) == VALID_HISTORY
    assert sanitize_history(sanitize_history(VALID_HISTORY)) == VALID_HISTORY


def test_sanitize_history_drops_only_corrupt_element() -> None:
    corrupt = [VALID_HISTORY[0], {"role": "system", "content": "x", "timestamp": 1}, VALID_HISTORY[1]]
    assert sanitize_history(corrupt) == VALID_HISTORY

    more = [VALID_HISTORY[0], {"role": "user", "content": 5, "timestamp": 1}, None, "text"]
    assert sanitize_history(more) == [VALID_HISTORY[0]]


def test_sanitize_history_rejects_bool_timestamp_and_non_list() -> None:
    assert sanitize_history([{"role": "user", "content": "hi", "timestamp": True}]) == []
    assert sanitize_history({"role": "user"}) == []
    assert sanitize_history(None) == []


def test_sanitize_variables_is_idempotent_on_valid_input() -> None:
    assert sanitize_variables(VALID_VARIABLES) == VALID_VARIABLES


def test_sanitize_variables_drops_invalid_and_duplicate_keys() -> None:
    value = [
        VALID_VARIABLES[0],
        {"key": "1bad", "label": "Bad", "type": "string", "required": True},
        {"key": "mood", "label": "Mood", "type": "enum", "required": True, "options": []},
        {"key": "topic", "label": "Again", "type": "text", "required": True},
        VALID_VARIABLES[2],
    ]
    assert sanitize_variables(value) == [VALID_VARIABLES[0], VALID_VARIABLES[2]]


def test_sanitize_variables_fills_label_type_and_required_defaults() -> None:
    assert sanitize_variables([{"key": "name"}]) == [
        {"key": "name", "label": "name", "type": "string", "required": True}
    ]


def test_sanitize_questions_applies_type_rules() -> None:
    options = [{"id": "a", "label": "A"}]
    questions = [
        {"text": "Pick one", "type": "single", "options": options},
        {"text": "Pick many", "type": "multi", "options": options, "max_select": 2},
        {"text": "Say something", "type": "text"},
        {"text": "Text with options", "type": "text", "options": options},
        {"text": "Single without options", "type": "single"},
        {"text": "Single with max", "type": "single", "options": options, "max_select": 1},
        {"text": "", "type": "text"},
    ]
    assert sanitize_questions(questions) == questions[:3]


def test_sanitize_deliberations_drops_out_of_range_scores() -> None:
    good = {
        "stage": "review",
        "agents": [{"name": "critic", "stance": "skeptic", "score": 7.5, "rationale": "ok"}],
        "synthesis": "fine",
    }
    bad = {
        "stage": "review",
        "agents": [{"name": "critic", "stance": "skeptic", "score": 11, "rationale": "ok"}],
        "synthesis": "fine",
    }
    assert sanitize_deliberations([good, bad]) == [good]


def test_sanitize_draft_answers_filters_entries() -> None:
    drafts = {
        "q1": {"type": "single", "value": "a"},
        "q2": {"type": "multi", "value": ["a", "b"], "other": "c"},
        "q3": {"type": "multi", "value": ["a", 1]},
        "q4": "nope",
    }
    assert sanitize_draft_answers(drafts) == {
        "q1": {"type": "single", "value": "a"},
        "q2": {"type": "multi", "value": ["a", "b"], "other": "c"},
    }
    assert sanitize_draft_answers(["q1"]) == {}


def test_sanitize_session_state_defaults_invalid_fields() -> None:
    assert sanitize_session_state(None) is None
    assert sanitize_session_state("state") is None
    assert sanitize_session_state({}) == default_session_state()

    state = sanitize_session_state(
        {
            "questions": "broken",
            "final_prompt": "Final",
            "is_finished": "yes",
            "title": "Haiku",
            "model_id": 3,
        }
    )
    assert state is not None
    assert state["questions"] == []
    assert state["final_prompt"] == "Final"
    assert state["is_finished"] is False
    assert state["title"] == "Haiku"
    assert state["model_id"] is None


def test_sanitize_session_state_is_idempotent() -> None:
    state = default_session_state()
    state["title"] = "Draft"
    state["draft_answers"] = {"q1": {"type": "text", "value": "hello"}}
    assert sanitize_session_state(state) == state


def test_summarize_content_truncates_and_labels_markers() -> None:
    assert summarize_content(None) == ""
    assert summarize_content("   ") == ""
    assert summarize_content("  hello \n\n world  ") == "hello world"
    long_text = "word " * 40
    summary = summarize_content(long_text)
    assert summary.endswith("…")
    assert len(summary) == 61
    assert summarize_content('__FORM__:{"answers": []}') == FORM_LABEL
    assert summarize_content("__DELIBERATIONS__:[]") == DELIBERATIONS_LABEL
    assert summarize_content("abcdef", max_chars=3) == "abc…"
