"""Lenient coercion of stored or imported data into canonical record shapes.

Collections are sanitized element by element: an invalid element is dropped
and the rest are kept, so one corrupt entry never empties a whole history or
variable list. Valid input is returned unchanged.
"""

from __future__ import annotations

import re
from typing import Any, Literal, NotRequired, TypedDict

FORM_MARKER = "__FORM__:"
DELIBERATIONS_MARKER = "__DELIBERATIONS__:"
FORM_LABEL = "Submitted form"
DELIBERATIONS_LABEL = "Multi-agent review"
DEFAULT_SUMMARY_MAX_CHARS = 60
ELLIPSIS = "…"

HISTORY_ROLES = frozenset({"user", "assistant"})
QUESTION_TYPES = frozenset({"single", "multi", "text"})
VARIABLE_TYPES = frozenset({"string", "text", "number", "boolean", "enum", "list"})
VARIABLE_KEY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

_WHITESPACE_RE = re.compile(r"\s+")


class HistoryItem(TypedDict):
    role: Literal["user", "assistant"]
    content: str
    timestamp: float


class QuestionOption(TypedDict):
    id: str
    label: str


class Question(TypedDict):
    text: str
    type: Literal["single", "multi", "text"]
    id: NotRequired[str]
    step: NotRequired[str]
    options: NotRequired[list[QuestionOption]]
    allow_other: NotRequired[bool]
    allow_none: NotRequired[bool]
    max_select: NotRequired[int]
    placeholder: NotRequired[str]


class DeliberationAgent(TypedDict):
    name: str
    stance: str
    score: float
    rationale: str


class DeliberationStage(TypedDict):
    stage: str
    agents: list[DeliberationAgent]
    synthesis: str


class DraftAnswer(TypedDict):
    type: Literal["single", "multi", "text"]
    value: str | list[str]
    other: NotRequired[str]


class SessionState(TypedDict):
    questions: list[Question]
    deliberations: list[DeliberationStage]
    final_prompt: str | None
    is_finished: bool
    target_model: str | None
    model_id: str | None
    output_format: str | None
    title: str | None
    draft_answers: dict[str, DraftAnswer]


class ArtifactVariable(TypedDict):
    key: str
    label: str
    type: str
    required: bool
    default: NotRequired[Any]
    options: NotRequired[list[str]]
    placeholder: NotRequired[str]
    joiner: NotRequired[str]
    true_label: NotRequired[str]
    false_label: NotRequired[str]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def default_session_state() -> SessionState:
    return {
        "questions": [],
        "deliberations": [],
        "final_prompt": None,
        "is_finished": False,
        "target_model": None,
        "model_id": None,
        "output_format": None,
        "title": None,
        "draft_answers": {},
    }


def _history_item(value: Any) -> HistoryItem | None:
    if not isinstance(value, dict):
        return None
    role = value.get("role")
    content = value.get("content")
    timestamp = value.get("timestamp")
    if role not in HISTORY_ROLES or not isinstance(content, str) or not _is_number(timestamp):
        return None
    return {"role": role, "content": content, "timestamp": timestamp}


def sanitize_history(value: Any) -> list[HistoryItem]:
    if not isinstance(value, list):
        return []
    items: list[HistoryItem] = []
    for entry in value:
        item = _history_item(entry)
        if item is not None:
            items.append(item)
    return items


def _question_option(value: Any) -> QuestionOption | None:
    if not isinstance(value, dict):
        return None
    if not _non_empty_str(value.get("id")) or not _non_empty_str(value.get("label")):
        return None
    return {"id": value["id"], "label": value["label"]}


def _question(value: Any) -> Question | None:
    if not isinstance(value, dict):
        return None
    text = value.get("text")
    qtype = value.get("type")
    if not _non_empty_str(text) or qtype not in QUESTION_TYPES:
        return None
    question: Question = {"text": text, "type": qtype}
    for key in ("id", "step", "placeholder"):
        if key in value and value[key] is not None:
            if not _non_empty_str(value[key]):
                return None
            question[key] = value[key]  # type: ignore[literal-required]
    for key in ("allow_other", "allow_none"):
        if key in value and value[key] is not None:
            if not isinstance(value[key], bool):
                return None
            question[key] = value[key]  # type: ignore[literal-required]
    max_select = value.get("max_select")
    if max_select is not None:
        if not isinstance(max_select, int) or isinstance(max_select, bool) or max_select <= 0:
            return None
        question["max_select"] = max_select
    raw_options = value.get("options")
    if raw_options is not None:
        if not isinstance(raw_options, list):
            return None
        options: list[QuestionOption] = []
        for raw in raw_options:
            option = _question_option(raw)
            if option is None:
                return None
            options.append(option)
        question["options"] = options

    options = question.get("options") or []
    if qtype == "text":
        if options or "max_select" in question:
            return None
        return question
    if not options:
        return None
    if qtype != "multi" and "max_select" in question:
        return None
    return question


def sanitize_questions(value: Any) -> list[Question]:
    if not isinstance(value, list):
        return []
    return [q for q in (_question(entry) for entry in value) if q is not None]


def _deliberation_agent(value: Any) -> DeliberationAgent | None:
    if not isinstance(value, dict):
        return None
    score = value.get("score")
    if not _is_number(score) or not 0 <= score <= 10:
        return None
    for key in ("name", "stance", "rationale"):
        if not _non_empty_str(value.get(key)):
            return None
    return {
        "name": value["name"],
        "stance": value["stance"],
        "score": score,
        "rationale": value["rationale"],
    }


def _deliberation_stage(value: Any) -> DeliberationStage | None:
    if not isinstance(value, dict):
        return None
    if not _non_empty_str(value.get("stage")) or not _non_empty_str(value.get("synthesis")):
        return None
    raw_agents = value.get("agents")
    if not isinstance(raw_agents, list):
        return None
    agents: list[DeliberationAgent] = []
    for raw in raw_agents:
        agent = _deliberation_agent(raw)
        if agent is None:
            return None
        agents.append(agent)
    return {"stage": value["stage"], "agents": agents, "synthesis": value["synthesis"]}


def sanitize_deliberations(value: Any) -> list[DeliberationStage]:
    if not isinstance(value, list):
        return []
    return [s for s in (_deliberation_stage(entry) for entry in value) if s is not None]


def _draft_answer(value: Any) -> DraftAnswer | None:
    if not isinstance(value, dict):
        return None
    atype = value.get("type")
    answer = value.get("value")
    if atype not in QUESTION_TYPES:
        return None
    if isinstance(answer, list):
        if not all(isinstance(item, str) for item in answer):
            return None
    elif not isinstance(answer, str):
        return None
    draft: DraftAnswer = {"type": atype, "value": answer}
    other = value.get("other")
    if other is not None:
        if not isinstance(other, str):
            return None
        draft["other"] = other
    return draft


def sanitize_draft_answers(value: Any) -> dict[str, DraftAnswer]:
    if not isinstance(value, dict):
        return {}
    drafts: dict[str, DraftAnswer] = {}
    for key, entry in value.items():
        if not isinstance(key, str):
            continue
        draft = _draft_answer(entry)
        if draft is not None:
            drafts[key] = draft
    return drafts


def sanitize_session_state(value: Any) -> SessionState | None:
    if not isinstance(value, dict):
        return None
    is_finished = value.get("is_finished")
    return {
        "questions": sanitize_questions(value.get("questions")),
        "deliberations": sanitize_deliberations(value.get("deliberations")),
        "final_prompt": _optional_str(value.get("final_prompt")),
        "is_finished": is_finished if isinstance(is_finished, bool) else False,
        "target_model": _optional_str(value.get("target_model")),
        "model_id": _optional_str(value.get("model_id")),
        "output_format": _optional_str(value.get("output_format")),
        "title": _optional_str(value.get("title")),
        "draft_answers": sanitize_draft_answers(value.get("draft_answers")),
    }


def _valid_default(value: Any) -> bool:
    if isinstance(value, (str, bool)) or _is_number(value):
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _variable(value: Any) -> ArtifactVariable | None:
    if not isinstance(value, dict):
        return None
    key = value.get("key")
    if not isinstance(key, str) or not VARIABLE_KEY_RE.match(key):
        return None
    label = value.get("label")
    if label is None:
        label = key
    vtype = value.get("type", "string")
    required = value.get("required", True)
    if not _non_empty_str(label) or vtype not in VARIABLE_TYPES or not isinstance(required, bool):
        return None
    variable: ArtifactVariable = {"key": key, "label": label, "type": vtype, "required": required}

    options = value.get("options")
    if options is not None:
        if not isinstance(options, list) or not all(_non_empty_str(o) for o in options):
            return None
        variable["options"] = list(options)
    if vtype == "enum" and not variable.get("options"):
        return None

    if "default" in value and value["default"] is not None:
        if not _valid_default(value["default"]):
            return None
        variable["default"] = value["default"]
    for field_name in ("placeholder", "joiner", "true_label", "false_label"):
        field_value = value.get(field_name)
        if field_value is None:
            continue
        if not isinstance(field_value, str):
            return None
        variable[field_name] = field_value  # type: ignore[literal-required]
    return variable


def sanitize_variables(value: Any) -> list[ArtifactVariable]:
    if not isinstance(value, list):
        return []
    variables: list[ArtifactVariable] = []
    seen: set[str] = set()
    for entry in value:
        variable = _variable(entry)
        if variable is None or variable["key"] in seen:
            continue
        seen.add(variable["key"])
        variables.append(variable)
    return variables


def summarize_content(
    content: str | None, max_chars: int = DEFAULT_SUMMARY_MAX_CHARS
) -> str:
    """Short single-line label for a message, used by session list views."""

    if not content:
        return ""
    trimmed = content.strip()
    if not trimmed:
        return ""
    if trimmed.startswith(FORM_MARKER):
        return FORM_LABEL
    if trimmed.startswith(DELIBERATIONS_MARKER):
        return DELIBERATIONS_LABEL
    normalized = _WHITESPACE_RE.sub(" ", trimmed)
    if max_chars > 0 and len(normalized) > max_chars:
        return f"{normalized[:max_chars]}{ELLIPSIS}"
    return normalized


def summarize_history(
    history: list[HistoryItem], max_chars: int = DEFAULT_SUMMARY_MAX_CHARS
) -> str:
    if not history:
        return ""
    return summarize_content(history[-1].get("content"), max_chars)
