from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/promptsmith/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "db_path": "PROMPTSMITH_DB",
    "summary_max_chars": "PROMPTSMITH_SUMMARY_MAX_CHARS",
    "busy_timeout_ms": "PROMPTSMITH_BUSY_TIMEOUT_MS",
    "export_indent": "PROMPTSMITH_EXPORT_INDENT",
    "log_level": "PROMPTSMITH_LOG_LEVEL",
}

_INT_KEYS = {"summary_max_chars", "busy_timeout_ms", "export_indent"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("PROMPTSMITH_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class PromptSmithConfig:
    db_path: str = "~/.promptsmith.sqlite"
    # last_message preview length, ellipsis excluded
    summary_max_chars: int = 60
    busy_timeout_ms: int = 5000
    export_indent: int = 2
    log_level: str | None = None


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def load_config(path: Path | None = None) -> PromptSmithConfig:
    cfg = PromptSmithConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: PromptSmithConfig, data: dict[str, Any]) -> PromptSmithConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key == "log_level":
            cfg.log_level = str(value) if value else None
            continue
        setattr(cfg, key, str(value))
    return cfg


def _apply_env(cfg: PromptSmithConfig) -> PromptSmithConfig:
    overrides = get_env_overrides()
    for key, value in overrides.items():
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
        elif key == "log_level":
            cfg.log_level = value or None
        else:
            setattr(cfg, key, value)
    return cfg
