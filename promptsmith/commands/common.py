from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich import print

from ..config import load_config, read_config_file, write_config_file
from ..errors import EngineError, NotFoundError, ValidationError
from ..store import PromptStore


def store_from_path(db_path: str | None) -> PromptStore:
    return PromptStore.from_config(load_config(), db_path)


def configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else load_config().log_level
    if not level_name:
        return
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
    logging.getLogger("promptsmith").setLevel(level)


@contextmanager
def store_errors() -> Iterator[None]:
    """Map store failures to CLI exit codes: 1 for bad input, 2 for engine errors."""

    try:
        yield
    except (NotFoundError, ValidationError) as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    except EngineError as exc:
        print(f"[red]Storage error: {exc}[/red]")
        print("[yellow]No changes were written; retry the command.[/yellow]")
        raise typer.Exit(code=2) from exc


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc
