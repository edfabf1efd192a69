"""Helpers shared by CLI commands."""

from pathlib import Path
from typing import Any

from fnrun.config import Config


def build_config(
    *,
    target: str | None = None,
    source: str | None = None,
    context_file: Path | None = None,
) -> Config:
    """Config from the environment, with command-line options taking precedence."""
    overrides: dict[str, Any] = {}
    if target:
        overrides["function_target"] = target
    if source:
        overrides["function_source"] = source
    if context_file:
        overrides["func_context_file"] = str(context_file)
        # An explicit file wins over a FUNC_CONTEXT found in the environment
        overrides["func_context"] = None
    return Config(**overrides)  # type: ignore[arg-type]
