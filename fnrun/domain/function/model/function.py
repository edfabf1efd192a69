"""Registered user functions and their signature variants."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

DEFAULT_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "PUT", "POST", "PATCH", "DELETE"})


class FunctionKind(StrEnum):
    """Signature variant of a user function.

    - HTTP: ``fn(request, response)``; writes the response itself.
    - CLOUDEVENT: ``fn(ctx, event)``; returns an error or None.
    - GENERIC: ``fn(ctx, payload)``; returns an ``Out`` or None.
    """

    HTTP = "http"
    CLOUDEVENT = "cloudevent"
    GENERIC = "generic"


@dataclass(frozen=True)
class FunctionInfo:
    """Metadata for a decorated function."""

    fn: Callable[..., Any]
    name: str
    kind: FunctionKind
    methods: frozenset[str] = DEFAULT_METHODS
    path: str = "/"

    @property
    def qualified_name(self) -> str:
        return f"{self.fn.__module__}.{self.fn.__qualname__}"

    @property
    def simple_name(self) -> str:
        return getattr(self.fn, "__name__", self.name)

    def matches(self, target: str) -> bool:
        """True when ``target`` names this function (short or qualified name)."""
        entry_point_style = f"{self.fn.__module__}:{self.fn.__qualname__}"
        return target in (self.name, self.qualified_name, entry_point_style)

    def allows(self, method: str) -> bool:
        return method.upper() in self.methods
