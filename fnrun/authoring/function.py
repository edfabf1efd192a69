"""Decorators that register user functions.

Each decorator works bare (``@function``) or with options
(``@http_function(methods=["POST"], path="/orders")``) and returns the
function unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from fnrun._registry import register_function
from fnrun.domain.function.model.function import DEFAULT_METHODS, FunctionInfo, FunctionKind

F = TypeVar("F", bound=Callable[..., Any])


def _decorator(
    kind: FunctionKind,
    fn: F | None,
    name: str | None,
    methods: Iterable[str] | None,
    path: str,
) -> F | Callable[[F], F]:
    allowed = frozenset(m.upper() for m in methods) if methods else DEFAULT_METHODS

    def register(target: F) -> F:
        register_function(
            FunctionInfo(
                fn=target,
                name=name or target.__name__,
                kind=kind,
                methods=allowed,
                path=path,
            )
        )
        return target

    if fn is not None:
        return register(fn)
    return register


def http_function(
    fn: F | None = None,
    *,
    name: str | None = None,
    methods: Iterable[str] | None = None,
    path: str = "/",
) -> Any:
    """Register a raw HTTP function: ``fn(request, response)``.

    The function writes status, headers and body into ``response`` itself.
    """
    return _decorator(FunctionKind.HTTP, fn, name, methods, path)


def cloudevent_function(
    fn: F | None = None,
    *,
    name: str | None = None,
    methods: Iterable[str] | None = None,
    path: str = "/",
) -> Any:
    """Register a structured-event function: ``fn(ctx, event) -> error | None``."""
    return _decorator(FunctionKind.CLOUDEVENT, fn, name, methods, path)


def function(
    fn: F | None = None,
    *,
    name: str | None = None,
    methods: Iterable[str] | None = None,
    path: str = "/",
) -> Any:
    """Register a generic event function: ``fn(ctx, payload) -> Out | None``.

    Generic functions serve both HTTP requests and broker deliveries.
    """
    return _decorator(FunctionKind.GENERIC, fn, name, methods, path)
