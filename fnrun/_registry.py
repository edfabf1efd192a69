"""Global function and interceptor registry.

Populated at import time by the ``@http_function`` / ``@cloudevent_function`` /
``@function`` / ``@interceptor`` decorators, and at startup from entry points
(see ``fnrun.infrastructure.discovery``). Targets named in the configuration
are resolved against this registry; nothing is discovered by reflection.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fnrun.domain.function.model.function import FunctionInfo

if TYPE_CHECKING:
    from fnrun.domain.interceptor.model import Interceptor

InterceptorFactory = Callable[[], "Interceptor"]

_functions: dict[str, FunctionInfo] = {}
_interceptors: dict[str, InterceptorFactory] = {}


def clear() -> None:
    """Remove all registered functions and interceptors. Used in tests."""
    _functions.clear()
    _interceptors.clear()


def register_function(info: FunctionInfo) -> FunctionInfo:
    """Register a function under ``info.name``.

    Re-registering the same callable is a no-op (module reloads).

    Raises:
        ValueError: If another callable is already registered under the name.
    """
    existing = _functions.get(info.name)
    if existing is not None and existing.fn is not info.fn:
        msg = (
            f"Function name '{info.name}' already registered by {existing.qualified_name}"
        )
        raise ValueError(msg)
    _functions[info.name] = info
    return info


def register_interceptor(name: str, factory: InterceptorFactory) -> None:
    """Register an interceptor factory (usually the class) under ``name``."""
    _interceptors[name] = factory


def lookup_function(target: str) -> FunctionInfo | None:
    """Find a function by registered name or qualified name."""
    info = _functions.get(target)
    if info is not None:
        return info
    for info in _functions.values():
        if info.matches(target):
            return info
    return None


def find_function(fn: Any) -> FunctionInfo | None:
    """Find the registration of a callable, e.g. one loaded from an entry point."""
    for info in _functions.values():
        if info.fn is fn:
            return info
    return None


def lookup_interceptor(name: str) -> InterceptorFactory | None:
    return _interceptors.get(name)


def registered_functions() -> list[FunctionInfo]:
    return list(_functions.values())


def registered_interceptors() -> dict[str, InterceptorFactory]:
    return dict(_interceptors)
