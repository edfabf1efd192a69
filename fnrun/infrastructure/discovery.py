"""Resolve configured function targets and interceptor names.

Resolution order for both: the in-process registry (decorators), then
packaging entry points.

Example pyproject.toml entries:
    [project.entry-points."fnrun.functions"]
    orders = "shop.functions:handle_order"

    [project.entry-points."fnrun.interceptors"]
    audit = "shop.hooks:AuditHook"
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from importlib.metadata import EntryPoint, entry_points
from typing import Any

from fnrun import _registry
from fnrun.domain.function.model.function import FunctionInfo
from fnrun.domain.interceptor.model import Interceptor
from fnrun.domain.shared.error import ConfigurationError

logger = logging.getLogger(__name__)

FUNCTION_ENTRY_POINT_GROUP = "fnrun.functions"
INTERCEPTOR_ENTRY_POINT_GROUP = "fnrun.interceptors"


def _entry_point(group: str, name: str) -> EntryPoint | None:
    for ep in entry_points(group=group):
        if ep.name == name:
            return ep
    return None


def import_function_sources(modules: Iterable[str]) -> None:
    """Import the modules that hold decorated functions and interceptors.

    Raises:
        ConfigurationError: If a module cannot be imported.
    """
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            raise ConfigurationError(f"Cannot import function source '{module}': {e}") from e
        logger.debug("Imported function source: %s", module)


def resolve_function(target: str) -> FunctionInfo:
    """Resolve one function target.

    Raises:
        ConfigurationError: If the target is unknown or does not point at a
            decorated function.
    """
    info = _registry.lookup_function(target)
    if info is not None:
        return info

    ep = _entry_point(FUNCTION_ENTRY_POINT_GROUP, target)
    if ep is None:
        known = ", ".join(sorted(i.name for i in _registry.registered_functions())) or "(none)"
        raise ConfigurationError(f"Unknown function target '{target}'. Registered: {known}")

    try:
        loaded = ep.load()
    except Exception as e:
        raise ConfigurationError(f"Failed to load function '{target}': {e}") from e

    # Loading the module runs its decorators
    info = _registry.find_function(loaded)
    if info is None:
        raise ConfigurationError(
            f"Entry point '{target}' ({ep.value}) is not a decorated fnrun function"
        )
    return info


def resolve_functions(targets: Iterable[str]) -> list[FunctionInfo]:
    """Resolve a list of targets, keeping their order."""
    functions = [resolve_function(t) for t in targets]
    if not functions:
        raise ConfigurationError("No function target configured")
    return functions


def _instantiate(name: str, factory: Any) -> Interceptor:
    instance = factory()
    if not isinstance(instance, Interceptor):
        raise TypeError(f"Interceptor {name} must build an Interceptor, got {type(instance).__name__}")
    return instance


def resolve_interceptor(name: str) -> Interceptor | None:
    """Build the interceptor registered as ``name``.

    Returns None (after logging a warning) when it cannot be found or built,
    so a broken hook never keeps the function from starting.
    """
    factory = _registry.lookup_interceptor(name)
    try:
        if factory is None:
            ep = _entry_point(INTERCEPTOR_ENTRY_POINT_GROUP, name)
            if ep is None:
                logger.warning("Interceptor '%s' not found, skipping", name)
                return None
            factory = _registry.lookup_interceptor(name) or ep.load()
        return _instantiate(name, factory)
    except Exception as e:
        logger.warning("Failed to load interceptor '%s': %s", name, e)
        return None


def resolve_interceptors(names: Iterable[str]) -> list[Interceptor]:
    """Build interceptors in declaration order, dropping the ones that fail."""
    resolved: list[Interceptor] = []
    for name in names:
        instance = resolve_interceptor(name)
        if instance is not None:
            resolved.append(instance)
    return resolved
