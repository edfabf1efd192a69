"""@interceptor decorator: registers a hook or plugin class by name."""

from __future__ import annotations

from typing import TypeVar

from fnrun._registry import register_interceptor
from fnrun.domain.interceptor.model import Interceptor

I = TypeVar("I", bound=type[Interceptor])


def interceptor(name: str | None = None):
    """Register an ``Interceptor`` subclass under ``name``.

    The name is what ``preHooks`` / ``postHooks`` in the descriptor refer to.
    Defaults to the class's ``name`` attribute, then to its class name.
    The class must be constructible without arguments.
    """

    def register(cls: I) -> I:
        if not (isinstance(cls, type) and issubclass(cls, Interceptor)):
            raise TypeError(f"@interceptor expects an Interceptor subclass, got {cls!r}")
        register_interceptor(name or cls.name or cls.__name__, cls)
        return cls

    return register
