"""Helpers for calling user code that may or may not be a coroutine."""

import inspect
from typing import Any, TypeVar

T = TypeVar("T")


async def resolve(value: T | Any) -> T:
    """Await ``value`` if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value
