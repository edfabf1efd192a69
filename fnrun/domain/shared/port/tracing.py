"""Port for the tracing gateway that wraps units of work in spans."""

from abc import abstractmethod
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import Field

from fnrun.domain.shared.error import ErrorValue
from fnrun.domain.shared.model.value import ValueObject
from fnrun.domain.shared.port import Port

UnitOfWork = Callable[[], Awaitable[ErrorValue | None]]
"""A unit of work reports failure by returning an error value."""


class SpanKind(StrEnum):
    SERVER = "server"
    CONSUMER = "consumer"
    PRODUCER = "producer"
    INTERNAL = "internal"


class SpanSpec(ValueObject):
    """Name, kind and tags of the span opened around a unit of work."""

    name: str
    kind: SpanKind = SpanKind.INTERNAL
    tags: dict[str, str] = Field(default_factory=dict)


class TraceScope(Protocol):
    """Anything carrying the active trace context of one unit of work.

    The invocation context is the usual scope. The gateway replaces
    ``trace_context`` while a span is open and restores it afterwards, so
    nested work finds its parent without any ambient state.
    """

    trace_context: Any


@runtime_checkable
class Tracing(Port, Protocol):
    """Backend-agnostic tracing gateway."""

    @property
    @abstractmethod
    def enabled(self) -> bool: ...

    @abstractmethod
    async def execute_with_tracing(
        self,
        work: UnitOfWork,
        *,
        span: SpanSpec | None = None,
        carrier: Mapping[str, str] | None = None,
        scope: TraceScope | None = None,
    ) -> ErrorValue | None:
        """Run ``work`` inside a span and return the error it reports.

        Args:
            work: The unit of work.
            span: Span name/kind/tags; defaults to a span named after the function.
            carrier: HTTP headers or event extensions to extract the parent from.
                When given, the parent comes from the carrier only.
            scope: Holder of the active trace context. Used as the parent when no
                carrier is given, and updated for the duration of ``work``.
        """
        ...
