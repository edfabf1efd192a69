"""Tracing gateway adapters: a no-op one and an OpenTelemetry one."""

import logging
from collections.abc import Mapping

from opentelemetry import baggage as otel_baggage
from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.context import Context
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from fnrun.domain.shared.error import ErrorValue, error_message
from fnrun.domain.shared.port.tracing import SpanKind, SpanSpec, TraceScope, Tracing, UnitOfWork

logger = logging.getLogger(__name__)

_SPAN_KINDS: dict[SpanKind, trace.SpanKind] = {
    SpanKind.SERVER: trace.SpanKind.SERVER,
    SpanKind.CONSUMER: trace.SpanKind.CONSUMER,
    SpanKind.PRODUCER: trace.SpanKind.PRODUCER,
    SpanKind.INTERNAL: trace.SpanKind.INTERNAL,
}

INVOKED_NAME_ATTRIBUTE = "faas.invoked_name"
INVOKED_PROVIDER_ATTRIBUTE = "faas.invoked_provider"


def default_propagator() -> TextMapPropagator:
    """W3C trace-context plus W3C baggage."""
    return CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])


class NoopTracing(Tracing):
    """Used when tracing is disabled: runs the work and logs what it reports."""

    @property
    def enabled(self) -> bool:
        return False

    async def execute_with_tracing(
        self,
        work: UnitOfWork,
        *,
        span: SpanSpec | None = None,
        carrier: Mapping[str, str] | None = None,
        scope: TraceScope | None = None,
    ) -> ErrorValue | None:
        error = await work()
        if error is not None:
            logger.error(
                "%s reported error: %s",
                span.name if span else "work",
                error_message(error),
            )
        return error


class OpenTelemetryTracing(Tracing):
    """Wraps units of work in OpenTelemetry spans.

    The parent of each span is taken from the carrier when one is given
    (no recognizable header starts a new root), otherwise from the scope's
    ``trace_context``. While the work runs, the scope holds the new span's
    context; the previous value is restored on every exit path.
    """

    def __init__(
        self,
        tracer: trace.Tracer,
        *,
        function_name: str,
        provider_name: str,
        tags: Mapping[str, str] | None = None,
        baggage: Mapping[str, str] | None = None,
        propagator: TextMapPropagator | None = None,
    ) -> None:
        self._tracer = tracer
        self._function_name = function_name
        self._provider_name = provider_name
        self._tags = dict(tags or {})
        self._baggage = dict(baggage or {})
        self._propagator = propagator or default_propagator()

    @property
    def enabled(self) -> bool:
        return True

    def _parent(self, carrier: Mapping[str, str] | None, scope: TraceScope | None) -> Context:
        if carrier is not None:
            parent = self._propagator.extract(carrier=dict(carrier), context=Context())
        elif scope is not None and scope.trace_context is not None:
            parent = scope.trace_context
        else:
            parent = Context()

        for key, value in self._baggage.items():
            parent = otel_baggage.set_baggage(key, value, context=parent)
        return parent

    def _attributes(self, spec: SpanSpec) -> dict[str, str]:
        attributes = {
            INVOKED_NAME_ATTRIBUTE: self._function_name,
            INVOKED_PROVIDER_ATTRIBUTE: self._provider_name,
        }
        attributes.update(self._tags)
        attributes.update(spec.tags)
        return attributes

    async def execute_with_tracing(
        self,
        work: UnitOfWork,
        *,
        span: SpanSpec | None = None,
        carrier: Mapping[str, str] | None = None,
        scope: TraceScope | None = None,
    ) -> ErrorValue | None:
        spec = span or SpanSpec(name=self._function_name)
        parent = self._parent(carrier, scope)

        otel_span = self._tracer.start_span(
            spec.name,
            context=parent,
            kind=_SPAN_KINDS[spec.kind],
            attributes=self._attributes(spec),
        )
        previous = scope.trace_context if scope is not None else None
        if scope is not None:
            scope.trace_context = trace.set_span_in_context(otel_span, parent)

        try:
            error = await work()
            if error is not None:
                if isinstance(error, Exception):
                    otel_span.record_exception(error)
                otel_span.set_status(Status(StatusCode.ERROR, error_message(error)))
            return error
        except Exception as e:
            otel_span.record_exception(e)
            otel_span.set_status(Status(StatusCode.ERROR, error_message(e)))
            raise
        finally:
            otel_span.end()
            if scope is not None:
                scope.trace_context = previous
