"""Runs one invocation: PRE interceptors, function body, POST interceptors."""

import logging

from fnrun.domain.function.context import InvocationContext
from fnrun.domain.function.model.function import FunctionKind
from fnrun.domain.function.model.out import SUCCESS_BODY, Out, normalize
from fnrun.domain.interceptor.model import Phase
from fnrun.domain.interceptor.pipeline import InterceptorPipeline
from fnrun.domain.shared.error import ConfigurationError, ErrorValue, error_message
from fnrun.domain.shared.port.tracing import SpanKind, SpanSpec, Tracing
from fnrun.domain.shared.service import Service
from fnrun.util.aio import resolve

logger = logging.getLogger(__name__)

BODY_SPAN_NAME = "function"


class FunctionInvoker(Service):
    """Executes a function inside the interceptor pipeline and tracing spans.

    Span layout per invocation::

        <function name>        (SERVER / CONSUMER / PRODUCER, parent from carrier)
          <pre interceptor>... (INTERNAL)
          function             (INTERNAL, the body)
          <post interceptor>...(INTERNAL)

    Exceptions raised by the function body propagate to the trigger; errors it
    returns end up in ``ctx.out``.
    """

    pipeline: InterceptorPipeline
    tracing: Tracing

    async def invoke(self, ctx: InvocationContext) -> Out:
        """Run the invocation and return the normalized ``ctx.out``."""

        async def invocation() -> ErrorValue | None:
            await self.pipeline.run(Phase.PRE, ctx)
            await self.tracing.execute_with_tracing(
                lambda: self._run_body(ctx),
                span=SpanSpec(
                    name=BODY_SPAN_NAME,
                    kind=SpanKind.INTERNAL,
                    tags={"function": ctx.function.qualified_name},
                ),
                scope=ctx,
            )
            await self.pipeline.run(Phase.POST, ctx)
            return None if ctx.out is None else ctx.out.error

        # An already-active context (event delivery span) wins over the event's own carrier
        carrier = ctx.carrier() if ctx.trace_context is None else None
        await self.tracing.execute_with_tracing(
            invocation,
            span=self.invocation_span(ctx),
            carrier=carrier,
            scope=ctx,
        )

        ctx.out = normalize(ctx.out)
        if ctx.out.error is not None:
            logger.warning(
                "Function %s finished with error: %s", ctx.function.name, error_message(ctx.out.error)
            )
        return ctx.out

    @staticmethod
    def invocation_span(ctx: InvocationContext) -> SpanSpec:
        if ctx.is_http:
            kind = SpanKind.SERVER
        elif ctx.inputs:
            kind = SpanKind.CONSUMER
        else:
            kind = SpanKind.PRODUCER
        return SpanSpec(
            name=ctx.function.name,
            kind=kind,
            tags={"function": ctx.function.qualified_name},
        )

    async def _run_body(self, ctx: InvocationContext) -> ErrorValue | None:
        kind = ctx.function.kind
        if kind is FunctionKind.HTTP:
            return await self._run_http(ctx)
        if kind is FunctionKind.CLOUDEVENT:
            return await self._run_cloudevent(ctx)
        return await self._run_generic(ctx)

    @staticmethod
    async def _run_http(ctx: InvocationContext) -> ErrorValue | None:
        request, response = ctx.http_request, ctx.http_response
        if request is None or response is None:
            raise ConfigurationError(
                f"HTTP function '{ctx.function.name}' can only be invoked over HTTP"
            )

        await resolve(ctx.function.fn(request, response))
        if ctx.out is None:
            ctx.out = Out(code=response.status_code, data=bytes(response.body) or None)
        return None

    @staticmethod
    async def _run_cloudevent(ctx: InvocationContext) -> ErrorValue | None:
        if ctx.cloud_event is None:
            raise ConfigurationError(
                f"Structured-event function '{ctx.function.name}' received no structured event"
            )

        error = await resolve(ctx.function.fn(ctx, ctx.cloud_event))
        if error is not None:
            ctx.out = Out.fail(error)
            return error
        if ctx.out is None:
            ctx.out = Out.ok(SUCCESS_BODY)
        return None

    @staticmethod
    async def _run_generic(ctx: InvocationContext) -> ErrorValue | None:
        result = await resolve(ctx.function.fn(ctx, ctx.payload))
        if isinstance(result, Out):
            ctx.out = result
        elif isinstance(result, Exception):
            ctx.out = Out.fail(result)
        elif isinstance(result, (str, bytes)):
            ctx.out = Out.ok(result)
        elif result is not None:
            raise TypeError(
                f"Function '{ctx.function.name}' returned {type(result).__name__}, expected Out or None"
            )
        return None if ctx.out is None else ctx.out.error
