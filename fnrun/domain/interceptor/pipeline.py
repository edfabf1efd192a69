"""Ordered PRE/POST interceptor chain with per-entry failure isolation."""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from fnrun.domain.interceptor.model import Interceptor, Phase
from fnrun.domain.shared.error import ErrorValue, error_message
from fnrun.domain.shared.port.tracing import SpanKind, SpanSpec, Tracing
from fnrun.util.aio import resolve

if TYPE_CHECKING:
    from fnrun.domain.function.context import InvocationContext

logger = logging.getLogger(__name__)


class InterceptorPipeline:
    """Runs the interceptors of one phase in declaration order.

    Each entry is ``init()``-ed, executed and, unless it opts out, wrapped in
    its own span. An entry that fails (returned error or raised exception) is
    logged and skipped over: later entries and the function body still run.
    """

    def __init__(
        self,
        pre: Sequence[Interceptor],
        post: Sequence[Interceptor],
        tracing: Tracing,
    ) -> None:
        self._pre = tuple(pre)
        self._post = tuple(post)
        self._tracing = tracing

    @property
    def pre(self) -> tuple[Interceptor, ...]:
        return self._pre

    @property
    def post(self) -> tuple[Interceptor, ...]:
        return self._post

    def entries(self, phase: Phase) -> tuple[Interceptor, ...]:
        return self._pre if phase is Phase.PRE else self._post

    async def run(self, phase: Phase, ctx: "InvocationContext") -> list[ErrorValue]:
        """Run every entry of ``phase``. Returns the errors they reported."""
        errors: list[ErrorValue] = []
        for entry in self.entries(phase):
            try:
                instance = entry.init()
            except Exception as e:
                self._log_failure(entry, phase, e)
                errors.append(e)
                continue

            error = await self._run_entry(instance, phase, ctx)
            if error is not None:
                errors.append(error)
        return errors

    async def _run_entry(
        self,
        interceptor: Interceptor,
        phase: Phase,
        ctx: "InvocationContext",
    ) -> ErrorValue | None:
        async def work() -> ErrorValue | None:
            try:
                error = await resolve(interceptor.execute(ctx, phase))
            except Exception as e:
                error = e
            if error is not None:
                self._log_failure(interceptor, phase, error)
            return error

        if not interceptor.traced:
            return await work()

        return await self._tracing.execute_with_tracing(
            work,
            span=self._span_for(interceptor),
            scope=ctx,
        )

    @staticmethod
    def _span_for(interceptor: Interceptor) -> SpanSpec:
        tags = {
            "kind": interceptor.kind.value,
            "name": interceptor.display_name,
            "version": interceptor.version,
        }
        tags.update(interceptor.tracing_tags())
        return SpanSpec(name=interceptor.display_name, kind=SpanKind.INTERNAL, tags=tags)

    @staticmethod
    def _log_failure(interceptor: Interceptor, phase: Phase, error: ErrorValue) -> None:
        logger.error(
            "execute %s %s:%s (%s) error: %s",
            interceptor.kind.value,
            interceptor.display_name,
            interceptor.version,
            phase.value,
            error_message(error),
            exc_info=error if isinstance(error, Exception) else None,
        )
