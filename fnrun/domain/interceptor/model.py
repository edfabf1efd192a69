"""Interceptors: cross-cutting logic run before and after a function body.

Hooks and plugins are the same thing here. One ``Interceptor`` type with a
phase-aware ``execute``; ``kind`` only changes the tag put on its span.

Example (stateless hook, one shared instance)::

    @interceptor("audit")
    class AuditHook(Interceptor):
        name = "audit"
        version = "v2"

        async def execute(self, ctx, phase):
            logger.info("%s %s", phase, ctx.name)

Example (stateful plugin, fresh instance per invocation)::

    @interceptor("timer")
    class TimerPlugin(Plugin):
        name = "timer"
        stateful = True

        async def pre_hook(self, ctx):
            self.started = time.monotonic()

        async def post_hook(self, ctx):
            ctx.attributes["elapsed"] = time.monotonic() - self.started
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Awaitable, ClassVar

from fnrun.domain.shared.error import ErrorValue

if TYPE_CHECKING:
    from fnrun.domain.function.context import InvocationContext


class Phase(StrEnum):
    PRE = "pre"
    POST = "post"


class InterceptorKind(StrEnum):
    HOOK = "hook"
    PLUGIN = "plugin"


InterceptorResult = ErrorValue | None | Awaitable[ErrorValue | None]


class Interceptor(ABC):
    """Base class for hooks and plugins.

    Class variables:
        name: Name used in logs and span tags (defaults to the class name).
        version: Version used in logs and span tags.
        kind: ``hook`` or ``plugin``.
        stateful: When True, ``init()`` builds a fresh instance per invocation.
            Interceptors that keep per-request state on ``self`` must set it.
        traced: When False, the interceptor runs without its own span.
    """

    name: ClassVar[str] = ""
    version: ClassVar[str] = "v1"
    kind: ClassVar[InterceptorKind] = InterceptorKind.HOOK
    stateful: ClassVar[bool] = False
    traced: ClassVar[bool] = True

    @property
    def display_name(self) -> str:
        return self.name or type(self).__name__

    def init(self) -> "Interceptor":
        """Instance to run for one invocation.

        Stateless interceptors return themselves and are shared across
        concurrent invocations. Stateful ones are rebuilt with their no-argument
        constructor; override this when construction needs arguments.
        """
        if self.stateful:
            return type(self)()
        return self

    def tracing_tags(self) -> dict[str, str]:
        """Extra tags for this interceptor's span."""
        return {}

    def get_field(self, field_name: str) -> Any:
        """Expose a field to other interceptors or to the function."""
        return getattr(self, field_name, None)

    @abstractmethod
    def execute(self, ctx: "InvocationContext", phase: Phase) -> InterceptorResult:
        """Run for ``phase``. Return (or raise) an error to report a failure.

        Errors never stop the pipeline: they are logged and the next entry runs.
        May be a plain method or a coroutine.
        """
        ...


class Hook(Interceptor):
    """Phase-agnostic interceptor: the same ``execute`` runs in PRE and POST."""

    kind = InterceptorKind.HOOK


class Plugin(Interceptor):
    """Interceptor with separate pre and post operations."""

    kind = InterceptorKind.PLUGIN

    def execute(self, ctx: "InvocationContext", phase: Phase) -> InterceptorResult:
        if phase is Phase.PRE:
            return self.pre_hook(ctx)
        return self.post_hook(ctx)

    def pre_hook(self, ctx: "InvocationContext") -> InterceptorResult:
        return None

    def post_hook(self, ctx: "InvocationContext") -> InterceptorResult:
        return None
