from typing import NewType

from dishka import AsyncContainer, from_context, make_async_container, provide

from fnrun.application.trigger.event import EventTrigger
from fnrun.application.trigger.http import HttpTrigger
from fnrun.config import Config
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.function import FunctionInfo
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.function.service.invoker import FunctionInvoker
from fnrun.domain.interceptor.pipeline import InterceptorPipeline
from fnrun.domain.shared.error import ConfigurationError
from fnrun.domain.shared.port.tracing import Tracing
from fnrun.infrastructure.discovery import import_function_sources, resolve_functions, resolve_interceptors
from fnrun.infrastructure.sidecar.di import SidecarProvider
from fnrun.infrastructure.tracing.di import TracingProvider
from fnrun.util.di.base import Provider
from fnrun.util.di.scope import Scope

# Functions named by FUNCTION_TARGET, in order
FunctionTargets = NewType("FunctionTargets", list[FunctionInfo])
HttpTriggers = NewType("HttpTriggers", list[HttpTrigger])


def load_functions(config: Config) -> FunctionTargets:
    """Import the configured sources and resolve the function targets.

    Raises:
        ConfigurationError: If a source cannot be imported or a target is unknown.
    """
    import_function_sources(config.source_modules)
    return FunctionTargets(resolve_functions(config.targets))


class RuntimeProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)
    descriptor = from_context(provides=FunctionDescriptor, scope=Scope.APP)
    functions = from_context(provides=FunctionTargets, scope=Scope.APP)

    @provide(scope=Scope.APP)
    def get_pipeline(self, descriptor: FunctionDescriptor, tracing: Tracing) -> InterceptorPipeline:
        return InterceptorPipeline(
            pre=resolve_interceptors(descriptor.pre_hook_names),
            post=resolve_interceptors(descriptor.post_hook_names),
            tracing=tracing,
        )

    @provide(scope=Scope.APP)
    def get_invoker(self, pipeline: InterceptorPipeline, tracing: Tracing) -> FunctionInvoker:
        return FunctionInvoker(pipeline=pipeline, tracing=tracing)

    @provide(scope=Scope.APP)
    def get_http_triggers(
        self,
        descriptor: FunctionDescriptor,
        functions: FunctionTargets,
        invoker: FunctionInvoker,
        sidecar: Sidecar,
    ) -> HttpTriggers:
        if not descriptor.has_http_trigger():
            return HttpTriggers([])

        triggers: list[HttpTrigger] = []
        paths: dict[str, str] = {}
        for function in functions:
            if function.path in paths:
                raise ConfigurationError(
                    f"Functions '{paths[function.path]}' and '{function.name}' share path {function.path}"
                )
            paths[function.path] = function.name
            triggers.append(
                HttpTrigger(function, descriptor, invoker, _sidecar_for(descriptor, sidecar))
            )
        return HttpTriggers(triggers)

    @provide(scope=Scope.APP)
    def get_event_trigger(
        self,
        descriptor: FunctionDescriptor,
        functions: FunctionTargets,
        invoker: FunctionInvoker,
        sidecar: Sidecar,
    ) -> EventTrigger:
        return EventTrigger(descriptor, functions, invoker, _sidecar_for(descriptor, sidecar))


def _sidecar_for(descriptor: FunctionDescriptor, sidecar: Sidecar) -> Sidecar | None:
    return sidecar if descriptor.needs_sidecar() else None


def create_container(
    config: Config,
    descriptor: FunctionDescriptor,
    functions: FunctionTargets,
) -> AsyncContainer:
    return make_async_container(
        RuntimeProvider(),
        TracingProvider(),
        SidecarProvider(),
        context={
            Config: config,
            FunctionDescriptor: descriptor,
            FunctionTargets: functions,
        },
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
