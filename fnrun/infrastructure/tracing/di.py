"""DI provider for the tracing gateway."""

from dishka import provide

from fnrun.config import Config
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.shared.port.tracing import Tracing
from fnrun.infrastructure.tracing.setup import create_tracing
from fnrun.util.di.base import Provider
from fnrun.util.di.scope import Scope


class TracingProvider(Provider):
    @provide(scope=Scope.APP)
    def get_tracing(self, descriptor: FunctionDescriptor, config: Config) -> Tracing:
        # Configures the process tracer provider once, on first resolution
        return create_tracing(
            descriptor,
            pod_name=config.pod_name,
            pod_namespace=config.pod_namespace,
        )
