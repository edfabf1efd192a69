"""Per-invocation context handed to functions and interceptors."""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fnrun.domain.function.model import json_format
from fnrun.domain.function.model.component import Component, ComponentMap
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.event import BindingEvent, CloudEvent, TopicEvent
from fnrun.domain.function.model.function import FunctionInfo
from fnrun.domain.function.model.http import HttpRequest, HttpResponse
from fnrun.domain.function.model.out import Out
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.shared.error import (
    ConfigurationError,
    ErrorValue,
    NotFoundError,
    SidecarError,
    UnsupportedOutputError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Binding technologies that receive payloads wrapped as structured events
CLOUDEVENT_BINDINGS: frozenset[str] = frozenset(
    {
        "bindings.kafka",
        "bindings.kubemq",
        "bindings.mqtt3",
        "bindings.rabbitmq",
        "bindings.redis",
        "bindings.gcp.pubsub",
        "bindings.azure.eventhubs",
    }
)


@dataclass
class InvocationContext:
    """Everything one invocation sees.

    Carries exactly one inbound event (an HTTP request/response pair, a binding
    event, a topic event or a structured event), read-only views of the declared
    components and the mutable ``out``. Owned by a single invocation.

    ``trace_context`` holds the active trace context; the tracing gateway
    swaps it while a span is open. ``attributes`` is free-form state shared by
    the interceptors and the function of this invocation.
    """

    descriptor: FunctionDescriptor
    function: FunctionInfo
    sidecar: Sidecar | None = None
    http_request: HttpRequest | None = None
    http_response: HttpResponse | None = None
    binding_event: BindingEvent | None = None
    topic_event: TopicEvent | None = None
    cloud_event: CloudEvent | None = None
    out: Out | None = None
    trace_context: Any = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        inbound = [
            e
            for e in (self.http_request, self.binding_event, self.topic_event)
            if e is not None
        ]
        # A structured event may arrive over HTTP, so it only conflicts with broker events
        if self.cloud_event is not None and (self.binding_event or self.topic_event):
            inbound.append(self.cloud_event)
        if len(inbound) > 1:
            raise ValueError("An invocation context carries exactly one inbound event")

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def inputs(self) -> ComponentMap:
        return self.descriptor.get_inputs()

    @property
    def outputs(self) -> ComponentMap:
        return self.descriptor.get_outputs()

    @property
    def states(self) -> ComponentMap:
        return self.descriptor.get_states()

    @property
    def event(self) -> HttpRequest | BindingEvent | TopicEvent | CloudEvent | None:
        return self.cloud_event or self.binding_event or self.topic_event or self.http_request

    @property
    def is_http(self) -> bool:
        return self.http_request is not None

    @property
    def payload(self) -> str | None:
        """Inbound payload as text, as handed to generic functions."""
        if self.cloud_event is not None:
            return self.cloud_event.text
        if self.binding_event is not None:
            return self.binding_event.text
        if self.topic_event is not None:
            return self.topic_event.text
        if self.http_request is not None:
            return self.http_request.text
        return None

    def carrier(self) -> Mapping[str, str]:
        """Where an upstream trace context travels for this event."""
        if self.cloud_event is not None:
            return self.cloud_event.trace_carrier()
        if self.topic_event is not None:
            return self.topic_event.extensions
        if self.binding_event is not None:
            return self.binding_event.metadata
        if self.http_request is not None:
            return self.http_request.headers
        return {}

    async def send(self, output_name: str, data: str | bytes | None) -> ErrorValue | None:
        """Send ``data`` to the declared output ``output_name``.

        Never raises for routing or sidecar failures: the error is returned.
        Nothing reaches the sidecar when the output is unknown or unsupported.
        """
        if data is None:
            return None

        outputs = self.outputs
        if not outputs:
            return NotFoundError("No output declared", code="NO_OUTPUT")

        component = outputs.get(output_name)
        if component is None:
            return NotFoundError(f"Output '{output_name}' is not declared")

        if self.sidecar is None:
            return ConfigurationError("No sidecar configured for outputs")

        try:
            if component.is_pubsub():
                return await self._publish(self.sidecar, output_name, component, data)
            if component.is_binding():
                return await self._invoke_binding(self.sidecar, output_name, component, data)
        except SidecarError as e:
            logger.error("Send to output '%s' failed: %s", output_name, e.message)
            return e

        return UnsupportedOutputError(
            f"Output '{output_name}' has unsupported type '{component.component_type}'"
        )

    async def _publish(
        self, sidecar: Sidecar, output_name: str, component: Component, data: str | bytes
    ) -> ErrorValue | None:
        if not component.topic:
            return ValidationError(f"Output '{output_name}' declares no topic", field="topic")
        await sidecar.publish(
            component.component_name or output_name,
            component.topic,
            data,
            component.metadata,
        )
        logger.debug("Published to %s/%s", component.component_name or output_name, component.topic)
        return None

    async def _invoke_binding(
        self, sidecar: Sidecar, output_name: str, component: Component, data: str | bytes
    ) -> ErrorValue | None:
        if component.component_type in CLOUDEVENT_BINDINGS:
            payload = self.package_as_cloudevent(data)
        else:
            payload = data.encode("utf-8") if isinstance(data, str) else data

        await sidecar.invoke_binding(
            component.component_name or output_name,
            component.operation,
            payload,
            component.metadata,
        )
        logger.debug("Invoked binding %s (%s)", component.component_name or output_name, component.operation)
        return None

    @staticmethod
    def package_as_cloudevent(payload: str | bytes) -> bytes:
        """Wrap ``payload`` as a serialized structured event."""
        return json_format.package(payload)
