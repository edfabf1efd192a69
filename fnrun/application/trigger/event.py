"""Event trigger: broker deliveries (input bindings and topic subscriptions)."""

import logging
from collections.abc import Callable, Mapping, Sequence

from pydantic import Field

from fnrun.domain.function.context import InvocationContext
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.event import CLOUDEVENT_SPEC_VERSION, BindingEvent, TopicEvent
from fnrun.domain.function.model.function import FunctionInfo, FunctionKind
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.function.service.invoker import FunctionInvoker
from fnrun.domain.shared.error import ConfigurationError, DeliveryError, NotFoundError, error_message
from fnrun.domain.shared.model.value import ValueObject

logger = logging.getLogger(__name__)


class TopicSubscription(ValueObject):
    """A topic the broker should deliver to ``route``."""

    pubsub_name: str
    topic: str
    route: str
    metadata: dict[str, str] = Field(default_factory=dict)


class EventTrigger:
    """Dispatches every delivered event to each configured function, in order.

    Only generic functions can be driven by broker events. A function that
    raises aborts the delivery with a ``DeliveryError`` so the broker applies
    its own redelivery policy; errors returned in ``Out`` are only logged.
    """

    def __init__(
        self,
        descriptor: FunctionDescriptor,
        functions: Sequence[FunctionInfo],
        invoker: FunctionInvoker,
        sidecar: Sidecar | None = None,
    ) -> None:
        if not descriptor.has_event_trigger():
            raise ConfigurationError(f"Function '{descriptor.name}' declares no event trigger")
        unsupported = [f.name for f in functions if f.kind is not FunctionKind.GENERIC]
        if unsupported:
            raise ConfigurationError(
                f"Functions {', '.join(unsupported)} cannot be triggered by events; "
                "use @function for event-driven functions"
            )
        if not functions:
            raise ConfigurationError("No function to dispatch events to")

        self._descriptor = descriptor
        self._functions = tuple(functions)
        self._invoker = invoker
        self._sidecar = sidecar
        self._triggers = descriptor.event_triggers()

    def list_input_bindings(self) -> list[str]:
        """Binding component names; the sidecar delivers each binding under this name."""
        return [
            component.component_name or key
            for key, component in self._triggers.items()
            if component.is_binding()
        ]

    def list_topic_subscriptions(self) -> list[TopicSubscription]:
        subscriptions = []
        for key, component in self._triggers.items():
            if not component.is_pubsub():
                continue
            if not component.topic:
                logger.warning("Pub/sub trigger '%s' declares no topic, not subscribing", key)
                continue
            subscriptions.append(
                TopicSubscription(
                    pubsub_name=component.component_name or key,
                    topic=component.topic,
                    route=key,
                    metadata=component.metadata,
                )
            )
        return subscriptions

    def has_binding(self, name: str) -> bool:
        return name in self.list_input_bindings()

    def subscription_for(self, route: str) -> TopicSubscription | None:
        for subscription in self.list_topic_subscriptions():
            if subscription.route == route:
                return subscription
        return None

    async def on_binding_event(
        self,
        name: str,
        metadata: Mapping[str, str] | None,
        data: bytes,
    ) -> None:
        """Handle one delivery from the input binding ``name``.

        Raises:
            NotFoundError: If ``name`` is not an input binding of this function.
            DeliveryError: If a function raised.
        """
        if not self.has_binding(name):
            raise NotFoundError(f"Unknown input binding '{name}'")

        event = BindingEvent(name=name, metadata=dict(metadata or {}), data=data)
        await self._dispatch(f"binding {name}", lambda f: self._context(f, binding_event=event))

    async def on_topic_event(
        self,
        pubsub_name: str,
        id: str,
        topic: str,
        specversion: str = CLOUDEVENT_SPEC_VERSION,
        source: str = "",
        type: str = "",
        datacontenttype: str = "",
        data: bytes = b"",
        extensions: Mapping[str, str] | None = None,
    ) -> None:
        """Handle one message delivered on ``pubsub_name``/``topic``.

        Raises:
            DeliveryError: If a function raised.
        """
        event = TopicEvent(
            name=pubsub_name,
            id=id,
            topic=topic,
            specversion=specversion,
            source=source,
            type=type,
            datacontenttype=datacontenttype,
            data=data,
            extensions=dict(extensions or {}),
        )
        await self._dispatch(
            f"topic {pubsub_name}/{topic}", lambda f: self._context(f, topic_event=event)
        )

    def _context(self, function: FunctionInfo, **event) -> InvocationContext:
        return InvocationContext(
            descriptor=self._descriptor,
            function=function,
            sidecar=self._sidecar,
            **event,
        )

    async def _dispatch(
        self,
        source: str,
        build: Callable[[FunctionInfo], InvocationContext],
    ) -> None:
        for function in self._functions:
            try:
                out = await self._invoker.invoke(build(function))
            except Exception as e:
                logger.exception("Function %s failed on %s", function.name, source)
                raise DeliveryError(
                    f"Function '{function.name}' failed on {source}: {error_message(e)}"
                ) from e

            if out.error is not None:
                logger.error(
                    "Function %s on %s returned error: %s",
                    function.name,
                    source,
                    out.error_message,
                )
            else:
                logger.info("Function %s handled %s: %s %s", function.name, source, out.code, out.text)
