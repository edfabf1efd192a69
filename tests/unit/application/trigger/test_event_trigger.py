"""Tests for the event trigger, including the binding-in / pub/sub-out flow."""

import json
from unittest.mock import AsyncMock

import pytest

from fnrun.application.trigger.event import EventTrigger, TopicSubscription
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.function import FunctionInfo, FunctionKind
from fnrun.domain.function.model.out import Out
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.function.service.invoker import FunctionInvoker
from fnrun.domain.interceptor.pipeline import InterceptorPipeline
from fnrun.domain.shared.error import ConfigurationError, DeliveryError, NotFoundError
from fnrun.infrastructure.tracing.gateway import NoopTracing

SUBSCRIBER = {
    "name": "subscriber",
    "triggers": {
        "dapr": [
            {"name": "orders", "type": "bindings.kafka"},
            {"name": "events", "type": "pubsub.redis", "topic": "created", "inputName": "on-created"},
            {"name": "orphan", "type": "pubsub.redis"},
        ]
    },
}


@pytest.fixture
def invoker() -> FunctionInvoker:
    tracing = NoopTracing()
    return FunctionInvoker(
        pipeline=InterceptorPipeline(pre=[], post=[], tracing=tracing),
        tracing=tracing,
    )


@pytest.fixture
def sidecar() -> AsyncMock:
    return AsyncMock(spec=Sidecar)


def generic(fn, name: str) -> FunctionInfo:
    return FunctionInfo(fn=fn, name=name, kind=FunctionKind.GENERIC)


class TestConstruction:
    def test_requires_an_event_trigger(self, invoker):
        descriptor = FunctionDescriptor.parse(json.dumps({"name": "web", "runtime": "Knative"}))

        with pytest.raises(ConfigurationError, match="no event trigger"):
            EventTrigger(descriptor, [generic(lambda c, p: None, "f")], invoker)

    def test_only_generic_functions(self, invoker):
        descriptor = FunctionDescriptor.parse(json.dumps(SUBSCRIBER))
        info = FunctionInfo(fn=lambda r, w: None, name="raw", kind=FunctionKind.HTTP)

        with pytest.raises(ConfigurationError, match="raw"):
            EventTrigger(descriptor, [info], invoker)

    def test_requires_a_function(self, invoker):
        descriptor = FunctionDescriptor.parse(json.dumps(SUBSCRIBER))

        with pytest.raises(ConfigurationError):
            EventTrigger(descriptor, [], invoker)


class TestRouting:
    def test_bindings_and_subscriptions(self, invoker):
        trigger = EventTrigger(
            FunctionDescriptor.parse(json.dumps(SUBSCRIBER)),
            [generic(lambda c, p: None, "f")],
            invoker,
        )

        assert trigger.list_input_bindings() == ["orders"]
        assert trigger.list_topic_subscriptions() == [
            TopicSubscription(pubsub_name="events", topic="created", route="on-created")
        ]
        assert trigger.has_binding("orders")
        assert not trigger.has_binding("on-created")
        assert trigger.subscription_for("on-created").topic == "created"
        assert trigger.subscription_for("orders") is None


class TestDelivery:
    @pytest.mark.asyncio
    async def test_binding_delivery_publishes_once(self, orders_descriptor_json, invoker, sidecar):
        calls = []

        async def process(ctx, payload):
            calls.append(json.loads(payload))
            error = await ctx.send("notify", "done")
            return Out.fail(error) if error else Out.ok("processed")

        trigger = EventTrigger(
            FunctionDescriptor.parse(orders_descriptor_json),
            [generic(process, "process")],
            invoker,
            sidecar,
        )

        await trigger.on_binding_event("orders", {}, b'{"id":1}')

        assert calls == [{"id": 1}]
        sidecar.publish.assert_awaited_once_with("notify", "events", "done", {})
        sidecar.invoke_binding.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_binding_is_delivered_under_its_component_name(self, invoker):
        received = []
        descriptor = FunctionDescriptor.parse(
            json.dumps(
                {
                    "name": "order-processor",
                    "runtime": "Async",
                    "inputs": {
                        "orders": {"componentName": "kafka-orders", "componentType": "bindings.kafka"}
                    },
                }
            )
        )
        trigger = EventTrigger(
            descriptor, [generic(lambda c, p: received.append(c.binding_event.name), "f")], invoker
        )

        await trigger.on_binding_event("kafka-orders", {}, b'{"id":1}')

        assert trigger.list_input_bindings() == ["kafka-orders"]
        assert trigger.has_binding("kafka-orders")
        assert not trigger.has_binding("orders")
        assert received == ["kafka-orders"]
        with pytest.raises(NotFoundError):
            await trigger.on_binding_event("orders", {}, b"{}")

    @pytest.mark.asyncio
    async def test_unknown_binding(self, orders_descriptor_json, invoker):
        trigger = EventTrigger(
            FunctionDescriptor.parse(orders_descriptor_json),
            [generic(lambda c, p: None, "f")],
            invoker,
        )

        with pytest.raises(NotFoundError):
            await trigger.on_binding_event("payments", {}, b"{}")

    @pytest.mark.asyncio
    async def test_every_function_runs_in_order(self, invoker):
        order = []
        trigger = EventTrigger(
            FunctionDescriptor.parse(json.dumps(SUBSCRIBER)),
            [
                generic(lambda c, p: order.append(("first", p)), "first"),
                generic(lambda c, p: order.append(("second", c.topic_event.id)), "second"),
            ],
            invoker,
        )

        await trigger.on_topic_event("events", "evt-1", "created", data=b"hi")

        assert order == [("first", "hi"), ("second", "evt-1")]

    @pytest.mark.asyncio
    async def test_raised_exception_aborts_the_delivery(self, invoker):
        later = []

        def broken(ctx, payload):
            raise RuntimeError("database down")

        trigger = EventTrigger(
            FunctionDescriptor.parse(json.dumps(SUBSCRIBER)),
            [generic(broken, "broken"), generic(lambda c, p: later.append(p), "later")],
            invoker,
        )

        with pytest.raises(DeliveryError, match="database down"):
            await trigger.on_binding_event("orders", {}, b"{}")
        assert later == []

    @pytest.mark.asyncio
    async def test_returned_error_is_only_logged(self, invoker):
        trigger = EventTrigger(
            FunctionDescriptor.parse(json.dumps(SUBSCRIBER)),
            [generic(lambda c, p: Out.fail("rejected"), "f")],
            invoker,
        )

        await trigger.on_binding_event("orders", {}, b"{}")
