"""Unit tests for InvocationContext.send and its routing rules."""

import json
from unittest.mock import AsyncMock

import pytest

from fnrun.domain.function.context import InvocationContext
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.event import BindingEvent, TopicEvent
from fnrun.domain.function.model.function import FunctionInfo, FunctionKind
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.shared.error import (
    ConfigurationError,
    NotFoundError,
    SidecarError,
    UnsupportedOutputError,
)


def handler(ctx, payload):
    return None


FUNCTION = FunctionInfo(fn=handler, name="handler", kind=FunctionKind.GENERIC)


def make_descriptor(outputs: dict | None = None) -> FunctionDescriptor:
    return FunctionDescriptor.parse(
        json.dumps({"name": "fn", "runtime": "Knative", "outputs": outputs or {}})
    )


def make_context(outputs: dict | None = None, sidecar=None) -> InvocationContext:
    return InvocationContext(
        descriptor=make_descriptor(outputs),
        function=FUNCTION,
        sidecar=sidecar,
    )


OUTPUTS = {
    "notify": {"componentName": "notify", "componentType": "pubsub.redis", "topic": "events"},
    "kafka": {
        "componentName": "kafka-out",
        "componentType": "bindings.kafka",
        "operation": "create",
    },
    "webhook": {"componentName": "hook", "componentType": "bindings.http", "operation": "post"},
    "store": {"componentName": "store", "componentType": "state.redis"},
}


@pytest.fixture
def sidecar() -> AsyncMock:
    return AsyncMock(spec=Sidecar)


class TestSend:
    @pytest.mark.asyncio
    async def test_undeclared_output_returns_error(self, sidecar):
        ctx = make_context(OUTPUTS, sidecar)

        error = await ctx.send("missing", "data")

        assert isinstance(error, NotFoundError)
        sidecar.publish.assert_not_called()
        sidecar.invoke_binding.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_outputs_returns_error(self, sidecar):
        error = await make_context({}, sidecar).send("notify", "data")

        assert isinstance(error, NotFoundError)
        sidecar.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_none_data_is_a_no_op(self, sidecar):
        assert await make_context(OUTPUTS, sidecar).send("notify", None) is None
        sidecar.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_pubsub_publishes_to_topic(self, sidecar):
        error = await make_context(OUTPUTS, sidecar).send("notify", "done")

        assert error is None
        sidecar.publish.assert_awaited_once_with("notify", "events", "done", {})

    @pytest.mark.asyncio
    async def test_allow_listed_binding_gets_structured_event(self, sidecar):
        error = await make_context(OUTPUTS, sidecar).send("kafka", "hello")

        assert error is None
        sidecar.invoke_binding.assert_awaited_once()
        name, operation, payload, _ = sidecar.invoke_binding.await_args.args
        assert (name, operation) == ("kafka-out", "create")
        event = json.loads(payload)
        assert event["type"] == "dapr.invoke"
        assert event["data"] == "hello"

    @pytest.mark.asyncio
    async def test_other_binding_gets_raw_payload(self, sidecar):
        await make_context(OUTPUTS, sidecar).send("webhook", "hello")

        sidecar.invoke_binding.assert_awaited_once_with("hook", "post", b"hello", {})

    @pytest.mark.asyncio
    async def test_unsupported_type_returns_error(self, sidecar):
        error = await make_context(OUTPUTS, sidecar).send("store", "x")

        assert isinstance(error, UnsupportedOutputError)
        sidecar.publish.assert_not_called()
        sidecar.invoke_binding.assert_not_called()

    @pytest.mark.asyncio
    async def test_sidecar_failure_is_returned(self, sidecar):
        sidecar.publish.side_effect = SidecarError("connection refused")

        error = await make_context(OUTPUTS, sidecar).send("notify", "done")

        assert isinstance(error, SidecarError)

    @pytest.mark.asyncio
    async def test_missing_sidecar_is_returned(self):
        error = await make_context(OUTPUTS, None).send("notify", "done")

        assert isinstance(error, ConfigurationError)


class TestInboundEvent:
    def test_one_inbound_event_only(self):
        with pytest.raises(ValueError):
            InvocationContext(
                descriptor=make_descriptor(),
                function=FUNCTION,
                binding_event=BindingEvent(name="a"),
                topic_event=TopicEvent(name="b"),
            )

    def test_payload_and_carrier_come_from_the_event(self):
        ctx = InvocationContext(
            descriptor=make_descriptor(),
            function=FUNCTION,
            topic_event=TopicEvent(name="redis", data=b"hi", extensions={"traceparent": "x"}),
        )

        assert ctx.payload == "hi"
        assert ctx.carrier() == {"traceparent": "x"}
        assert not ctx.is_http
