"""Tests for the HTTP trigger."""

import json

import pytest

from fnrun.application.trigger.http import HttpTrigger
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.function import FunctionInfo, FunctionKind
from fnrun.domain.function.model.http import HttpRequest
from fnrun.domain.function.model.out import Out
from fnrun.domain.function.service.invoker import FunctionInvoker
from fnrun.domain.interceptor.model import Hook
from fnrun.domain.interceptor.pipeline import InterceptorPipeline
from fnrun.infrastructure.tracing.gateway import NoopTracing

DESCRIPTOR = FunctionDescriptor.parse(json.dumps({"name": "greeter", "runtime": "Knative"}))


def trigger(info: FunctionInfo, pre=()) -> HttpTrigger:
    tracing = NoopTracing()
    invoker = FunctionInvoker(
        pipeline=InterceptorPipeline(pre=pre, post=[], tracing=tracing),
        tracing=tracing,
    )
    return HttpTrigger(info, DESCRIPTOR, invoker)


class CountingHook(Hook):
    name = "count"

    def __init__(self) -> None:
        self.calls = 0

    def execute(self, ctx, phase):
        self.calls += 1


class TestRawHttpFunction:
    @pytest.mark.asyncio
    async def test_function_writes_the_response(self):
        def hello(request, response):
            response.status_code = 201
            response.set_header("x-greeting", "yes")
            response.write(b"hello " + request.body)

        info = FunctionInfo(fn=hello, name="hello", kind=FunctionKind.HTTP)

        response = await trigger(info).handle(HttpRequest("POST", "/", body=b"ada"))

        assert response.status_code == 201
        assert response.headers["x-greeting"] == "yes"
        assert bytes(response.body) == b"hello ada"

    @pytest.mark.asyncio
    async def test_disallowed_method(self):
        info = FunctionInfo(
            fn=lambda request, response: None,
            name="hello",
            kind=FunctionKind.HTTP,
            methods=frozenset({"POST", "GET"}),
        )

        response = await trigger(info).handle(HttpRequest("DELETE", "/"))

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"

    @pytest.mark.asyncio
    async def test_raised_exception_becomes_500(self):
        def broken(request, response):
            raise RuntimeError("database down")

        info = FunctionInfo(fn=broken, name="broken", kind=FunctionKind.HTTP)

        response = await trigger(info).handle(HttpRequest("GET", "/"))

        assert response.status_code == 500
        assert bytes(response.body) == b"database down"


class TestCloudEventFunction:
    @pytest.mark.asyncio
    async def test_binary_mode_event(self):
        received = []

        def on_event(ctx, event):
            received.append((event.id, event.type, event.text))

        info = FunctionInfo(fn=on_event, name="on_event", kind=FunctionKind.CLOUDEVENT)
        request = HttpRequest(
            "POST",
            "/",
            headers={
                "ce-id": "42",
                "ce-source": "shop",
                "ce-type": "order.created",
                "ce-specversion": "1.0",
                "content-type": "application/json",
            },
            body=b'{"id":1}',
        )

        response = await trigger(info).handle(request)

        assert received == [("42", "order.created", '{"id":1}')]
        assert response.status_code == 200
        assert bytes(response.body) == b"Success"

    @pytest.mark.asyncio
    async def test_malformed_event_answers_500_without_hooks(self):
        hook = CountingHook()
        info = FunctionInfo(fn=lambda ctx, event: None, name="on_event", kind=FunctionKind.CLOUDEVENT)
        request = HttpRequest(
            "POST",
            "/",
            headers={"content-type": "application/cloudevents+json"},
            body=b"{not json",
        )

        response = await trigger(info, pre=[hook]).handle(request)

        assert response.status_code == 500
        assert b"not valid JSON" in bytes(response.body)
        assert hook.calls == 0

    @pytest.mark.asyncio
    async def test_returned_error(self):
        info = FunctionInfo(
            fn=lambda ctx, event: ValueError("unknown order"),
            name="on_event",
            kind=FunctionKind.CLOUDEVENT,
        )
        request = HttpRequest(
            "POST",
            "/",
            headers={"content-type": "application/cloudevents+json"},
            body=json.dumps({"id": "1", "source": "shop", "type": "order.created"}).encode(),
        )

        response = await trigger(info).handle(request)

        assert response.status_code == 500
        assert bytes(response.body) == b"unknown order"


class TestGenericFunction:
    @pytest.mark.asyncio
    async def test_out_becomes_the_response(self):
        def echo(ctx, payload):
            return Out.ok(payload, code=202)

        info = FunctionInfo(fn=echo, name="echo", kind=FunctionKind.GENERIC)
        hook = CountingHook()

        response = await trigger(info, pre=[hook]).handle(HttpRequest("POST", "/", body=b"ping"))

        assert response.status_code == 202
        assert bytes(response.body) == b"ping"
        assert response.headers["content-type"].startswith("text/plain")
        assert hook.calls == 1

    @pytest.mark.asyncio
    async def test_no_out_is_success(self):
        info = FunctionInfo(fn=lambda ctx, payload: None, name="noop", kind=FunctionKind.GENERIC)

        response = await trigger(info).handle(HttpRequest("GET", "/"))

        assert (response.status_code, bytes(response.body)) == (200, b"Success")
