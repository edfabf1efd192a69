"""Global test fixtures."""

import json
from collections.abc import Iterator

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from fnrun import _registry


@pytest.fixture(autouse=True)
def clean_registry() -> Iterator[None]:
    """Every test starts and ends with an empty function/interceptor registry."""
    _registry.clear()
    yield
    _registry.clear()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter: InMemorySpanExporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("fnrun-tests")


@pytest.fixture
def orders_descriptor_json() -> str:
    """Binding "orders" in, pub/sub "notify" out."""
    return json.dumps(
        {
            "name": "order-processor",
            "version": "v1.0.0",
            "runtime": "Async",
            "inputs": {
                "orders": {"componentName": "orders", "componentType": "bindings.kafka"},
            },
            "outputs": {
                "notify": {
                    "componentName": "notify",
                    "componentType": "pubsub.redis",
                    "topic": "events",
                },
            },
        }
    )
