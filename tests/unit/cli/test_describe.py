"""Tests for the CLI helpers."""

import json

from fnrun.cli.commands.describe import _component_rows, _summary
from fnrun.cli.util import build_config
from fnrun.domain.function.model.descriptor import FunctionDescriptor

DESCRIPTOR = {
    "name": "order-processor",
    "version": "v1.0.0",
    "runtime": "Async",
    "inputs": {"orders": {"componentName": "orders", "componentType": "bindings.kafka"}},
    "outputs": {
        "notify": {"componentName": "notify", "componentType": "pubsub.redis", "topic": "events"},
        "archive": {"componentName": "s3", "componentType": "bindings.aws.s3", "operation": "create"},
    },
    "preHooks": ["audit"],
    "tracing": {"enabled": True, "provider": {"name": "logfire"}},
}


class TestDescribe:
    def test_component_rows(self):
        descriptor = FunctionDescriptor.parse(json.dumps(DESCRIPTOR))

        rows = _component_rows(descriptor.get_outputs())

        assert rows == [
            {"name": "notify", "component": "notify", "type": "pubsub.redis", "detail": "events"},
            {"name": "archive", "component": "s3", "type": "bindings.aws.s3", "detail": "create"},
        ]

    def test_summary(self):
        summary = _summary(FunctionDescriptor.parse(json.dumps(DESCRIPTOR)))

        assert "v1.0.0" in summary
        assert "events (1)" in summary
        assert "http" not in summary
        assert "audit" in summary
        assert "logfire" in summary


class TestBuildConfig:
    def test_options_become_overrides(self, monkeypatch, tmp_path):
        monkeypatch.delenv("FUNC_CONTEXT", raising=False)
        path = tmp_path / "function.json"

        config = build_config(target="orders", source="shop.functions", context_file=path)

        assert config.targets == ["orders"]
        assert config.source_modules == ["shop.functions"]
        assert config.func_context is None
        assert config.func_context_file == str(path)
