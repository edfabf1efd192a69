"""Unit tests for FunctionDescriptor parsing and its derived views."""

import json
from datetime import timedelta

import pytest

from fnrun.domain.function.model.descriptor import DEFAULT_PORT, FunctionDescriptor
from fnrun.domain.shared.error import ConfigurationError


def parse(**fields) -> FunctionDescriptor:
    return FunctionDescriptor.parse(json.dumps(fields))


class TestParse:
    def test_parses_camel_case_and_ignores_unknown_fields(self):
        descriptor = parse(
            name="fn",
            version="v2",
            triggers={"http": {"port": 9000}},
            outputs={"out": {"componentName": "kafka-out", "componentType": "bindings.kafka"}},
            somethingNew={"x": 1},
        )

        assert descriptor.name == "fn"
        assert descriptor.version == "v2"
        assert descriptor.get_outputs()["out"].component_name == "kafka-out"

    def test_missing_trigger_is_fatal(self):
        with pytest.raises(ConfigurationError, match="no trigger"):
            parse(name="fn")

    def test_malformed_json_is_fatal(self):
        with pytest.raises(ConfigurationError):
            FunctionDescriptor.parse("{not json")

    def test_wrong_field_type_is_fatal(self):
        with pytest.raises(ConfigurationError):
            parse(name="fn", triggers={"http": {"port": "not-a-port"}})

    def test_null_collections_become_empty(self):
        descriptor = parse(name="fn", runtime="Knative", inputs=None, preHooks=None)

        assert dict(descriptor.get_inputs()) == {}
        assert descriptor.pre_hook_names == []


class TestDeprecatedFields:
    def test_plugins_used_when_hooks_absent(self):
        descriptor = parse(runtime="Knative", prePlugins=["a"], postPlugins=["b"])

        assert descriptor.pre_hook_names == ["a"]
        assert descriptor.post_hook_names == ["b"]

    def test_hooks_win_over_plugins(self):
        descriptor = parse(runtime="Knative", preHooks=["new"], prePlugins=["old"])

        assert descriptor.pre_hook_names == ["new"]

    def test_plugins_tracing_used_when_tracing_absent(self):
        descriptor = parse(runtime="Knative", pluginsTracing={"enabled": True})

        assert descriptor.is_tracing_enabled()

    def test_tracing_disabled_by_default(self):
        assert not parse(runtime="Knative").is_tracing_enabled()

    def test_port_fallbacks(self):
        assert parse(runtime="Knative").listen_port == DEFAULT_PORT
        assert parse(runtime="Knative", port=9090).listen_port == 9090
        assert parse(port=9090, triggers={"http": {"port": 7070}}).listen_port == 7070


class TestTriggers:
    def test_knative_runtime_is_http_only(self):
        descriptor = parse(runtime="Knative")

        assert descriptor.has_http_trigger()
        assert not descriptor.has_event_trigger()

    def test_async_runtime_triggers_on_inputs(self):
        descriptor = parse(
            runtime="Async",
            inputs={"orders": {"componentName": "orders", "componentType": "bindings.kafka"}},
        )

        assert descriptor.has_event_trigger()
        assert list(descriptor.event_triggers()) == ["orders"]

    def test_dapr_triggers_keyed_by_input_name(self):
        descriptor = parse(
            triggers={
                "dapr": [
                    {"name": "kafka-in", "type": "bindings.kafka", "inputName": "orders"},
                    {"name": "redis", "type": "pubsub.redis", "topic": "events"},
                ]
            }
        )

        triggers = descriptor.event_triggers()
        assert set(triggers) == {"orders", "redis"}
        assert triggers["orders"].component_name == "kafka-in"
        assert triggers["redis"].topic == "events"

    def test_needs_sidecar(self):
        assert not parse(runtime="Knative").needs_sidecar()
        assert parse(
            runtime="Knative",
            outputs={"o": {"componentType": "pubsub.redis", "topic": "t"}},
        ).needs_sidecar()


class TestExporterSettings:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("10s", timedelta(seconds=10)),
            ("500ms", timedelta(milliseconds=500)),
            ("2m", timedelta(minutes=2)),
        ],
    )
    def test_short_durations(self, raw, expected):
        descriptor = parse(
            runtime="Knative",
            tracing={
                "enabled": True,
                "provider": {"name": "opentelemetry", "exporter": {"timeout": raw}},
            },
        )

        exporter = descriptor.tracing_settings.provider.exporter
        assert exporter.timeout == expected
        assert exporter.name == "otlp"
