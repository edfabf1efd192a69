"""Function descriptor: the declarative description a function is run from."""

import re
from datetime import timedelta
from typing import Any

from pydantic import Field, ValidationError, field_validator

from fnrun.domain.function.model.component import Component, ComponentMap, read_only
from fnrun.domain.shared.error import ConfigurationError
from fnrun.domain.shared.model.value import DescriptorModel

# Deprecated ``runtime`` values, kept for descriptors written before ``triggers``
SYNC_RUNTIME = "Knative"
ASYNC_RUNTIME = "Async"

DEFAULT_PORT = 8080

_DURATION_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s|m|h)$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _none_as_empty(value: Any, empty: Any) -> Any:
    return empty if value is None else value


# =============================================================================
# Tracing settings
# =============================================================================


class ExporterSettings(DescriptorModel):
    """Span exporter settings for the tracing provider."""

    name: str = "otlp"
    endpoint: str | None = None
    protocol: str | None = None  # "grpc" (default) or "http/protobuf"
    compression: str | None = None
    timeout: timedelta | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("timeout", mode="before")
    @classmethod
    def parse_short_duration(cls, value: Any) -> Any:
        """Accept ``10s`` / ``500ms`` style durations besides ISO-8601 and seconds."""
        if isinstance(value, str):
            match = _DURATION_RE.match(value.strip())
            if match:
                seconds = float(match["value"]) * _DURATION_UNITS[match["unit"]]
                return timedelta(seconds=seconds)
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def headers_default(cls, value: Any) -> Any:
        return _none_as_empty(value, {})


class TracingProviderSettings(DescriptorModel):
    name: str | None = None
    oap_server: str | None = None
    exporter: ExporterSettings | None = None


class TracingSettings(DescriptorModel):
    """Tracing switch, provider and the static tags/baggage put on every span."""

    enabled: bool = False
    provider: TracingProviderSettings | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    baggage: dict[str, str] = Field(default_factory=dict)

    @field_validator("tags", "baggage", mode="before")
    @classmethod
    def maps_default(cls, value: Any) -> Any:
        return _none_as_empty(value, {})

    @property
    def provider_name(self) -> str | None:
        return self.provider.name if self.provider else None


# =============================================================================
# Triggers
# =============================================================================


class HttpTriggerSettings(DescriptorModel):
    port: int | None = None


class EventTriggerSettings(DescriptorModel):
    """One broker-delivered trigger (binding or pub/sub subscription)."""

    name: str
    type: str
    topic: str | None = None
    input_name: str | None = None

    @property
    def key(self) -> str:
        return self.input_name or self.name

    def to_component(self) -> Component:
        return Component(component_name=self.name, component_type=self.type, topic=self.topic)


class Triggers(DescriptorModel):
    http: HttpTriggerSettings | None = None
    dapr: list[EventTriggerSettings] = Field(default_factory=list)

    @field_validator("dapr", mode="before")
    @classmethod
    def dapr_default(cls, value: Any) -> Any:
        return _none_as_empty(value, [])


# =============================================================================
# Function descriptor
# =============================================================================


class FunctionDescriptor(DescriptorModel):
    """Validated function descriptor. Immutable for the life of the process.

    Deprecated fields (``runtime``, ``port``, ``prePlugins``, ``postPlugins``,
    ``pluginsTracing``) are still honoured when their replacements are absent.
    """

    name: str = "function"
    version: str = ""
    inputs: dict[str, Component] = Field(default_factory=dict)
    outputs: dict[str, Component] = Field(default_factory=dict)
    states: dict[str, Component] = Field(default_factory=dict)
    pre_hooks: list[str] = Field(default_factory=list)
    post_hooks: list[str] = Field(default_factory=list)
    tracing: TracingSettings | None = None
    triggers: Triggers | None = None

    runtime: str | None = None  # deprecated: "Knative" | "Async"
    port: int = DEFAULT_PORT  # deprecated: use triggers.http.port
    pre_plugins: list[str] = Field(default_factory=list)  # deprecated
    post_plugins: list[str] = Field(default_factory=list)  # deprecated
    plugins_tracing: TracingSettings | None = None  # deprecated

    @field_validator("inputs", "outputs", "states", mode="before")
    @classmethod
    def components_default(cls, value: Any) -> Any:
        return _none_as_empty(value, {})

    @field_validator("pre_hooks", "post_hooks", "pre_plugins", "post_plugins", mode="before")
    @classmethod
    def names_default(cls, value: Any) -> Any:
        return _none_as_empty(value, [])

    @classmethod
    def parse(cls, raw: str | bytes) -> "FunctionDescriptor":
        """Parse a JSON descriptor and check it declares at least one trigger.

        Raises:
            ConfigurationError: If the JSON is malformed, a field has the wrong
                type, or no trigger transport is declared.
        """
        try:
            descriptor = cls.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid function descriptor: {e}") from e

        if not (descriptor.has_http_trigger() or descriptor.has_event_trigger()):
            raise ConfigurationError(
                f"Function '{descriptor.name}' declares no trigger (http or dapr)"
            )
        return descriptor

    # --- component registry views ---

    def get_inputs(self) -> ComponentMap:
        return read_only(self.inputs)

    def get_outputs(self) -> ComponentMap:
        return read_only(self.outputs)

    def get_states(self) -> ComponentMap:
        return read_only(self.states)

    def get_triggers(self) -> Triggers:
        return self.triggers or Triggers()

    # --- hooks ---

    @property
    def pre_hook_names(self) -> list[str]:
        return list(self.pre_hooks or self.pre_plugins)

    @property
    def post_hook_names(self) -> list[str]:
        return list(self.post_hooks or self.post_plugins)

    # --- tracing ---

    @property
    def tracing_settings(self) -> TracingSettings:
        return self.tracing or self.plugins_tracing or TracingSettings()

    def is_tracing_enabled(self) -> bool:
        return self.tracing_settings.enabled

    # --- triggers ---

    @property
    def listen_port(self) -> int:
        http = self.get_triggers().http
        if http is not None and http.port is not None:
            return http.port
        return self.port

    def has_http_trigger(self) -> bool:
        if self.runtime == SYNC_RUNTIME:
            return True
        return self.get_triggers().http is not None

    def has_event_trigger(self) -> bool:
        if self.runtime == ASYNC_RUNTIME:
            return True
        return bool(self.get_triggers().dapr)

    def event_triggers(self) -> ComponentMap:
        """Components the broker delivers to this function, keyed by routing name."""
        if self.runtime == ASYNC_RUNTIME:
            return self.get_inputs()
        return read_only({t.key: t.to_component() for t in self.get_triggers().dapr})

    def needs_sidecar(self) -> bool:
        return bool(self.inputs or self.outputs or self.states) or self.has_event_trigger()
