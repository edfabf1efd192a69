"""Tracing provider setup: Logfire-managed tracer provider plus OTLP export."""

import logging

import logfire
from grpc import Compression as GrpcCompression
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http import Compression as HttpCompression
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpSpanExporter
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from fnrun.domain.function.model.descriptor import (
    ExporterSettings,
    FunctionDescriptor,
    TracingProviderSettings,
    TracingSettings,
)
from fnrun.domain.shared.error import ConfigurationError
from fnrun.domain.shared.port.tracing import Tracing
from fnrun.infrastructure.tracing.gateway import NoopTracing, OpenTelemetryTracing

logger = logging.getLogger(__name__)

OPENTELEMETRY_PROVIDER = "opentelemetry"
LOGFIRE_PROVIDER = "logfire"
SKYWALKING_PROVIDER = "skywalking"
SUPPORTED_PROVIDERS = (OPENTELEMETRY_PROVIDER, LOGFIRE_PROVIDER, SKYWALKING_PROVIDER)

OTLP_EXPORTER = "otlp"
GRPC_PROTOCOL = "grpc"
HTTP_PROTOCOLS = ("http/protobuf", "http")

INSTANCE_TAG = "instance"
NAMESPACE_TAG = "namespace"

TRACER_NAME = "fnrun"


def build_span_exporter(settings: ExporterSettings) -> SpanExporter:
    """Build the OTLP exporter described by ``settings``.

    Raises:
        ConfigurationError: For an exporter other than ``otlp`` or an unknown protocol.
    """
    if settings.name != OTLP_EXPORTER:
        raise ConfigurationError(f"Unsupported tracing exporter: {settings.name}")

    protocol = settings.protocol or GRPC_PROTOCOL
    timeout = settings.timeout.total_seconds() if settings.timeout else None

    if protocol == GRPC_PROTOCOL:
        compression = None
        if settings.compression == "gzip":
            compression = GrpcCompression.Gzip
        elif settings.compression == "deflate":
            compression = GrpcCompression.Deflate
        return GrpcSpanExporter(
            endpoint=settings.endpoint,
            headers=settings.headers or None,
            timeout=timeout,
            compression=compression,
        )

    if protocol in HTTP_PROTOCOLS:
        return HttpSpanExporter(
            endpoint=settings.endpoint,
            headers=settings.headers or None,
            timeout=timeout,
            compression=HttpCompression(settings.compression) if settings.compression else None,
        )

    raise ConfigurationError(f"Unsupported OTLP protocol: {protocol}")


def skywalking_exporter(settings: TracingProviderSettings | None) -> ExporterSettings:
    """OTLP/gRPC export to the OAP server's OpenTelemetry receiver.

    An explicit exporter wins over ``oapServer``.

    Raises:
        ConfigurationError: If neither an exporter nor ``oapServer`` is set.
    """
    if settings is not None and settings.exporter is not None:
        return settings.exporter
    if settings is None or not settings.oap_server:
        raise ConfigurationError("Tracing provider skywalking requires oapServer")

    endpoint = settings.oap_server
    if "://" not in endpoint:
        endpoint = f"http://{endpoint}"
    return ExporterSettings(name=OTLP_EXPORTER, endpoint=endpoint, protocol=GRPC_PROTOCOL)


def static_tags(
    settings: TracingSettings,
    *,
    pod_name: str | None = None,
    pod_namespace: str | None = None,
) -> dict[str, str]:
    """Tags put on every span: configured tags plus the pod identity."""
    tags = dict(settings.tags)
    if pod_name:
        tags[INSTANCE_TAG] = pod_name
    if pod_namespace:
        tags[NAMESPACE_TAG] = pod_namespace
    return tags


def configure_tracing(
    settings: TracingSettings,
    *,
    service_name: str,
    service_version: str | None = None,
) -> str:
    """Configure the process tracer provider. Returns the provider name in use.

    ``opentelemetry`` exports over OTLP only. ``logfire`` additionally sends
    to Logfire when a token is present. ``skywalking`` exports over OTLP to
    the OAP server.

    Raises:
        ConfigurationError: If the provider or exporter is not supported.
    """
    provider = settings.provider_name or OPENTELEMETRY_PROVIDER
    exporter = settings.provider.exporter if settings.provider else None

    if provider == OPENTELEMETRY_PROVIDER:
        send_to_logfire: bool | str = False
        exporter = exporter or ExporterSettings()
    elif provider == LOGFIRE_PROVIDER:
        send_to_logfire = "if-token-present"
    elif provider == SKYWALKING_PROVIDER:
        send_to_logfire = False
        exporter = skywalking_exporter(settings.provider)
    else:
        raise ConfigurationError(f"Unsupported tracing provider: {provider}")

    processors = [BatchSpanProcessor(build_span_exporter(exporter))] if exporter else []

    logfire.configure(
        service_name=service_name,
        service_version=service_version or None,
        send_to_logfire=send_to_logfire,
        console=False,
        additional_span_processors=processors,
    )
    logger.info(
        "Tracing configured: provider=%s, exporter=%s",
        provider,
        f"{exporter.name}/{exporter.protocol or GRPC_PROTOCOL}" if exporter else "none",
    )
    return provider


def create_tracing(
    descriptor: FunctionDescriptor,
    *,
    pod_name: str | None = None,
    pod_namespace: str | None = None,
    tracer: trace.Tracer | None = None,
) -> Tracing:
    """Build the tracing gateway for ``descriptor``.

    Disabled tracing yields a ``NoopTracing``. Passing ``tracer`` skips
    provider configuration (used by tests with an in-memory exporter).
    """
    settings = descriptor.tracing_settings
    if not settings.enabled:
        return NoopTracing()

    if tracer is None:
        provider = configure_tracing(
            settings,
            service_name=descriptor.name,
            service_version=descriptor.version,
        )
        tracer = trace.get_tracer(TRACER_NAME)
    else:
        provider = settings.provider_name or OPENTELEMETRY_PROVIDER
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(f"Unsupported tracing provider: {provider}")

    tags = static_tags(settings, pod_name=pod_name, pod_namespace=pod_namespace)
    return OpenTelemetryTracing(
        tracer,
        function_name=descriptor.name,
        provider_name=provider,
        tags=tags,
        baggage=settings.baggage,
    )
