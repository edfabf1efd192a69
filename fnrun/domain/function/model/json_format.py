"""Structured-event JSON format and HTTP binding.

Serialized events carry the standard attributes at the top level, every
extension both at the top level and under ``extensions``, and a copy of
``traceparent`` as ``traceid``.
"""

import base64
import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from fnrun.domain.function.model.event import CloudEvent
from fnrun.domain.shared.error import EventFormatError

CONTENT_TYPE = "application/cloudevents+json"
BATCH_CONTENT_TYPE = "application/cloudevents-batch+json"

TRACEPARENT = "traceparent"
TRACEID = "traceid"
EXTENSIONS = "extensions"

_ATTRIBUTES = ("id", "source", "specversion", "type", "datacontenttype", "dataschema", "subject")
_BINARY_PREFIX = "ce-"

# Structured events wrapped around binding payloads
PACKAGED_EVENT_TYPE = "dapr.invoke"
PACKAGED_EVENT_SOURCE = "fnrun/invokeBinding"


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def serialize(event: CloudEvent) -> bytes:
    root: dict[str, Any] = {
        "specversion": event.specversion,
        "id": event.id,
        "type": event.type,
        "source": event.source,
    }
    optional = {
        "datacontenttype": event.datacontenttype,
        "dataschema": event.dataschema,
        "subject": event.subject,
        "time": event.time.isoformat() if event.time else None,
        "data": event.text,
    }
    root.update({k: v for k, v in optional.items() if v is not None})

    for key, value in event.extensions.items():
        root[key] = value
    root[EXTENSIONS] = dict(event.extensions)

    traceparent = event.extensions.get(TRACEPARENT)
    if traceparent:
        root[TRACEID] = traceparent

    return json.dumps(root).encode("utf-8")


def _parse_time(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise EventFormatError(f"Invalid event time '{value}'") from e


def deserialize(raw: bytes | str) -> CloudEvent:
    """Parse a structured-mode event.

    Raises:
        EventFormatError: If the payload is not a JSON object or lacks
            ``id`` / ``source`` / ``type``.
    """
    try:
        root = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EventFormatError(f"Structured event is not valid JSON: {e}") from e
    if not isinstance(root, dict):
        raise EventFormatError("Structured event must be a JSON object")

    attributes: dict[str, Any] = {}
    extensions: dict[str, str] = {}
    data: bytes | None = None

    for field, value in root.items():
        if value is None:
            continue
        if field in _ATTRIBUTES:
            attributes[field] = _as_text(value)
        elif field == "schemaurl":  # v0.3 name of dataschema
            attributes.setdefault("dataschema", _as_text(value))
        elif field == "time":
            attributes["time"] = _parse_time(_as_text(value))
        elif field == "data":
            data = _as_text(value).encode("utf-8")
        elif field == "data_base64":
            data = base64.b64decode(value)
        elif field == EXTENSIONS and isinstance(value, dict):
            extensions.update({k: _as_text(v) for k, v in value.items() if v is not None})
        elif field == TRACEID:
            continue
        else:
            extensions[field] = _as_text(value)

    missing = [name for name in ("id", "source", "type") if not attributes.get(name)]
    if missing:
        raise EventFormatError(f"Structured event missing attributes: {', '.join(missing)}")

    return CloudEvent(**attributes, data=data, extensions=extensions)


def is_cloudevent_request(headers: Mapping[str, str]) -> bool:
    content_type = headers.get("content-type", "")
    return content_type.startswith(CONTENT_TYPE) or f"{_BINARY_PREFIX}id" in headers


def from_http(headers: Mapping[str, str], body: bytes) -> CloudEvent:
    """Read an event from an HTTP request in structured or binary mode.

    Header names must be lower-cased.

    Raises:
        EventFormatError: If the request carries no structured event.
    """
    content_type = headers.get("content-type", "")
    if content_type.startswith(BATCH_CONTENT_TYPE):
        raise EventFormatError("Batched structured events are not supported")
    if content_type.startswith(CONTENT_TYPE):
        return deserialize(body)

    if f"{_BINARY_PREFIX}id" not in headers:
        raise EventFormatError("Request does not carry a structured event")

    attributes: dict[str, Any] = {}
    extensions: dict[str, str] = {}
    for header, value in headers.items():
        if not header.startswith(_BINARY_PREFIX):
            continue
        name = header[len(_BINARY_PREFIX):]
        if name == "time":
            attributes["time"] = _parse_time(value)
        elif name in _ATTRIBUTES:
            attributes[name] = value
        else:
            extensions[name] = value

    # W3C trace headers travel as plain HTTP headers in binary mode
    for header in (TRACEPARENT, "tracestate"):
        if header in headers and header not in extensions:
            extensions[header] = headers[header]

    if content_type:
        attributes.setdefault("datacontenttype", content_type)

    missing = [name for name in ("id", "source", "type") if not attributes.get(name)]
    if missing:
        raise EventFormatError(f"Binary event missing headers: {', '.join('ce-' + m for m in missing)}")

    return CloudEvent(**attributes, data=body or None, extensions=extensions)


def package(payload: str | bytes, *, source: str = PACKAGED_EVENT_SOURCE) -> bytes:
    """Wrap a payload as a serialized structured event."""
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    event = CloudEvent(
        id=str(uuid4()),
        type=PACKAGED_EVENT_TYPE,
        source=source,
        datacontenttype=CONTENT_TYPE,
        data=data,
    )
    return serialize(event)
