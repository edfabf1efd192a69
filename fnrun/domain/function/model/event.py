"""Inbound events: what a trigger hands to one invocation."""

from datetime import datetime

from pydantic import Field

from fnrun.domain.shared.model.value import ValueObject

CLOUDEVENT_SPEC_VERSION = "1.0"


class BindingEvent(ValueObject):
    """Event delivered by an input binding."""

    name: str
    metadata: dict[str, str] = Field(default_factory=dict)
    data: bytes = b""

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class TopicEvent(ValueObject):
    """Event delivered by a pub/sub subscription.

    ``name`` is the pub/sub component name. ``extensions`` holds the string
    valued envelope attributes (``traceparent``, ``tracestate``, ...).
    """

    name: str
    id: str = ""
    topic: str = ""
    specversion: str = CLOUDEVENT_SPEC_VERSION
    source: str = ""
    type: str = ""
    datacontenttype: str = ""
    data: bytes = b""
    extensions: dict[str, str] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class CloudEvent(ValueObject):
    """Structured event envelope (CloudEvents attributes plus extensions)."""

    id: str
    source: str
    type: str
    specversion: str = CLOUDEVENT_SPEC_VERSION
    datacontenttype: str | None = None
    dataschema: str | None = None
    subject: str | None = None
    time: datetime | None = None
    data: bytes | None = None
    extensions: dict[str, str] = Field(default_factory=dict)

    @property
    def text(self) -> str | None:
        if self.data is None:
            return None
        return self.data.decode("utf-8", errors="replace")

    def trace_carrier(self) -> dict[str, str]:
        return dict(self.extensions)
