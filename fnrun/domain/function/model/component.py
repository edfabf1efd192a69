"""Component records: named routing targets at the sidecar."""

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping

from pydantic import Field

from fnrun.domain.shared.model.value import DescriptorModel


class ComponentKind(StrEnum):
    """Component family, selected by the prefix of ``componentType``."""

    PUBSUB = "pubsub"
    BINDING = "bindings"
    STATE = "state"


class Component(DescriptorModel):
    """A named, typed routing target declared in the function descriptor.

    ``component_type`` is a dotted string such as ``pubsub.redis`` or
    ``bindings.kafka``. Only its prefix is interpreted here; unknown prefixes
    are accepted at load time and rejected when something is sent to them.
    """

    component_name: str = ""
    component_type: str = ""
    topic: str | None = None  # pub/sub only
    operation: str | None = None  # binding only
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def kind(self) -> ComponentKind | None:
        for kind in ComponentKind:
            if self.component_type.startswith(kind.value):
                return kind
        return None

    def is_pubsub(self) -> bool:
        return self.component_type.startswith(ComponentKind.PUBSUB.value)

    def is_binding(self) -> bool:
        return self.component_type.startswith(ComponentKind.BINDING.value)

    def is_state(self) -> bool:
        return self.component_type.startswith(ComponentKind.STATE.value)


ComponentMap = Mapping[str, Component]

EMPTY_COMPONENTS: ComponentMap = MappingProxyType({})


def read_only(components: dict[str, Component] | None) -> ComponentMap:
    """Read-only view handed to functions and interceptors."""
    if not components:
        return EMPTY_COMPONENTS
    return MappingProxyType(components)
