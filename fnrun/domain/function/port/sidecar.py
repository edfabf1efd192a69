"""Port for the sidecar broker that publishes and invokes bindings for us."""

from abc import abstractmethod
from typing import Mapping, Protocol, runtime_checkable

from fnrun.domain.shared.port import Port


@runtime_checkable
class Sidecar(Port, Protocol):
    """Outbound calls to the sidecar broker. Safe for concurrent use."""

    @abstractmethod
    async def publish(
        self,
        pubsub_name: str,
        topic: str,
        data: bytes | str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        """Publish ``data`` to ``topic`` on the pub/sub component ``pubsub_name``."""
        ...

    @abstractmethod
    async def invoke_binding(
        self,
        binding_name: str,
        operation: str | None,
        data: bytes,
        metadata: Mapping[str, str] | None = None,
    ) -> bytes:
        """Invoke ``operation`` on the output binding ``binding_name``."""
        ...

    @abstractmethod
    async def wait_until_ready(self, timeout: float) -> None:
        """Block until the sidecar answers health checks or ``timeout`` expires."""
        ...
