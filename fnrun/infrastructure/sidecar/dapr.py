"""HTTP adapter for the Sidecar port (Dapr sidecar HTTP API)."""

import asyncio
import time
from collections.abc import Mapping

import httpx
import logfire

from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.shared.error import SidecarError

API_TOKEN_HEADER = "dapr-api-token"

_HEALTH_PATH = "/v1.0/healthz/outbound"


def _metadata_params(metadata: Mapping[str, str] | None) -> dict[str, str]:
    return {f"metadata.{k}": v for k, v in (metadata or {}).items()}


class DaprHttpSidecar(Sidecar):
    """Talks to the sidecar over its HTTP API using a shared httpx client.

    The client carries the base URL, timeouts and the API token header.
    """

    def __init__(self, client: httpx.AsyncClient, *, poll_interval: float = 0.5) -> None:
        self._client = client
        self._poll_interval = poll_interval

    async def publish(
        self,
        pubsub_name: str,
        topic: str,
        data: bytes | str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        content = data.encode("utf-8") if isinstance(data, str) else data
        await self._post(
            f"/v1.0/publish/{pubsub_name}/{topic}",
            content=content,
            params=_metadata_params(metadata),
            headers={"content-type": "text/plain"},
        )
        logfire.info("Published event", pubsub=pubsub_name, topic=topic, size=len(content))

    async def invoke_binding(
        self,
        binding_name: str,
        operation: str | None,
        data: bytes,
        metadata: Mapping[str, str] | None = None,
    ) -> bytes:
        body: dict[str, object] = {"data": data.decode("utf-8", errors="replace")}
        if operation:
            body["operation"] = operation
        if metadata:
            body["metadata"] = dict(metadata)

        response = await self._post(f"/v1.0/bindings/{binding_name}", json=body)
        logfire.info("Invoked binding", binding=binding_name, operation=operation)
        return response.content

    async def wait_until_ready(self, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        last_error = "no response"
        while True:
            try:
                response = await self._client.get(_HEALTH_PATH)
                if response.is_success:
                    logfire.info("Sidecar is ready")
                    return
                last_error = f"status {response.status_code}"
            except httpx.HTTPError as e:
                last_error = str(e) or type(e).__name__

            if time.monotonic() >= deadline:
                raise SidecarError(f"Sidecar not ready after {timeout:g}s: {last_error}")
            await asyncio.sleep(self._poll_interval)

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.post(path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logfire.error(
                "Sidecar rejected request",
                path=path,
                status=e.response.status_code,
                body=e.response.text,
            )
            raise SidecarError(
                f"Sidecar returned {e.response.status_code} for {path}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            logfire.error("Sidecar request failed", path=path, error=str(e))
            raise SidecarError(f"Sidecar request to {path} failed: {e}") from e
        return response
