"""DI provider for the sidecar client."""

from collections.abc import AsyncIterable
from typing import NewType

import httpx
from dishka import provide

from fnrun.config import Config
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.infrastructure.sidecar.dapr import API_TOKEN_HEADER, DaprHttpSidecar
from fnrun.util.di.base import Provider
from fnrun.util.di.scope import Scope

# Dedicated client so sidecar calls keep their own base URL and token
SidecarHttpClient = NewType("SidecarHttpClient", httpx.AsyncClient)


class SidecarProvider(Provider):
    """DI provider for the sidecar adapter."""

    @provide(scope=Scope.APP)
    async def get_sidecar_http_client(self, config: Config) -> AsyncIterable[SidecarHttpClient]:
        headers = {}
        if config.sidecar.api_token:
            headers[API_TOKEN_HEADER] = config.sidecar.api_token
        async with httpx.AsyncClient(
            base_url=config.sidecar.endpoint,
            headers=headers,
            timeout=config.sidecar.request_timeout,
        ) as client:
            yield SidecarHttpClient(client)

    @provide(scope=Scope.APP, provides=Sidecar)
    def get_sidecar(self, client: SidecarHttpClient) -> DaprHttpSidecar:
        return DaprHttpSidecar(client)
