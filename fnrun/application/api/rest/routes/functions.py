"""Routes serving the configured functions over plain HTTP."""

from collections.abc import Sequence

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Request, Response

from fnrun.application.di import HttpTriggers
from fnrun.application.trigger.http import HttpTrigger
from fnrun.domain.function.model.function import FunctionInfo
from fnrun.domain.function.model.http import HttpRequest
from fnrun.domain.shared.error import NotFoundError

# Every verb reaches the trigger, which answers 405 itself
ROUTE_METHODS = ["GET", "HEAD", "PUT", "POST", "PATCH", "DELETE", "OPTIONS"]


async def to_http_request(request: Request) -> HttpRequest:
    return HttpRequest(
        method=request.method,
        path=request.url.path,
        headers={k.lower(): v for k, v in request.headers.items()},
        query_string=request.url.query,
        body=await request.body(),
    )


def _find_trigger(triggers: HttpTriggers, name: str) -> HttpTrigger:
    for trigger in triggers:
        if trigger.function.name == name:
            return trigger
    raise NotFoundError(f"Function '{name}' is not served over HTTP")


def _endpoint(name: str):
    async def invoke_function(request: Request, triggers: FromDishka[HttpTriggers]) -> Response:
        trigger = _find_trigger(triggers, name)
        response = await trigger.handle(await to_http_request(request))
        return Response(
            content=bytes(response.body),
            status_code=response.status_code,
            headers=response.headers,
        )

    return invoke_function


def build_router(functions: Sequence[FunctionInfo]) -> APIRouter:
    """One route per function, on the function's path."""
    router = APIRouter(tags=["functions"], route_class=DishkaRoute)
    for function in functions:
        router.add_api_route(
            function.path,
            _endpoint(function.name),
            methods=ROUTE_METHODS,
            name=function.name,
            include_in_schema=False,
        )
    return router
