"""HTTP trigger: serves one function on its path."""

import logging

from fnrun.domain.function.context import InvocationContext
from fnrun.domain.function.model import json_format
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.model.function import FunctionInfo, FunctionKind
from fnrun.domain.function.model.http import HttpRequest, HttpResponse
from fnrun.domain.function.model.out import STATUS_SERVER_ERROR, Out
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.function.service.invoker import FunctionInvoker
from fnrun.domain.shared.error import EventFormatError, error_message

logger = logging.getLogger(__name__)

STATUS_METHOD_NOT_ALLOWED = 405
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class HttpTrigger:
    """Turns one HTTP request into one invocation and always answers.

    Raw HTTP functions write the response themselves. For structured-event
    and generic functions the normalized ``Out`` becomes the response.
    """

    def __init__(
        self,
        function: FunctionInfo,
        descriptor: FunctionDescriptor,
        invoker: FunctionInvoker,
        sidecar: Sidecar | None = None,
    ) -> None:
        self._function = function
        self._descriptor = descriptor
        self._invoker = invoker
        self._sidecar = sidecar

    @property
    def function(self) -> FunctionInfo:
        return self._function

    @property
    def path(self) -> str:
        return self._function.path

    async def handle(self, request: HttpRequest) -> HttpResponse:
        if not self._function.allows(request.method):
            response = HttpResponse(status_code=STATUS_METHOD_NOT_ALLOWED)
            response.set_header("allow", ", ".join(sorted(self._function.methods)))
            response.set_content_type(TEXT_CONTENT_TYPE)
            response.write("Method Not Allowed")
            return response

        try:
            return await self._dispatch(request)
        except Exception as e:
            logger.exception(
                "Function %s failed on %s %s", self._function.name, request.method, request.path
            )
            return self._error_response(error_message(e))

    async def _dispatch(self, request: HttpRequest) -> HttpResponse:
        kind = self._function.kind

        if kind is FunctionKind.HTTP:
            response = HttpResponse()
            ctx = self._context(http_request=request, http_response=response)
            await self._invoker.invoke(ctx)
            return response

        if kind is FunctionKind.CLOUDEVENT:
            try:
                event = json_format.from_http(request.headers, request.body)
            except EventFormatError as e:
                logger.error("Invalid structured event for %s: %s", self._function.name, e.message)
                return self._error_response(e.message)
            ctx = self._context(http_request=request, cloud_event=event)
        else:
            ctx = self._context(http_request=request)

        out = await self._invoker.invoke(ctx)
        return self._write_out(out)

    def _context(self, **event) -> InvocationContext:
        return InvocationContext(
            descriptor=self._descriptor,
            function=self._function,
            sidecar=self._sidecar,
            **event,
        )

    @staticmethod
    def _write_out(out: Out) -> HttpResponse:
        response = HttpResponse(status_code=out.code or STATUS_SERVER_ERROR)
        response.set_content_type(TEXT_CONTENT_TYPE)
        response.write(out.data or b"")
        return response

    @staticmethod
    def _error_response(message: str) -> HttpResponse:
        response = HttpResponse(status_code=STATUS_SERVER_ERROR)
        response.set_content_type(TEXT_CONTENT_TYPE)
        response.write(message)
        return response
