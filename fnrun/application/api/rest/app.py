import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fnrun.application.api.errors import map_fnrun_error
from fnrun.application.api.rest.routes import events, health
from fnrun.application.api.rest.routes.functions import build_router
from fnrun.application.di import HttpTriggers, create_container, load_functions
from fnrun.application.trigger.event import EventTrigger
from fnrun.config import Config, configure_logging, load_descriptor
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.function.port.sidecar import Sidecar
from fnrun.domain.shared.error import FnRunError
from fnrun.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container
    config = await container.get(Config)
    descriptor = await container.get(FunctionDescriptor)

    # Build triggers (and with them tracing and interceptors) before serving
    if descriptor.has_http_trigger():
        await container.get(HttpTriggers)
    if descriptor.has_event_trigger():
        await container.get(EventTrigger)

    if descriptor.needs_sidecar() and config.sidecar.wait_for_ready:
        sidecar = await container.get(Sidecar)
        await sidecar.wait_until_ready(config.sidecar.ready_timeout)

    logger.info("Function %s ready on port %s", descriptor.name, listen_port(config, descriptor))
    yield

    await container.close()


def listen_port(config: Config, descriptor: FunctionDescriptor) -> int:
    return config.server.port or descriptor.listen_port


def create_app(
    config: Config | None = None,
    descriptor: FunctionDescriptor | None = None,
) -> FastAPI:
    """Create the FastAPI application serving the configured functions.

    ``descriptor`` defaults to the one loaded from ``config``.

    Raises:
        ConfigurationError: If the descriptor or function targets are invalid.
    """
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    # Configure logging early
    configure_logging(config.logging)

    descriptor = descriptor or load_descriptor(config)
    targets = load_functions(config)
    logger.info(
        "Starting %s v%s: function %s (%s)",
        config.server.name,
        config.server.version,
        descriptor.name,
        ", ".join(f.name for f in targets),
    )

    app_instance = FastAPI(
        title=descriptor.name,
        version=descriptor.version or config.server.version,
        lifespan=lifespan,
    )

    # Setup dependency injection
    container = create_container(config, descriptor, targets)
    setup_dishka(container, app_instance)

    app_instance.include_router(health.router)
    if descriptor.has_http_trigger():
        app_instance.include_router(build_router(targets))
    # Catch-all callback paths go last
    if descriptor.has_event_trigger():
        app_instance.include_router(events.router)

    # Global fnrun error handler - maps domain and infrastructure errors to HTTP responses
    @app_instance.exception_handler(FnRunError)
    async def fnrun_error_handler(request: Request, exc: FnRunError):
        http_exc = map_fnrun_error(exc)
        return JSONResponse(
            status_code=http_exc.status_code,
            content=http_exc.detail,
        )

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app_instance
