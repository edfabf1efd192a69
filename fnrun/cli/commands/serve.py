"""Serve the configured functions."""

import sys
from pathlib import Path

import cyclopts
import uvicorn

from fnrun.application.api.rest.app import create_app, listen_port
from fnrun.cli.console import get_console
from fnrun.cli.util import build_config
from fnrun.config import load_descriptor
from fnrun.domain.shared.error import ConfigurationError

app = cyclopts.App(name="serve", help="Run the function server")


@app.default
def serve(
    *,
    target: str | None = None,
    source: str | None = None,
    context_file: Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Start serving the function(s) in the foreground.

    Args:
        target: Function target(s), comma separated. Overrides FUNCTION_TARGET.
        source: Module(s) to import before resolving targets. Overrides FUNCTION_SOURCE.
        context_file: Path to the JSON function descriptor. Overrides FUNC_CONTEXT.
        host: Host to bind to.
        port: Port to listen on. Defaults to the descriptor's HTTP trigger port.
    """
    console = get_console()

    try:
        config = build_config(target=target, source=source, context_file=context_file)
        updates = {k: v for k, v in {"host": host, "port": port}.items() if v is not None}
        if updates:
            config.server = config.server.model_copy(update=updates)
        descriptor = load_descriptor(config)
        application = create_app(config, descriptor)
    except ConfigurationError as e:
        console.error(e.message, hint="Check FUNCTION_TARGET, FUNCTION_SOURCE and FUNC_CONTEXT")
        sys.exit(1)

    port = listen_port(config, descriptor)
    console.success(f"Serving {descriptor.name} on http://{config.server.host}:{port}")
    uvicorn.run(application, host=config.server.host, port=port, log_config=None)
