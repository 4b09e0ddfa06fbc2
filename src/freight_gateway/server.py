"""Entrypoint for the freight workflow gateway."""

from __future__ import annotations

import logging

import uvicorn

from freight_gateway import __version__
from freight_gateway.config import load_settings
from freight_gateway.logging_utils import configure_logging
from freight_gateway.transport.http_server import create_http_app


def run_entrypoint() -> None:
    """Run the HTTP server with settings from the environment."""
    settings = load_settings()
    configure_logging()
    logging.info("Initializing freight gateway v%s", __version__)
    logging.info("Log file configured at: %s", settings.logging.file)

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
