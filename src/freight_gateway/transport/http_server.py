"""Starlette HTTP server assembly."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from freight_gateway import __version__
from freight_gateway.app import GatewayServices, get_services
from freight_gateway.middleware import AuditMiddleware, SessionMiddleware
from freight_gateway.routes import auth as auth_routes
from freight_gateway.routes import payments as payment_routes
from freight_gateway.routes import trips as trip_routes

logger = logging.getLogger(__name__)


def create_http_app(services: GatewayServices | None = None) -> Starlette:
    """Create the gateway application.

    ``services`` defaults to the process-wide container built from settings.
    """
    services = services or get_services()
    settings = services.settings

    # Session first so the audit log sees the request id.
    middleware: list[Middleware] = [
        Middleware(SessionMiddleware, cookie_name=settings.session.cookie_name),
        Middleware(
            AuditMiddleware,
            trust_forwarded_headers=settings.server.http_trust_forwarded_headers,
        ),
    ]

    # CORS must be outermost so preflight requests get CORS headers.
    if settings.server.http_enable_cors and settings.server.http_allowed_origins:
        from starlette.middleware.cors import CORSMiddleware

        middleware.insert(
            0,
            Middleware(
                CORSMiddleware,
                allow_origins=list(settings.server.http_allowed_origins),
                allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
                allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-Id"],
                allow_credentials=True,
            ),
        )

    async def health_handler(request: Request) -> Response:
        return JSONResponse({"status": "healthy"})

    async def ready_handler(request: Request) -> Response:
        return JSONResponse({"status": "ready", "version": __version__})

    routes = [
        Route("/health", endpoint=health_handler, methods=["GET"]),
        Route("/ready", endpoint=ready_handler, methods=["GET"]),
        *auth_routes.routes,
        *trip_routes.routes,
        *payment_routes.routes,
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Starting freight gateway v%s", __version__)
        try:
            yield
        finally:
            logger.info("Stopping freight gateway")

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.services = services
    return app
