"""FastAPI application factory for the Informejo helpdesk server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from informejo import __version__
from informejo.c3_admin_routes import create_admin_router
from informejo.c3_health_routes import create_health_router
from informejo.c3_magic_link_routes import create_magic_link_router
from informejo.c3_stats_routes import create_stats_router
from informejo.c3_ticket_routes import create_ticket_router
from informejo.c3_upload_routes import create_upload_router
from informejo.c3_websocket_routes import create_websocket_router
from informejo.core.config import Settings, get_settings
from informejo.core.errors import InformejoError
from informejo.server.state import ServerState

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database_path: Optional[str] = None) -> FastAPI:
    """Build the application with its own ServerState.

    Args:
        settings: Settings to use (defaults to the global settings)
        database_path: SQLite path override

    Returns:
        FastAPI: Configured application; components start in its lifespan
    """
    settings = settings or get_settings()
    server_state = ServerState(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Informejo server...")
        await server_state.initialize(database_path)
        yield
        await server_state.shutdown()

    app = FastAPI(
        title="Informejo",
        description="Helpdesk ticketing with magic-link access and real-time ticket rooms",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.server_state = server_state

    # Add CORS middleware
    if settings.server.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.server.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(InformejoError)
    async def informejo_error_handler(request: Request, exc: InformejoError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(create_health_router(server_state))
    # Magic-link paths before the staff /api/tickets/{ticket_id} routes
    app.include_router(create_magic_link_router(server_state))
    app.include_router(create_ticket_router(server_state))
    app.include_router(create_admin_router(server_state))
    app.include_router(create_stats_router(server_state))
    app.include_router(create_upload_router(server_state))
    if settings.server.websocket_enabled:
        app.include_router(create_websocket_router(server_state))

    return app
