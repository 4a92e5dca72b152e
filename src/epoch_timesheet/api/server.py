"""FastAPI application server.

This module contains the FastAPI application setup and server runner.
The API exposes the timesheet workspace to browser and script clients.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from epoch_timesheet import __version__
from epoch_timesheet.api.middleware import setup_middleware
from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.logging_config import setup_logging


def create_app(
    config: Optional[ConfigManager] = None, backend: Optional[BackendClient] = None
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Optional configuration manager (creates default if None)
        backend: Optional backend client (built from config if None)

    Returns:
        Configured FastAPI application instance

    Raises:
        ConfigurationError: If the backend URL or key is not configured

    Example:
        >>> app = create_app()
        >>> # Or with custom config
        >>> config = ConfigManager()
        >>> app = create_app(config)
    """
    if config is None:
        config = ConfigManager()
    if backend is None:
        backend = BackendClient.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        backend.close()

    app = FastAPI(
        title="Epoch API",
        description="REST API for the Epoch timesheet",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Shared state for dependency injection
    app.state.config = config
    app.state.backend = backend

    setup_middleware(app, config)

    from epoch_timesheet.api.endpoints import entries, reports, session, system

    app.include_router(system.router, prefix="/api/v1", tags=["system"])
    app.include_router(session.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(entries.router, prefix="/api/v1/entries", tags=["entries"])
    app.include_router(reports.router, prefix="/api/v1/reports", tags=["reports"])

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Root endpoint - points at the docs."""
        return JSONResponse(
            {
                "message": "Epoch API",
                "version": __version__,
                "docs": "/docs",
                "health": "/api/v1/health",
            }
        )

    return app


def run_server(
    host: str = "localhost",
    port: int = 8000,
    reload: bool = False,
    config: Optional[ConfigManager] = None,
) -> None:
    """Run the API server using Uvicorn.

    Args:
        host: Host address to bind to
        port: Port number to bind to
        reload: Enable auto-reload for development
        config: Optional configuration manager

    Note:
        This function blocks until the server is stopped.
    """
    import uvicorn  # type: ignore[import-untyped]

    if config is None:
        config = ConfigManager()

    setup_logging(config.get("logging.level", "INFO"), config.get("logging.file"))

    options = {
        "host": host,
        "port": port,
        "log_level": config.get("api.advanced.log_level", "info"),
        "access_log": config.get("api.advanced.access_log", True),
    }

    if reload:
        # The reloader re-imports the factory in a child process
        os.environ["EPOCH_CONFIG"] = str(config.config_path)
        uvicorn.run("epoch_timesheet.api.server:create_app", factory=True, reload=True, **options)
    else:
        uvicorn.run(create_app(config), **options)
