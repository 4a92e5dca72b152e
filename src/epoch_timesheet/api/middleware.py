"""Middleware and error handlers for the FastAPI application.

This module provides CORS, request logging, and the mapping from Epoch
exceptions to HTTP responses.
"""

import logging
import time
from typing import Any

from fastapi import FastAPI, Request, status  # type: ignore[import-untyped]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from epoch_timesheet.api.models import ErrorResponse
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    FormValidationError,
)

logger = logging.getLogger(__name__)


def setup_cors(app: FastAPI, config: ConfigManager) -> None:
    """Configure CORS middleware.

    Args:
        app: FastAPI application instance
        config: Configuration manager

    Note:
        CORS is configured based on the api.cors section in config.
        By default, only localhost origins are allowed.
    """
    if not config.get("api.cors.enabled", True):
        return

    origins = config.get("api.cors.origins", ["http://localhost:3000"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_request_logging(app: FastAPI) -> None:
    """Log method, path, status and duration of every request."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response


def _error(status_code: int, detail: str, **extra: Any) -> JSONResponse:
    body = ErrorResponse(detail=detail, **extra).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def setup_error_handlers(app: FastAPI) -> None:
    """Translate Epoch exceptions into HTTP responses.

    - FormValidationError: 422 with the missing fields
    - AuthenticationError rejected by the backend: 401
    - any other BackendError: 502
    - ConfigurationError: 500
    """

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), missing=exc.missing or None)

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
        if isinstance(exc, AuthenticationError) and exc.status_code in (400, 401, 403):
            return _error(status.HTTP_401_UNAUTHORIZED, str(exc))
        logger.error(f"Backend failure on {request.method} {request.url.path}: {exc}")
        return _error(status.HTTP_502_BAD_GATEWAY, f"Backend error: {exc}")

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def setup_middleware(app: FastAPI, config: ConfigManager) -> None:
    """Set up all middleware for the application.

    Args:
        app: FastAPI application instance
        config: Configuration manager
    """
    setup_cors(app, config)
    setup_request_logging(app)
    setup_error_handlers(app)
