"""FastAPI application entrypoint and configuration.

This module provides the application factory that configures logging, sets
up CORS middleware, composes the ingestion components, includes the API
routers and maps gateway errors to HTTP responses.

Example:
    The application can be run with uvicorn:
        $ uvicorn ingestion_gate.main:app --app-dir backend

    Or imported and used programmatically:
        >>> from ingestion_gate.main import create_app
        >>> app = create_app()
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

import fastapi
from fastapi import responses
from fastapi.middleware import cors

from ingestion_gate.api import dependencies, ingestion, validate
from ingestion_gate.core import config, errors
from ingestion_gate.core import logging as gate_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: tuple[tuple[type[errors.IngestionGateError], int], ...] = (
    (errors.NotFoundError, 404),
    (errors.ConflictError, 409),
    (errors.UnsupportedEntityError, 422),
    (errors.InvalidJobStatusError, 400),
    (errors.ValidationError, 400),
    (errors.ChecksumError, 500),
    (errors.ServiceError, 502),
)


def status_code_for(error: errors.IngestionGateError) -> int:
    """Return the HTTP status of an error, 500 for unmapped families."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def handle_gateway_error(
    request: fastapi.Request, exc: errors.IngestionGateError
) -> responses.JSONResponse:
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log("%s %s failed with %d: %s", request.method, request.url.path, status_code, exc)
    return responses.JSONResponse(
        status_code=status_code, content={"message": exc.message}
    )


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures logging, builds the ingestion manager from settings, adds CORS
    middleware, includes the validation and ingestion routers, registers the
    error handler and adds a health check endpoint.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    gate_logging.configure_logging(settings.log_level)
    manager = dependencies.build_ingestion_manager(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        yield
        await dependencies.close_ingestion_manager(app.state.ingestion_manager)

    app = fastapi.FastAPI(
        title="Raster Ingestion Gate", version="0.1.0", lifespan=lifespan
    )
    app.state.ingestion_manager = manager

    app.include_router(validate.router)
    app.include_router(ingestion.router)
    app.add_exception_handler(
        errors.IngestionGateError,
        handle_gateway_error,  # type: ignore[arg-type]
    )

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
