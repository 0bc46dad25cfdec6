"""
FastAPI application entrypoint for the FixIt marketplace backend.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fixit.api.routes import router as api_router
from fixit.core.config import AppSettings, get_settings
from fixit.core.errors import FixItError, NotFound, ValidationFailed
from fixit.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request validation failed"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def _register_error_handlers(app: FastAPI, settings: AppSettings) -> None:
    include_details = not settings.is_production

    @app.exception_handler(FixItError)
    async def _handle_fixit_error(request: Request, exc: FixItError) -> JSONResponse:
        if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.kind, exc.details)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_envelope(include_details=include_details),
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationFailed(_validation_message(exc), details=str(exc.errors()))
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content=error.to_envelope(include_details=include_details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == HTTPStatus.NOT_FOUND:
            error: FixItError = NotFound(f"Route {request.method} {request.url.path} not found")
        else:
            error = FixItError(str(exc.detail))
            try:
                error.kind = HTTPStatus(exc.status_code).phrase.replace(" ", "")
            except ValueError:
                pass
        return JSONResponse(
            status_code=exc.status_code,
            content=error.to_envelope(include_details=include_details),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = FixItError("Something went wrong", details=str(exc))
        return JSONResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content=error.to_envelope(include_details=include_details),
        )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="FixIt Marketplace Backend",
        version="0.1.0",
        description="REST API for accounts, scoped AWS credentials, photos and service requests.",
    )
    _register_error_handlers(app, settings)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", status_code=HTTPStatus.OK)
    async def healthcheck() -> dict:
        """Simple health endpoint for monitoring."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {
                "cognito": bool(settings.aws.user_pool_id and settings.aws.client_id),
                "identityPool": bool(settings.aws.identity_pool_id),
                "dynamodb": settings.aws.dynamodb_table_name,
                "s3": settings.aws.s3_bucket,
            },
        }

    return app


app = create_app()

__all__ = ["app", "create_app"]
