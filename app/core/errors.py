"""Error taxonomy and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """Base exception with HTTP status code."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class MissingKeyInputError(ScanError):
    """Not enough identifying data to build a cache key."""

    status_code = 400


class NotFoundError(ScanError):
    status_code = 404


class ConfigError(ScanError):
    """A required API key or setting is missing."""

    status_code = 500


class UpstreamError(ScanError):
    """An external collaborator failed: network, non-2xx, malformed payload or timeout."""

    status_code = 502


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ScanError)
    async def handle_scan_error(_request: Request, exc: ScanError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
