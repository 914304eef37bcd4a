"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class InvalidQueryError(CatalogError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(CatalogError):
    def __init__(self, message: str = "Product not found"):
        super().__init__(message, status_code=404)


class FetchFailedError(CatalogError):
    """Upstream or cache-file failure. The detail is logged, never returned."""

    public_message = "Failed to fetch products"

    def __init__(self, detail: str):
        super().__init__(detail, status_code=500)
        self.detail = detail


class RateLimitedError(CatalogError):
    def __init__(self, retry_after: int):
        super().__init__("Too many requests, please try again later.", status_code=429)
        self.retry_after = retry_after


def error_response(exc: CatalogError) -> JSONResponse:
    """Render a CatalogError as the JSON body callers see."""
    if isinstance(exc, FetchFailedError):
        logger.error("Fetch failed: %s", exc.detail)
        return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(CatalogError)
    async def handle_catalog_error(_request: Request, exc: CatalogError):
        return error_response(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )
