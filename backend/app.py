"""FastAPI application entry point for the product cache API."""

import functools
import logging
import sys

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, settings
from errors import RateLimitedError, error_response, register_error_handlers
from services.cache import SnapshotCache
from services.catalog import ProductCatalog
from services.rate_limit import RateLimiter
from services.upstream import fetch_catalog

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)

RATE_LIMIT_EXEMPT = {"/ready", "/health"}


def create_app(config: Settings = settings) -> FastAPI:
    app = FastAPI(title="Product Cache API", version="1.0.0")

    cache = SnapshotCache(
        path=config.cache_file,
        fetcher=functools.partial(fetch_catalog, config.products_api_url, config.upstream_timeout_seconds),
        ttl_seconds=config.cache_duration_seconds,
    )
    app.state.catalog = ProductCatalog(cache)
    app.state.rate_limiter = RateLimiter(config.rate_limit_requests, config.rate_limit_window_seconds)

    # Per-client rate limiting
    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT:
            return await call_next(request)

        limiter: RateLimiter = request.app.state.rate_limiter
        client = request.client.host if request.client else "unknown"
        try:
            limiter.check(client)
        except RateLimitedError as exc:
            return error_response(exc)

        response: Response = await call_next(request)
        if limiter.max_requests:
            stats = limiter.get_stats(client)
            response.headers["X-RateLimit-Limit"] = str(stats["limit"])
            response.headers["X-RateLimit-Remaining"] = str(max(stats["limit"] - stats["requests_in_window"], 0))
        return response

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if config.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # CORS outermost: 429s carry CORS headers and preflights never reach the limiter
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Centralized error handlers
    register_error_handlers(app)

    from routes.health import router as health_router
    from routes.products import router as products_router

    app.include_router(health_router)
    app.include_router(products_router)

    @app.on_event("startup")
    async def _validate_config() -> None:
        problems = config.validate()
        if problems:
            logger.warning("Configuration problems: %s", "; ".join(problems))
        logger.info(
            "Serving %s with a %.0fs snapshot cache at %s",
            config.products_api_url,
            config.cache_duration_seconds,
            config.cache_file,
        )

    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
