"""
Investment Portfolio Gateway

A FastAPI-based wrapper around the FinClub peer-to-peer lending API for a
single investor account.

Authentication responses are cached as JSON on local disk for up to one
hour, so repeated requests reuse the same session instead of signing in
again. The escrow account overview is always fetched live using the
cached bearer token.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from portfolio_service.api import router
from portfolio_service.config import settings
from portfolio_service.errors import InvalidAccessError
from portfolio_service.logging import (
    configure_logging,
    get_logger,
    set_request_context,
    clear_request_context,
    generate_request_id,
)
from portfolio_service.schemas import HealthResponse
from portfolio_service import metrics

# Configure structured logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(
        "service_starting",
        service_name=settings.service_name,
        finclub_base_url=settings.finclub_base_url,
        cache_path=settings.cache_path,
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )

    if not settings.finclub_mail_address or not settings.finclub_password:
        logger.warning("finclub_credentials_missing")

    yield

    logger.info("service_stopping", service_name=settings.service_name)


app = FastAPI(
    title="Investment Portfolio Gateway",
    description="Cached FinClub authentication and investor account overview",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request tracing, logging, and metrics.

    Sets up request context with:
    - request_id: Unique identifier for tracing
    - client_host: Caller address, as used by the origin allow-list
    - Timing for duration_ms calculation
    """
    method = request.method
    path = request.url.path

    # Skip logging/metrics for health and metrics endpoints
    if path in ("/health", "/metrics"):
        return await call_next(request)

    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    client_host = request.client.host if request.client else None
    set_request_context(request_id, client_host=client_host)

    request.state.request_id = request_id

    start_time = time.perf_counter()

    logger.info("request_received", method=method, path=path)

    try:
        response = await call_next(request)

        duration_seconds = time.perf_counter() - start_time

        logger.info(
            "request_completed",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(duration_seconds * 1000, 2),
        )

        metrics.record_http_request(method, path, response.status_code, duration_seconds)

        response.headers["X-Request-ID"] = request_id

        return response

    except Exception as e:
        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.error(
            "request_failed",
            method=method,
            path=path,
            duration_ms=round(duration_ms, 2),
            error=str(e),
        )

        metrics.record_http_request(method, path, 500)

        raise

    finally:
        clear_request_context()


@app.exception_handler(InvalidAccessError)
async def invalid_access_error_handler(request: Request, exc: InvalidAccessError):
    """Handle requests from hosts outside the allow-list."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning("invalid_access", client_host=exc.client_host)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Access from this origin is not allowed."},
        headers={"X-Request-ID": request_id},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Handle anything the services did not turn into an envelope."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error("unexpected_error", error=str(exc), error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred."},
        headers={"X-Request-ID": request_id},
    )


# Include API routes
app.include_router(router)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "ok", "service": settings.service_name}


@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
