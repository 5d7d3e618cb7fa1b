"""
Agency analytics API application.

Builds the FastAPI app: storage is opened during lifespan startup, every
request gets an ``X-Request-ID`` bound into the log context, and the
analytics, client, entry and projection routers are mounted under /api/v1.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agency_api import __version__
from agency_api.config import get_settings
from agency_api.routers import analytics, clients, entries, projections, system
from agency_api.storage import StorageError, get_storage
from agency_api.utils.logging import bind_request_context, configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

API_PREFIX = "/api/v1"

ROUTES = (
    (analytics.router, "/analytics", "Analytics"),
    (clients.router, "/clients", "Clients"),
    (entries.router, "/entries", "Entries"),
    (projections.router, "/projections", "Projections"),
    (system.router, "/system", "System"),
)


def _error_response(status_code: int, message: str, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database before serving so schema problems fail at startup."""
    settings = get_settings()
    logger.info(
        "application_startup",
        version=app.version,
        environment=settings.app_env,
        dev_mode=settings.dev_mode,
    )

    storage = get_storage()
    storage.ping()
    logger.info("storage_ready", db_path=settings.db_path)

    yield

    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """Assemble middleware, health check and routers."""
    settings = get_settings()

    app = FastAPI(
        title="Agency Analytics API",
        description="Marketing funnel KPIs, period growth and chart history for agency clients",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        """Bind a request id, time the request and turn unhandled errors into envelopes."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        bind_request_context(
            request_id,
            method=request.method,
            path=request.url.path,
            client_id=request.query_params.get("client_id"),
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except StorageError as e:
            logger.error("request_storage_failure", error=str(e))
            return _error_response(503, "Storage unavailable", request_id)
        except Exception as e:
            logger.error("request_failed", error=str(e), exc_info=True)
            return _error_response(500, "Internal server error", request_id)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe; does not touch the database."""
        return {"status": "healthy", "version": app.version, "environment": settings.app_env}

    for router, prefix, tag in ROUTES:
        app.include_router(router, prefix=f"{API_PREFIX}{prefix}", tags=[tag])

    logger.info("application_configured", routers_count=len(ROUTES))
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agency_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
