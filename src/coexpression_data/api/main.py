"""
FastAPI application for the Coexpression Data API.

Serves:
- Ranked receptor/ligand co-expression search (Server-Sent Events)
- Side-by-side tissue / cell-type expression of two genes
- Stratified tissue-specific and cell-specific analysis

The database is optional: without DATABASE_URL, compare-mode search still
works (profiles come from the Protein Atlas), while curated search and the
expression/analysis routes answer 503 or a terminal SSE error.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import msgspec
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR, HTTP_503_SERVICE_UNAVAILABLE

from .routers import analysis, expression, search
from .errors import APIError, api_error_handler, coexpression_error_handler
from ..core.config import Settings, get_settings
from ..core.errors import CoexpressionError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class MSGSpecResponse(Response):
    """JSON response rendered with msgspec."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return b"" if content is None else msgspec.json.encode(content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the database pool (when configured) on startup; on shutdown close
    the shared Protein Atlas client and the pool.
    """
    from .dependencies import close_atlas_client, close_db, get_db

    settings = get_settings()
    logger.info("Starting %s %s", settings.app_name, settings.app_version)

    if not settings.db_url:
        logger.warning("DATABASE_URL not set; only compare-mode search is available")
    else:
        try:
            get_db().open()
        except Exception as e:
            # Each request reports its own connection error
            logger.error("Could not open the database pool: %s", e)

    yield

    logger.info("Shutting down %s", settings.app_name)
    await close_atlas_client()
    close_db()


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        allow_credentials=settings.cors_allow_credentials,
        expose_headers=settings.cors_expose_headers,
    )
    # Grouped expression payloads are large and repetitive
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def process_time_header(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{(time.perf_counter() - started) * 1000:.2f}ms"
        return response


def _add_error_handlers(app: FastAPI, settings: Settings) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(CoexpressionError, coexpression_error_handler)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
        expose = settings.debug and settings.environment != "production"
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                    "detail": str(exc) if expose else None,
                }
            },
        )


def _add_service_routes(app: FastAPI, settings: Settings) -> None:
    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe."""
        return {"status": "healthy", "timestamp": _now()}

    @app.get("/health/db", tags=["health"])
    async def health_db():
        """Expression store connectivity and schema version."""
        from ..schema import get_schema_version
        from .dependencies import get_db

        try:
            version = get_schema_version(get_db())
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            return JSONResponse(
                status_code=HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "unhealthy",
                    "database": "disconnected",
                    "error": "Database connection check failed",
                    "timestamp": _now(),
                },
            )
        return {
            "status": "healthy",
            "database": "connected",
            "schema_version": version,
            "timestamp": _now(),
        }

    @app.get("/", tags=["root"])
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "docs": settings.api_docs_url,
        }


def create_app() -> FastAPI:
    """Build the FastAPI application from the current settings."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Co-expression similarity of receptor/ligand gene pairs across tissues and cell types",
        version=settings.app_version,
        default_response_class=MSGSpecResponse,
        docs_url=settings.api_docs_url,
        redoc_url=settings.api_redoc_url,
        lifespan=lifespan,
    )

    _add_middleware(app, settings)
    _add_error_handlers(app, settings)
    _add_service_routes(app, settings)

    prefix = settings.api_prefix
    app.include_router(search.router, prefix=f"{prefix}/search", tags=["search"])
    app.include_router(expression.router, prefix=f"{prefix}/expression", tags=["expression"])
    app.include_router(analysis.router, prefix=f"{prefix}/analysis", tags=["analysis"])

    return app


app = create_app()
