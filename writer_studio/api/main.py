"""
FastAPI application for the Writer Studio service.

This module initializes and configures the FastAPI application that serves
the authentication, submission and analytics endpoints used by the writer
dashboard.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from writer_studio.api.dependencies import ServiceContainer, build_services
from writer_studio.api.endpoints import analytics, auth, submissions, videos
from writer_studio.config.settings import Settings, get_settings
from writer_studio.core.errors import BadRequestError, MethodNotAllowedError, WriterStudioError
from writer_studio.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)


def error_body(error: WriterStudioError) -> dict:
    body = {"success": False, "message": error.message}
    if error.retryable:
        body["retryable"] = True
    return body


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Builds the service container on startup unless one was injected, and
    releases backend clients and the database engine on shutdown.
    """
    settings: Settings = app.state.settings
    injected = getattr(app.state, "services", None) is not None

    if not injected:
        setup_logging()
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        app.state.services = build_services(settings)

    yield

    logger.info("Shutting down application")
    if not injected:
        await app.state.services.close()


def create_app(services: Optional[ServiceContainer] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: A pre-built service container. When omitted the container is
            built from settings at startup.
        settings: Settings to use, defaults to ``get_settings()``.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = settings or (services.settings if services else get_settings())

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""Writer Studio API for the writer dashboard.

        This API provides endpoints for:
        - Login and session profile
        - Script submissions
        - View analytics with automatic fallback across InfluxDB, BigQuery and Postgres
        - Top, latest and paginated content
        - Per-video analytics""",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_tags=[
            {"name": "auth", "description": "Login and session profile"},
            {"name": "submissions", "description": "Script submissions"},
            {"name": "analytics", "description": "Writer analytics"},
            {"name": "health", "description": "Health check and monitoring"},
        ],
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    permissive_headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Credentials": "true",
    }

    # Registered after CORSMiddleware, so it sees requests first and responses last.
    @app.middleware("http")
    async def permissive_cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(
                status_code=200,
                headers={
                    **permissive_headers,
                    "Access-Control-Allow-Methods": ",".join(settings.CORS_ALLOW_METHODS),
                    "Access-Control-Allow-Headers": ",".join(settings.CORS_ALLOW_HEADERS),
                },
            )
        response = await call_next(request)
        # CORSMiddleware echoes the request Origin for credentialed wildcard setups
        if "*" in settings.CORS_ORIGINS:
            response.headers.update(permissive_headers)
        return response

    @app.exception_handler(WriterStudioError)
    async def writer_studio_error_handler(request: Request, exc: WriterStudioError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(part) for part in err["loc"][1:]) or "body" for err in exc.errors())
        return JSONResponse(status_code=400, content=error_body(BadRequestError(f"Invalid request: {fields}")))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return JSONResponse(status_code=405, content=error_body(MethodNotAllowedError()))
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(submissions.router, prefix="/api", tags=["submissions"])
    app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
    app.include_router(videos.router, prefix="/api", tags=["analytics"])

    @app.get("/health", tags=["health"], summary="Health Check")
    async def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            dict: Service status, version, timestamp, database reachability and the
                configured backends in resolution order.
        """
        container: ServiceContainer = request.app.state.services
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metrics_sources": container.metrics.names if container else [],
            "content_sources": [source.name for source in container.content.sources] if container else [],
            "database": await container.database_ok() if container else None,
            "mock_fallback": settings.MOCK_FALLBACK_ENABLED,
        }

    return app


# Create the application instance
app = create_app()
