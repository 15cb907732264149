"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from . import __version__
from .api import generation, health, leveling, preferences
from .core import setup_logging, get_logger, settings as default_settings, Settings, LevelLensException
from .core.logging import add_request_context
from .core.metrics import REQUEST_COUNT, REQUEST_DURATION
from .models.api import ErrorResponse
from .services.container import AppContainer

# Setup logging
setup_logging()
logger = get_logger(__name__)


def create_app(
    config: Optional[Settings] = None,
    container: Optional[AppContainer] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to build the service container from
        container: Prebuilt container, used as-is instead of building one
    """
    config = config or (container.settings if container else default_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info("Starting LevelLens API", version=app.version)

        app.state.container = container or AppContainer.build(config)
        logger.info(
            "Services initialized",
            provider=app.state.container.provider.name,
            questions=len(app.state.container.question_bank),
        )

        yield

        # Shutdown
        logger.info("Shutting down LevelLens API")
        await app.state.container.shutdown()

    app = FastAPI(
        title="LevelLens API",
        description="CEFR leveling tests and level-aware text simplification",
        version=__version__,
        debug=config.debug,
        docs_url="/docs" if config.is_development() else None,
        redoc_url="/redoc" if config.is_development() else None,
        openapi_url="/openapi.json" if config.is_development() else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.is_development() else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request middleware for logging and metrics
    @app.middleware("http")
    async def request_middleware(request: Request, call_next):
        """Add request ID, logging, and metrics."""
        request_id = str(uuid4())
        request.state.request_id = request_id

        request_logger = get_logger(__name__).bind(
            **add_request_context(
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                user_agent=request.headers.get("user-agent"),
            )
        )

        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            request_logger.info(
                "Request completed",
                status_code=response.status_code,
                duration=duration,
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration = time.time() - start_time
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status_code=500
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            request_logger.error(
                "Request failed",
                error=str(exc),
                duration=duration,
                exc_info=True,
            )

            raise

    # Exception handlers
    @app.exception_handler(LevelLensException)
    async def level_lens_exception_handler(request: Request, exc: LevelLensException):
        """Handle custom application exceptions."""
        request_id = getattr(request.state, 'request_id', None)
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Application error",
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            request_id=request_id,
        )

        error = ErrorResponse(
            message=exc.message,
            error_code=exc.error_code,
            details=exc.details,
            request_id=request_id,
        )
        return JSONResponse(status_code=exc.status_code, content=error.model_dump(mode="json"))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        logger.warning(
            "HTTP error",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=getattr(request.state, 'request_id', None),
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": exc.detail,
                "error_code": f"HTTP_{exc.status_code}",
                "request_id": getattr(request.state, 'request_id', None),
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            "Unexpected error",
            error=str(exc),
            request_id=getattr(request.state, 'request_id', None),
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Internal server error" if config.is_production() else str(exc),
                "error_code": "INTERNAL_SERVER_ERROR",
                "request_id": getattr(request.state, 'request_id', None),
            }
        )

    # Metrics endpoint
    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Include routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(generation.router, prefix="/api/v1")
    app.include_router(leveling.router, prefix="/api/v1")
    app.include_router(preferences.router, prefix="/api/v1")

    return app


# Create the app instance
app = create_app()


# For development
if __name__ == "__main__":
    uvicorn.run(
        "level_lens.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.is_development(),
        log_level=default_settings.log_level.lower(),
    )
