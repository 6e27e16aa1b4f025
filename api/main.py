"""Peerhelp API Service.

This is the main FastAPI application for the Peerhelp community forum:
posts, votes, comments, direct messages, payment analytics and image upload.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import firebase_admin
import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from libs.common.settings import get_settings
from api.models import HealthResponse
from api.routers import (
    analytics as analytics_router,
    comments as comments_router,
    messages as messages_router,
    posts as posts_router,
    upload as upload_router,
    users as users_router,
)
from libs.firebase.client import initialize_firebase_app
from libs.firestore.listeners import subscriptions

initialize_firebase_app()

logging.basicConfig(format="%(message)s", level=get_settings().log_level)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Live conversation streams must not leave Firestore listeners behind
    closed = subscriptions.close_all()
    logger.info("Shutdown complete", listeners_closed=closed)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Peerhelp API",
        description="Community forum and peer support platform",
        version=APP_VERSION,
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Any origin in development; credentials only with an explicit allow-list
    cors_origins = ["*"] if settings.is_development else settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False if settings.is_development else True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Add request size limiter middleware
    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        """Limit request body size to prevent abuse."""
        max_size = settings.max_request_bytes

        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.headers.get("content-length")
            if content_length and int(content_length) > max_size:
                return ORJSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "error_code": "REQUEST_TOO_LARGE",
                        "message": f"Request body too large. Maximum size: {max_size} bytes"
                    }
                )

        return await call_next(request)

    # Add request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and structured data."""
        start_time = time.time()
        request_id = f"req_{int(start_time * 1000000)}"

        request.state.request_id = request_id

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            user_agent=request.headers.get("user-agent"),
        )

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                request_id=request_id,
                status_code=response.status_code,
                process_time_ms=round(process_time * 1000, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                request_id=request_id,
                error=str(e),
                process_time_ms=round(process_time * 1000, 2),
                exc_info=True,
            )
            raise

    return app


# Create the FastAPI app
app = create_app()

# Include API routers
app.include_router(posts_router.router, prefix="/api", tags=["Posts"])
app.include_router(comments_router.router, prefix="/api", tags=["Comments"])
app.include_router(messages_router.router, prefix="/api", tags=["Messages"])
app.include_router(users_router.router, prefix="/api", tags=["Users"])
app.include_router(analytics_router.router, prefix="/api", tags=["Analytics"])
app.include_router(upload_router.router, prefix="/api", tags=["Upload"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint to confirm the API is running."""
    return {"message": "Peerhelp API is running."}


@app.get("/healthz", response_model=HealthResponse, response_model_exclude_none=True, tags=["Health"])
async def health_check() -> HealthResponse:
    """Liveness check. Does not touch Firestore."""
    return HealthResponse(
        status="healthy",
        service="api",
        version=APP_VERSION,
        timestamp=time.time(),
    )


@app.get("/readyz", response_model=HealthResponse, tags=["Health"])
async def readiness_check(response: Response) -> HealthResponse:
    """Readiness check.

    The service is ready once the Firebase app is initialized. Cloudinary is
    reported but optional, since only image upload depends on it.

    Example:
        ```bash
        curl http://localhost:8000/readyz
        ```
    """
    settings = get_settings()
    checks = {
        "firebase": bool(firebase_admin._apps),
        "cloudinary": settings.cloudinary_configured,
        "liveStreams": len(subscriptions.active_owners()),
    }
    if not checks["firebase"]:
        logger.warning("Readiness check failed", checks=checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="ready" if checks["firebase"] else "not_ready",
        service="api",
        version=APP_VERSION,
        timestamp=time.time(),
        checks=checks,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().is_development,
        log_level="info",
    )
