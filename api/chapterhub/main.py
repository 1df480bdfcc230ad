"""Chapterhub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chapterhub.comments.moderation_router import router as moderation_router
from chapterhub.comments.reports import ModerationService
from chapterhub.comments.router import router as comments_router
from chapterhub.comments.service import CommentService
from chapterhub.comments.store import CommentStore
from chapterhub.config import Settings, get_settings
from chapterhub.core.context import get_request_id
from chapterhub.core.database import init_async_cassandra, shutdown_async_cassandra
from chapterhub.core.logging import configure_structlog, get_logger
from chapterhub.core.middleware import RequestContextMiddleware
from chapterhub.core.redis import init_redis, shutdown_redis
from chapterhub.health.router import router as health_router
from chapterhub.notifications.router import router as notifications_router
from chapterhub.notifications.service import NotificationService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def build_services(
    app: FastAPI,
    session: Any,
    redis_client: Any,
    settings: Settings,
) -> None:
    """Create the services and expose them on ``app.state``."""
    notification_service = NotificationService(
        session=session,
        keyspace=settings.cassandra_keyspace,
        redis=redis_client,
    )
    store = CommentStore(
        session=session,
        keyspace=settings.cassandra_keyspace,
        timeout=settings.comments_request_timeout,
    )
    comment_service = CommentService(
        store=store,
        redis=redis_client,
        settings=settings,
        notifications=notification_service,
    )
    moderation_service = ModerationService(
        store=store,
        comments=comment_service,
        redis=redis_client,
        settings=settings,
        notifications=notification_service,
    )

    app.state.notification_service = notification_service
    app.state.comment_service = comment_service
    app.state.moderation_service = moderation_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: caches, spam history and rate limits are skipped
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - caches and rate limits disabled",
        )
    app.state.redis = redis_client

    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        build_services(app, session, redis_client, settings)
        logger.info(
            "comment_services_initialized", redis_enabled=redis_client is not None
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Chapter comments, reactions and moderation API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages.

        Structured details from the comment routes (code, reason, warnings,
        retryable) are passed through next to the message.
        """
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        content: dict[str, Any] = {
            "error": True,
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        if (
            exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            and exc.status_code != status.HTTP_503_SERVICE_UNAVAILABLE
        ):
            content["message"] = "Internal server error"
        elif isinstance(exc.detail, dict):
            content.update(exc.detail)
        else:
            content["message"] = str(exc.detail)

        return ORJSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged; the response never carries them.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(comments_router)
    app.include_router(moderation_router)
    app.include_router(notifications_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Chapterhub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the API server settings."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chapterhub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
    )


if __name__ == "__main__":
    run()
