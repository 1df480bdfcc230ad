"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status
from redis.exceptions import RedisError

from chapterhub.config import get_settings
from chapterhub.core.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - the process is up and serving."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict:
    """Readiness probe - the comment store is connected.

    Redis is reported but optional: without it caches and rate limits are
    skipped, so it never fails readiness.
    """
    state = request.app.state

    cassandra_ready = getattr(state, "comment_service", None) is not None

    redis_status = "disabled"
    redis = getattr(state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            redis_status = "ok"
        except RedisError as e:
            logger.warning("readiness_redis_failed", error=str(e))
            redis_status = "unavailable"

    if not cassandra_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if cassandra_ready else "not_ready",
        "checks": {
            "cassandra": "ok" if cassandra_ready else "unavailable",
            "redis": redis_status,
        },
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
