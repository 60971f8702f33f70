"""
Health Check Endpoints
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from social_inbox import __version__
from social_inbox.core.database import check_database_health
from social_inbox.schemas.base import HealthCheck, HealthStatus

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=HealthCheck)
async def health_check():
    """
    Health check including database connectivity

    Returns 503 when the permission store cannot be reached.
    """
    db_healthy = await check_database_health()
    health = HealthCheck(
        status=HealthStatus.HEALTHY if db_healthy else HealthStatus.UNHEALTHY,
        service="social-inbox-api",
        version=__version__,
        checks={"database": {"status": "healthy" if db_healthy else "unhealthy"}},
    )

    if not db_healthy:
        logger.warning("Health check failed", checks=health.checks)
        return JSONResponse(status_code=503, content=health.model_dump(mode="json"))

    return health
