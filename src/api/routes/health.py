"""Health check endpoint."""

from fastapi import APIRouter
from loguru import logger
from sqlalchemy.pool import QueuePool

from src.infrastructure.database.session import check_database_connection, get_engine

router = APIRouter(tags=["health"])


@router.get("/health", name="health")
async def health() -> dict[str, object]:
    """Health check for container orchestration and load balancers.

    The site keeps serving pages without a database, so a failed probe
    reports ``degraded`` rather than failing the check.
    """
    health_status: dict[str, object] = {"status": "healthy", "database": False}

    is_healthy, error_msg = await check_database_connection()
    health_status["database"] = is_healthy

    if is_healthy:
        pool = get_engine().pool
        if isinstance(pool, QueuePool):
            logger.bind(
                metric_type="db.pool.health",
                checked_out=pool.checkedout(),
                size=pool.size(),
                overflow=pool.overflow(),
            ).debug("Database pool health check")
    else:
        logger.warning("Database health check failed: {}", error_msg)
        health_status["status"] = "degraded"

    return health_status
