"""Health and monitoring endpoints"""

from fastapi import APIRouter, Depends
from typing import Annotated
import asyncpg
import redis.asyncio as redis

from ..config import settings
from ..core.database import check_database
from ..dependencies import get_db_pool, get_media_manager, get_redis
from ..services.media.manager import MediaManager

router = APIRouter()


@router.get("")
async def health_check(
    pool: Annotated[asyncpg.Pool, Depends(get_db_pool)],
    redis_client: Annotated[redis.Redis, Depends(get_redis)],
    manager: Annotated[MediaManager, Depends(get_media_manager)],
):
    """Health check endpoint with dependency validation"""
    checks = {
        "database": "unknown",
        "redis": "unknown",
    }

    # Check database
    try:
        await check_database(pool)
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)[:50]}"

    # Check Redis
    try:
        await redis_client.ping()
        checks["redis"] = "healthy"
    except Exception as e:
        checks["redis"] = f"unhealthy: {str(e)[:50]}"

    # Overall status
    all_healthy = all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "checks": checks,
        "storage": manager.get_storage_info(),
    }
