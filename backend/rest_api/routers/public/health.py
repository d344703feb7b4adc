"""
Health check endpoint for the REST API.
Reports database and Redis reachability.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import get_redis_pool
from shared.utils.schemas import HealthOutput

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def check_database() -> bool:
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def check_redis() -> bool:
    try:
        client = await get_redis_pool()
        await client.ping()
        return True
    except (redis.RedisError, OSError) as e:
        logger.warning("Redis health check failed", error=str(e))
        return False


@router.get("/health", response_model=HealthOutput)
async def health_check():
    """
    Dependency health.

    The database is required: if it is down the response is 503. Redis
    only carries best-effort real-time events, so a Redis outage reports
    `degraded` with 200.
    """
    database_ok = check_database()
    if settings.realtime_enabled:
        redis_state = "ok" if await check_redis() else "error"
    else:
        redis_state = "disabled"

    body = HealthOutput(
        status="ok" if database_ok and redis_state != "error" else "degraded",
        database="ok" if database_ok else "error",
        redis=redis_state,
    )
    if not database_ok:
        return JSONResponse(content=body.model_dump(), status_code=503)
    return body
