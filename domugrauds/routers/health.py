"""Health check router endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from domugrauds.dependencies import ServicesDep

router = APIRouter(prefix="/health", tags=["health"])
logger = structlog.get_logger(__name__)


async def check_database_ready(services: ServicesDep) -> bool:
    """Return True when the database accepts a lightweight query."""
    try:
        async with services.database.engine.connect() as connection:
            await connection.execute(select(1))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("database_not_ready", error=str(exc))
        return False
    return True


async def check_redis_ready(services: ServicesDep) -> bool:
    """Return True when Redis answers PING, or when nothing depends on it."""
    if not services.settings.rate_limit.enabled:
        return True
    try:
        return bool(await services.redis.ping())
    except (RedisError, OSError) as exc:
        logger.warning("redis_not_ready", error=str(exc))
        return False


@router.get("/live")
async def live() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "live"}


@router.get("/ready")
async def ready(
    database_ready: Annotated[bool, Depends(check_database_ready)],
    redis_ready: Annotated[bool, Depends(check_redis_ready)],
) -> dict[str, str]:
    """Readiness probe requiring the database and, when rate limiting is on, Redis."""
    if not database_ready or not redis_ready:
        raise HTTPException(
            status_code=503,
            detail={"detail": "Service not ready.", "code": "service_unavailable"},
        )
    return {"status": "ready"}
