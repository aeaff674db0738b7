"""Redis-backed sliding-window rate limiting middleware."""

from __future__ import annotations

import math
import time
from typing import Protocol
from uuid import uuid4

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from domugrauds.core.client_ip import extract_client_ip
from domugrauds.errors import RateLimitedError

logger = structlog.get_logger(__name__)
_WINDOW_SECONDS = 60
LOGIN_PATH = "/api/auth/login"
REGISTER_PATH = "/api/auth/register"


class SlidingWindowRedis(Protocol):
    """Protocol for Redis operations used by the rate limiter."""

    async def zremrangebyscore(self, key: str, min: str | int, max: int) -> int:
        """Delete members with score inside an inclusive range."""

    async def zcard(self, key: str) -> int:
        """Return sorted-set cardinality."""

    async def zadd(self, key: str, mapping: dict[str, int]) -> int:
        """Add one or more scored members to sorted set."""

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Apply TTL to key."""


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply per-client sliding-window limits, tighter on credential endpoints."""

    def __init__(
        self,
        app,
        redis_client: SlidingWindowRedis,
        default_requests_per_minute: int,
        login_requests_per_minute: int,
        register_requests_per_minute: int,
    ) -> None:
        super().__init__(app)
        self._redis = redis_client
        self._default_limit = default_requests_per_minute
        self._path_limits = {
            LOGIN_PATH: login_requests_per_minute,
            REGISTER_PATH: register_requests_per_minute,
        }
        self._window_milliseconds = _WINDOW_SECONDS * 1000

    async def dispatch(self, request: Request, call_next) -> Response:
        """Reject requests exceeding the per-minute budget; fail open without Redis."""
        limit = self._path_limits.get(request.url.path, self._default_limit)
        bucket_key = f"rate_limit:{request.url.path}:{extract_client_ip(request)}"
        now_ms = int(time.time() * 1000)
        window_start = now_ms - self._window_milliseconds

        try:
            await self._redis.zremrangebyscore(bucket_key, "-inf", window_start)
            current_count = await self._redis.zcard(bucket_key)
            if current_count >= limit:
                logger.warning("rate_limited", path=request.url.path, limit=limit)
                error = RateLimitedError("Too many requests. Please try again later.")
                return JSONResponse(
                    status_code=error.status_code,
                    content={"success": False, "error": error.detail, "code": error.code},
                    headers={"Retry-After": str(_WINDOW_SECONDS)},
                )

            await self._redis.zadd(bucket_key, {f"{now_ms}:{uuid4()}": now_ms})
            await self._redis.expire(bucket_key, math.ceil(self._window_milliseconds / 1000) + 1)
        except RedisError:
            logger.warning(
                "rate_limit_backend_unavailable",
                path=request.url.path,
                method=request.method,
            )

        return await call_next(request)
