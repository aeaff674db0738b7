"""Structured request logging middleware with credential redaction."""

from __future__ import annotations

from time import perf_counter
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from domugrauds.core.client_ip import extract_client_ip

SENSITIVE_KEYS = {
    "auth_token",
    "authorization",
    "cookie",
    "password",
    "password_hash",
    "set_cookie",
    "token",
}
SENSITIVE_FRAGMENTS = ("token", "password", "secret")
REDACTED = "***REDACTED***"

logger = structlog.get_logger(__name__)


def is_sensitive_key(key: str) -> bool:
    """Return True when a key likely carries credential material."""
    normalized = key.lower().replace("-", "_")
    if normalized in SENSITIVE_KEYS:
        return True
    return any(fragment in normalized for fragment in SENSITIVE_FRAGMENTS)


def redact_mapping(values: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a mapping with credential values replaced."""
    redacted: dict[str, Any] = {}
    for key, value in values.items():
        if is_sensitive_key(key):
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_mapping(value)
        elif isinstance(value, list):
            redacted[key] = [
                redact_mapping(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            redacted[key] = value
    return redacted


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured log line per HTTP request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Log method, path, status, and latency for each request."""
        start = perf_counter()
        fields: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query_params": redact_mapping(dict(request.query_params)),
            "client_ip": extract_client_ip(request),
            "user_agent": request.headers.get("user-agent", ""),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_completed",
                status_code=500,
                duration_ms=round((perf_counter() - start) * 1000, 2),
                **fields,
            )
            raise

        event_logger = logger.warning if response.status_code >= 500 else logger.info
        event_logger(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((perf_counter() - start) * 1000, 2),
            **fields,
        )
        return response
