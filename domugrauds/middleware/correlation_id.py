"""Correlation ID middleware."""

from __future__ import annotations

from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-ID"
_FALLBACK_HEADER = "X-Request-ID"
_MAX_LENGTH = 128


def _incoming_correlation_id(request: Request) -> str:
    """Reuse a caller-supplied ID when it is sane, otherwise mint one."""
    for header in (CORRELATION_ID_HEADER, _FALLBACK_HEADER):
        value = request.headers.get(header, "").strip()
        if value and len(value) <= _MAX_LENGTH:
            return value
    return str(uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a request correlation ID and bind it to the structlog context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Bind the correlation ID for the lifetime of one request."""
        correlation_id = _incoming_correlation_id(request)
        request.state.correlation_id = correlation_id
        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
