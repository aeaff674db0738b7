"""HTTP middleware."""

from domugrauds.middleware.correlation_id import CorrelationIdMiddleware
from domugrauds.middleware.logging import LoggingMiddleware
from domugrauds.middleware.rate_limit import RateLimitMiddleware

__all__ = ["CorrelationIdMiddleware", "LoggingMiddleware", "RateLimitMiddleware"]
