"""Service-level error taxonomy shared by all domain services."""

from __future__ import annotations


class ServiceError(Exception):
    """Raised when a domain operation fails validation, authorization, or lookup."""

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(ServiceError):
    """Missing or malformed request fields."""

    status_code = 400
    code = "invalid_input"


class UnauthorizedError(ServiceError):
    """Missing, invalid, expired, or revoked credentials."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(ServiceError):
    """Role or ownership check failed."""

    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    """Referenced entity does not exist."""

    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    """Uniqueness or membership constraint violated."""

    status_code = 409
    code = "conflict"


class RateLimitedError(ServiceError):
    """Caller exceeded the request budget for an endpoint."""

    status_code = 429
    code = "rate_limited"
