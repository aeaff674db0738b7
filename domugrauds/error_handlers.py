"""Global exception handlers enforcing the API error envelope."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from domugrauds.core.client_ip import extract_client_ip
from domugrauds.errors import ServiceError

_DEFAULT_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "invalid_input",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "invalid_input",
    422: "invalid_input",
    429: "rate_limited",
}

AUTH_PATH_PREFIX = "/api/auth"

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Build the standardized failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": detail, "code": code},
    )


def _extract_detail_and_code(detail: Any) -> tuple[str, str | None]:
    """Normalize exception detail payload into message and optional code."""
    if isinstance(detail, dict):
        raw_detail = detail.get("detail", "Request failed.")
        raw_code = detail.get("code")
        return str(raw_detail), str(raw_code) if raw_code is not None else None
    if isinstance(detail, str):
        return detail, None
    return "Request failed.", None


def _sanitize_detail(detail: str, status_code: int, environment: str) -> str:
    """Hide internal failure details outside development."""
    if environment != "development" and status_code >= 500:
        return "Internal server error."
    return detail


def _correlation_id(request: Request) -> str:
    return getattr(
        request.state,
        "correlation_id",
        request.headers.get("x-correlation-id", "unknown"),
    )


def _log_auth_failure(request: Request, status_code: int, detail: str, code: str) -> None:
    """Emit a WARNING for rejected credentials and permission checks."""
    if status_code not in {401, 403} or not request.url.path.startswith(AUTH_PATH_PREFIX):
        return
    account = getattr(request.state, "account", None)
    logger.warning(
        "auth_failure",
        correlation_id=_correlation_id(request),
        event_type="auth_failure",
        account_id=str(account.id) if account is not None else None,
        ip_address=extract_client_ip(request),
        success=False,
        status_code=status_code,
        code=code,
        detail=detail,
        path=request.url.path,
        method=request.method,
    )


def register_exception_handlers(app: FastAPI, environment: str) -> None:
    """Register global exception handlers enforcing the error envelope."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        """Map domain service failures to their HTTP status and code."""
        detail = _sanitize_detail(exc.detail, exc.status_code, environment)
        _log_auth_failure(request, exc.status_code, detail, exc.code)
        return _error_response(status_code=exc.status_code, detail=detail, code=exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Normalize framework HTTP exceptions to the envelope."""
        detail, raw_code = _extract_detail_and_code(exc.detail)
        code = raw_code or _DEFAULT_ERROR_CODE_BY_STATUS.get(exc.status_code, "internal_error")
        _log_auth_failure(request, exc.status_code, detail, code)
        return _error_response(status_code=exc.status_code, detail=detail, code=code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Map request validation errors to a 400 invalid_input envelope."""
        detail = "Invalid request payload."
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = first.get("msg", "validation error")
            detail = f"Invalid request payload: {location}: {message}." if location else detail
        return _error_response(status_code=400, detail=detail, code="invalid_input")

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Mask internal errors and enforce the envelope."""
        logger.error(
            "unhandled_exception",
            correlation_id=_correlation_id(request),
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        detail = _sanitize_detail(str(exc), 500, environment)
        return _error_response(status_code=500, detail=detail, code="internal_error")
