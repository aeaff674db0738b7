"""SDK exception hierarchy."""

from __future__ import annotations


class SDKError(Exception):
    """Base class for all SDK-specific exceptions."""


class APIUnavailableError(SDKError):
    """Raised when the API is unreachable or answers with a server error."""


class APIResponseError(SDKError):
    """Raised when the API rejects a request or returns malformed data."""

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        """Initialize with optional HTTP status and machine-readable code."""
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.code = code
