"""Shared response envelope and serialization helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]


class CamelModel(BaseModel):
    """Base model exposing camelCase on the wire and accepting either case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(CamelModel):
    """Bare success acknowledgement."""

    success: Literal[True] = True
    message: str | None = None


class ErrorResponse(CamelModel):
    """Failure envelope returned by the global exception handlers."""

    success: Literal[False] = False
    error: str
    code: str
