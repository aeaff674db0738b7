"""File upload routes."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, File, UploadFile

from domugrauds.dependencies import CurrentAccount, ServicesDep
from domugrauds.schemas.upload import UploadResponse

router = APIRouter(prefix="/api/upload", tags=["uploads"])


@router.post("/{kind}", response_model=UploadResponse)
async def upload_file(
    kind: Literal["chat", "avatar"],
    file: Annotated[UploadFile, File()],
    account: CurrentAccount,
    services: ServicesDep,
) -> UploadResponse:
    """Store an uploaded chat attachment or avatar image."""
    stored = await services.uploads.store(kind, file)
    return UploadResponse(url=stored.url, filename=stored.filename)
