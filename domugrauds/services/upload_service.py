"""File upload validation and storage."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from pathlib import Path

import anyio
import structlog
from fastapi import UploadFile

from domugrauds.config import UploadSettings
from domugrauds.errors import InvalidInputError

logger = structlog.get_logger(__name__)

UPLOAD_KINDS = frozenset({"chat", "avatar"})
_READ_CHUNK_BYTES = 1024 * 1024


@dataclass(frozen=True)
class StoredUpload:
    """Public URL and generated file name of a stored upload."""

    url: str
    filename: str


class UploadService:
    """Service storing uploaded files under a kind-specific directory."""

    def __init__(self, settings: UploadSettings) -> None:
        self._directory = settings.directory
        self._max_bytes = settings.max_bytes
        self._blocked_extensions = {ext.lower().lstrip(".") for ext in settings.blocked_extensions}
        self._avatar_extensions = {ext.lower().lstrip(".") for ext in settings.avatar_extensions}

    @property
    def directory(self) -> Path:
        """Return the root directory uploads are written under."""
        return self._directory

    async def store(self, kind: str, upload: UploadFile) -> StoredUpload:
        """Validate and persist an uploaded file.

        Markup and script types are refused for every kind. Avatars must use
        one of the configured image extensions.
        """
        if kind not in UPLOAD_KINDS:
            raise InvalidInputError("Invalid upload kind.")
        original_name = (upload.filename or "").strip()
        if not original_name:
            raise InvalidInputError("No file provided.")
        extension = Path(original_name).suffix.lower().lstrip(".")
        if not extension:
            raise InvalidInputError("File must have an extension.")
        if extension in self._blocked_extensions:
            raise InvalidInputError("File type not allowed.")
        if kind == "avatar" and extension not in self._avatar_extensions:
            raise InvalidInputError("Avatar must be an image.")

        content = bytearray()
        while chunk := await upload.read(_READ_CHUNK_BYTES):
            content.extend(chunk)
            if len(content) > self._max_bytes:
                raise InvalidInputError(
                    f"File too large. Maximum size is {self._max_bytes // (1024 * 1024)}MB."
                )
        if not content:
            raise InvalidInputError("Uploaded file is empty.")

        filename = f"{kind}_{int(time.time() * 1000)}_{secrets.token_hex(6)}.{extension}"
        target_dir = self._directory / kind
        await anyio.Path(target_dir).mkdir(parents=True, exist_ok=True)
        await anyio.Path(target_dir / filename).write_bytes(bytes(content))
        logger.info("upload_stored", kind=kind, filename=filename, size=len(content))
        return StoredUpload(url=f"/uploads/{kind}/{filename}", filename=filename)
