"""Upload response schema."""

from typing import Literal

from domugrauds.schemas.common import CamelModel


class UploadResponse(CamelModel):
    """Stored file location."""

    success: Literal[True] = True
    url: str
    filename: str
