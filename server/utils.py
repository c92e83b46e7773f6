"""Shared utilities for FastAPI routes."""

import mimetypes
from collections.abc import Mapping

from fastapi import HTTPException, UploadFile, status

from models.task import Attachment

SENSITIVE_HEADERS = {"x-api-key", "authorization"}
ACCEPTED_MEDIA_PREFIXES = ("image/", "application/pdf")


async def read_upload(upload: UploadFile | None, max_bytes: int) -> Attachment | None:
    """
    Read an uploaded file into an Attachment.

    Raises 413 when the file exceeds `max_bytes`, 422 when it is empty or is
    neither an image nor a PDF.
    """
    if upload is None:
        return None

    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{upload.filename or 'upload'} exceeds {max_bytes} bytes",
        )
    if not data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{upload.filename or 'upload'} is empty",
        )

    mime_type = upload.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = mimetypes.guess_type(upload.filename or "")[0]
    if not mime_type or not mime_type.startswith(ACCEPTED_MEDIA_PREFIXES):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported media type: {mime_type or 'unknown'}",
        )

    return Attachment(data=data, mime_type=mime_type, name=upload.filename)


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted
