"""Image upload router proxying files to Cloudinary."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import ORJSONResponse

from api.auth import get_current_user
from libs.common.settings import get_settings
from libs.media.cloudinary_uploads import ALLOWED_IMAGE_TYPES, upload_image

logger = structlog.get_logger(__name__)
router = APIRouter()


def _error(status_code: int, message: str) -> ORJSONResponse:
    return ORJSONResponse(status_code=status_code, content={"error": message})


@router.post("/upload", dependencies=[Depends(get_current_user)], tags=["Upload"])
async def upload_endpoint(file: Optional[UploadFile] = File(None)):
    """Upload one image for a post or a message.

    Checks run in order: file present (400), type allowed (415), size within
    the limit (413), Cloudinary configured (500). Upload failures are 500 as
    well. Errors use the `{error: "..."}` body.

    Returns:
        `{url, public_id, bytes, format, width, height}`

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/upload \\
          -H "Authorization: Bearer <id-token>" \\
          -F "file=@photo.png;type=image/png"
        ```
    """
    settings = get_settings()

    if file is None or not file.filename:
        return _error(status.HTTP_400_BAD_REQUEST, "No file provided")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        return _error(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "Unsupported file type")

    data = await file.read()
    if len(data) > settings.upload_max_bytes:
        max_mb = settings.upload_max_bytes // (1024 * 1024)
        return _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, f"File too large (max {max_mb}MB)")

    if not settings.cloudinary_configured:
        logger.error("Upload rejected, Cloudinary credentials missing")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Cloudinary not configured")

    try:
        result = await asyncio.to_thread(upload_image, data, settings)
    except Exception as e:
        logger.error("Upload API error", error=str(e), filename=file.filename, exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Upload failed")

    return result
