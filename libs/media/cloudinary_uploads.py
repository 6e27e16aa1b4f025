"""Image hosting through Cloudinary."""

import io
from typing import Any, Dict

import cloudinary
import cloudinary.uploader
import structlog

from libs.common.settings import Settings

logger = structlog.get_logger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/jpg"})


def configure_cloudinary(settings: Settings) -> None:
    """Pushes credentials from settings into the Cloudinary SDK."""
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True,
    )


def upload_image(data: bytes, settings: Settings) -> Dict[str, Any]:
    """Uploads image bytes and returns the public description of the asset.

    Blocking; call it from a worker thread inside request handlers.

    Args:
        data: Raw image bytes.
        settings: Application settings with Cloudinary credentials.

    Returns:
        Dict with url, public_id, bytes, format, width and height.

    Raises:
        RuntimeError: If Cloudinary returns no result.
    """
    configure_cloudinary(settings)
    result = cloudinary.uploader.upload(
        io.BytesIO(data),
        folder=settings.upload_folder,
        resource_type="image",
        overwrite=False,
        invalidate=False,
    )
    if not result:
        raise RuntimeError("Upload failed - no result")

    logger.info("Image uploaded", public_id=result.get("public_id"), bytes=result.get("bytes"))
    return {
        "url": result.get("secure_url"),
        "public_id": result.get("public_id"),
        "bytes": result.get("bytes"),
        "format": result.get("format"),
        "width": result.get("width"),
        "height": result.get("height"),
    }
