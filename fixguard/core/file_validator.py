"""
Upload validation for image submissions.

Decoding goes through `fixguard.detection.imaging`, which registers the HEIF
opener and sets PIL.Image.MAX_IMAGE_PIXELS against decompression bombs.
"""

import io
import os
import logging

from fastapi import HTTPException
from PIL import Image

from fixguard.config import settings
from fixguard.detection import imaging  # noqa: F401  (HEIF opener + pixel cap)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif", ".tiff", ".tif", ".bmp"}
ALLOWED_FORMATS = {"JPEG", "MPO", "PNG", "WEBP", "HEIF", "TIFF", "BMP"}


def validate_image_upload(filename: str, content: bytes) -> bool:
    """Check extension, size and that the bytes really decode as a supported image."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=415, detail="Unsupported file format.")

    if not content:
        raise HTTPException(status_code=400, detail="Empty upload.")

    if len(content) > settings.max_image_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large. Max {settings.max_image_upload_mb}MB allowed."
        )

    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
        with Image.open(io.BytesIO(content)) as img:
            actual_format = (img.format or "").upper()
        if actual_format not in ALLOWED_FORMATS:
            raise ValueError(f"Format mismatch: {actual_format or 'unknown'}")
    except Exception as e:
        logger.error(f"Corrupted or disguised upload rejected ({filename}): {e}")
        raise HTTPException(status_code=400, detail="Invalid file content or format mismatch.")

    return True
