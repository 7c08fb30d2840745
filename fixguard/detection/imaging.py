"""
Image decoding helpers shared by every pixel-level detector.

Registers the HEIF opener so phone uploads decode, and sets
PIL.Image.MAX_IMAGE_PIXELS to guard against decompression bombs.
"""

import io
from typing import Optional

import numpy as np
import pillow_heif
from PIL import Image

from fixguard.config import settings
from fixguard.detection.errors import EmptyImageError

pillow_heif.register_heif_opener()

Image.MAX_IMAGE_PIXELS = settings.pil_max_image_pixels

GRAYSCALE_MODES = {"1", "L", "LA", "I", "I;16", "F"}


def ensure_image_bytes(image_bytes: bytes) -> None:
    if not image_bytes:
        raise EmptyImageError("No image bytes supplied")


def open_image(image_bytes: bytes) -> Image.Image:
    """Decode a byte buffer into a fully loaded PIL image."""
    ensure_image_bytes(image_bytes)
    img = Image.open(io.BytesIO(image_bytes))
    img.load()
    return img


def load_normalized_rgb(image_bytes: bytes, size: Optional[int] = None) -> tuple[np.ndarray, Image.Image]:
    """
    Decode and resize to a fixed square, returning (uint8 HxWx3 array, original image).
    The original is returned unconverted so callers can still read its format, mode and size.
    """
    side = size or settings.visual_resize_px
    img = open_image(image_bytes)
    rgb = img.convert("RGB").resize((side, side), Image.Resampling.BILINEAR)
    return np.asarray(rgb, dtype=np.uint8), img
