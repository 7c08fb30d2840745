"""
Content hashing for duplicate detection.

Two hashes are kept per image:
  - get_safe_hash: SHA-256 of the raw bytes (exact byte-level reuse).
  - calculate_perceptual_hash: average hash of the downscaled luminance grid,
    stable under re-encoding and resizing. Compared by Hamming distance.
"""

import hashlib
import logging
from typing import Optional

import imagehash

from fixguard.config import settings
from fixguard.detection.errors import FingerprintError
from fixguard.detection.imaging import ensure_image_bytes, open_image

logger = logging.getLogger(__name__)


def get_safe_hash(data: bytes) -> str:
    """Securely hash raw bytes using SHA-256."""
    return hashlib.sha256(data).hexdigest()


def calculate_perceptual_hash(image_bytes: bytes, hash_size: Optional[int] = None) -> str:
    """
    Decode → resize to a hash_size × hash_size grid → grayscale → threshold at the mean.
    Returns a fixed-width hex string (hash_size² / 4 chars).

    Raises EmptyImageError for an empty buffer and FingerprintError when the
    bytes cannot be decoded.
    """
    ensure_image_bytes(image_bytes)
    size = hash_size or settings.fingerprint_hash_size

    try:
        img = open_image(image_bytes)
        fingerprint = str(imagehash.average_hash(img.convert("RGB"), hash_size=size))
    except Exception as e:
        logger.error(f"[HASH] Failed to calculate perceptual hash: {e}")
        raise FingerprintError("Failed to calculate image hash") from e

    logger.info(f"[HASH] Perceptual hash ({size * size} bits): {fingerprint[:16]}...")
    return fingerprint


def hamming_distance(fingerprint_a: str, fingerprint_b: str) -> int:
    """Number of differing bits between two hex fingerprints of equal width."""
    if len(fingerprint_a) != len(fingerprint_b):
        raise ValueError(
            f"Fingerprint width mismatch ({len(fingerprint_a)} vs {len(fingerprint_b)} chars)"
        )
    return int(imagehash.hex_to_hash(fingerprint_a) - imagehash.hex_to_hash(fingerprint_b))


def fingerprint_bands(fingerprint: str, band_count: int) -> list[str]:
    """
    Split a hex fingerprint into `band_count` contiguous bit ranges, each tagged
    with its position ("3:1f2a").

    Two fingerprints fewer than `band_count` bits apart differ in at most
    `band_count - 1` bands, so they share at least one. Raises ValueError for
    non-hex input.
    """
    bits = bin(int(fingerprint, 16))[2:].zfill(len(fingerprint) * 4)
    step, extra = divmod(len(bits), band_count)
    bands = []
    start = 0
    for index in range(band_count):
        end = start + step + (1 if index < extra else 0)
        bands.append(f"{index}:{int(bits[start:end] or '0', 2):x}")
        start = end
    return bands
