"""
EXIF metadata extraction and authenticity scoring.

Functions:
  - extract_image_metadata: Pulls camera, timestamp, software and GPS fields out of an image buffer.
  - verify_exif_authenticity: Rule engine turning extracted metadata into a 0-10 confidence score.
"""

import io
import logging
from datetime import datetime
from typing import Optional

from PIL import Image, ExifTags
from PIL.ExifTags import GPSTAGS, TAGS

from fixguard.config import settings
from fixguard.detection import imaging  # noqa: F401  (registers HEIF opener)
from fixguard.detection.constants import EDITING_SOFTWARE_SIGNATURES
from fixguard.schemas.fraud import AuthenticityAssessment, ImageMetadata

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y:%m:%d %H:%M:%S%z")


def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip().strip("\x00").strip()
    return text or None


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        if isinstance(value, tuple) and len(value) == 2:
            return float(value[0]) / float(value[1])
        return float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _to_int(value) -> Optional[int]:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    number = _to_float(value)
    return int(number) if number is not None else None


def _parse_exif_datetime(value) -> Optional[datetime]:
    """EXIF stores 'YYYY:MM:DD HH:MM:SS'; some writers use dashes."""
    text = _clean_text(value)
    if not text:
        return None
    for fmt in EXIF_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.debug(f"[META] Unparseable EXIF timestamp: {text[:32]}")
    return None


def _dms_to_degrees(dms, ref) -> Optional[float]:
    """Convert an EXIF (degrees, minutes, seconds) triple plus N/S/E/W ref to signed degrees."""
    if not dms:
        return None
    try:
        parts = [_to_float(p) for p in dms]
        if any(p is None for p in parts):
            return None
        degrees = parts[0] + (parts[1] if len(parts) > 1 else 0) / 60 + (parts[2] if len(parts) > 2 else 0) / 3600
    except TypeError:
        return None
    ref_text = (_clean_text(ref) or "").upper()
    if ref_text in ("S", "W"):
        degrees = -degrees
    return degrees


def _read_tags(img: Image.Image) -> dict:
    """Flatten IFD0, the Exif sub-IFD and the GPS sub-IFD into one name → value dict."""
    exif = img.getexif()
    if not exif:
        return {}

    tags = {}
    for tag, value in exif.items():
        tags[TAGS.get(tag, tag)] = value

    try:
        for tag, value in exif.get_ifd(ExifTags.IFD.Exif).items():
            tags[TAGS.get(tag, tag)] = value
    except Exception as e:
        logger.debug(f"[META] Exif sub-IFD unreadable: {e}")

    try:
        for tag, value in exif.get_ifd(ExifTags.IFD.GPSInfo).items():
            tags[GPSTAGS.get(tag, tag)] = value
    except Exception as e:
        logger.debug(f"[META] GPS sub-IFD unreadable: {e}")

    return tags


def extract_image_metadata(image_bytes: bytes) -> Optional[ImageMetadata]:
    """
    Extract capture metadata from an image buffer.

    Returns None both when the image carries no EXIF block and when parsing
    fails; the two cases are logged differently. Never raises.
    """
    if not image_bytes:
        logger.warning("[META] Extraction skipped: empty image buffer")
        return None

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            pixel_width, pixel_height = img.size
            tags = _read_tags(img)
    except Exception as e:
        logger.warning(f"[META] EXIF extraction failed: {e}")
        return None

    if not tags:
        logger.info("[META] No EXIF data found in image")
        return None

    latitude = _dms_to_degrees(tags.get("GPSLatitude"), tags.get("GPSLatitudeRef"))
    longitude = _dms_to_degrees(tags.get("GPSLongitude"), tags.get("GPSLongitudeRef"))

    metadata = ImageMetadata(
        make=_clean_text(tags.get("Make")),
        model=_clean_text(tags.get("Model")),
        date_time_original=_parse_exif_datetime(tags.get("DateTimeOriginal")),
        create_date=_parse_exif_datetime(tags.get("DateTimeDigitized")),
        modify_date=_parse_exif_datetime(tags.get("DateTime")),
        software=_clean_text(tags.get("Software")),
        shutter_speed=_to_float(tags.get("ExposureTime")) or _to_float(tags.get("ShutterSpeedValue")),
        aperture=_to_float(tags.get("FNumber")) or _to_float(tags.get("ApertureValue")),
        focal_length=_to_float(tags.get("FocalLength")),
        iso=_to_int(tags.get("ISOSpeedRatings")),
        latitude=latitude,
        longitude=longitude,
        altitude=_to_float(tags.get("GPSAltitude")),
        width=_to_int(tags.get("ExifImageWidth")) or _to_int(tags.get("ImageWidth")) or pixel_width,
        height=_to_int(tags.get("ExifImageHeight")) or _to_int(tags.get("ImageLength")) or pixel_height,
        orientation=_to_int(tags.get("Orientation")),
    )

    logger.info(
        f"[META] Extracted: make={metadata.make}, model={metadata.model}, "
        f"software={metadata.software}, gps={'yes' if latitude is not None else 'no'}"
    )
    return metadata


def verify_exif_authenticity(metadata: Optional[ImageMetadata]) -> AuthenticityAssessment:
    """
    Score metadata completeness and tampering signals on a 0-10 scale.

    Critical fields are camera identity (make or model) and a capture
    timestamp. Any missing critical field caps the score below the
    auto-approve line.
    """
    if metadata is None:
        return AuthenticityAssessment(
            is_complete=False,
            missing_critical_fields=["all"],
            suspicious_fields=[],
            confidence_score=0,
        )

    missing = []
    suspicious = []

    if not metadata.has_camera_info:
        missing.append("camera_info")

    if metadata.capture_time is None:
        missing.append("timestamp")

    if metadata.software:
        software = metadata.software.lower()
        if any(sig in software for sig in EDITING_SOFTWARE_SIGNATURES):
            suspicious.append("editing_software")

    capture = metadata.capture_time
    if capture and metadata.modify_date:
        try:
            gap_sec = abs((metadata.modify_date - capture).total_seconds())
        except TypeError:
            # naive vs aware timestamps; compare wall-clock values
            gap_sec = abs((metadata.modify_date.replace(tzinfo=None) - capture.replace(tzinfo=None)).total_seconds())
        if gap_sec > settings.modified_timestamp_tolerance_min * 60:
            suspicious.append("modified_timestamp")

    score = 10
    score -= len(missing) * settings.authenticity_missing_field_penalty
    score -= len(suspicious) * settings.authenticity_suspicious_field_penalty
    if missing:
        score = min(score, settings.authenticity_incomplete_max_score)
    score = max(0, min(10, score))

    if missing or suspicious:
        logger.info(f"[META] Authenticity: score={score}, missing={missing}, suspicious={suspicious}")

    return AuthenticityAssessment(
        is_complete=not missing,
        missing_critical_fields=missing,
        suspicious_fields=suspicious,
        confidence_score=score,
    )
