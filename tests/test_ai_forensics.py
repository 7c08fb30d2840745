"""
Unit tests for fixguard/detection/ai_forensics.py.
"""

from datetime import datetime

import pytest
from PIL import Image

from fixguard.detection.ai_forensics import (
    check_ai_metadata_indicators,
    detect_ai_generated_patterns,
    has_ai_typical_dimensions,
)
from fixguard.schemas.fraud import ImageMetadata
from tests.conftest import encode, make_camera_jpeg, make_noise_image


# ---------------------------------------------------------------------------
# Metadata indicators
# ---------------------------------------------------------------------------


def test_ai_software_without_camera_is_likely_ai():
    result = check_ai_metadata_indicators(ImageMetadata(software="Midjourney v6"))
    assert "ai_software_detected" in result.indicators
    assert len(result.indicators) >= 2
    assert result.is_likely_ai is True


def test_single_missing_timestamp_is_not_enough():
    result = check_ai_metadata_indicators(ImageMetadata(make="Apple", model="iPhone 15"))
    assert result.indicators == ["no_timestamp"]
    assert result.is_likely_ai is False


def test_full_camera_metadata_has_no_indicators():
    meta = ImageMetadata(make="Apple", model="iPhone 15", date_time_original=datetime(2024, 1, 1))
    assert check_ai_metadata_indicators(meta).indicators == []


def test_missing_exif_is_a_single_indicator():
    result = check_ai_metadata_indicators(None)
    assert result.indicators == ["missing_exif"]
    assert result.is_likely_ai is False


@pytest.mark.parametrize("w,h,expected", [
    (1024, 1024, True), (512, 768, True), (2048, 1536, True),
    (4032, 3024, False), (1024, 1000, False),
])
def test_typical_dimensions(w, h, expected):
    assert has_ai_typical_dimensions(w, h) is expected


# ---------------------------------------------------------------------------
# Full detector
# ---------------------------------------------------------------------------


def test_flat_generator_sized_image_with_ai_software():
    img = Image.new("RGB", (1024, 1024), (120, 130, 140))
    result = detect_ai_generated_patterns(
        encode(img, "PNG"), metadata=ImageMetadata(software="Midjourney v6")
    )
    assert result.is_likely_ai_generated is True
    assert result.confidence > 0.6
    assert "canonical_dimensions" in result.patterns
    assert "ai_software_detected" in result.patterns
    assert result.scores["dimensions"] == 1.0


def test_camera_photo_is_not_flagged():
    result = detect_ai_generated_patterns(make_camera_jpeg())
    assert result.is_likely_ai_generated is False
    assert result.confidence < 0.3
    assert "canonical_dimensions" not in result.patterns


def test_noise_without_exif_reports_missing_exif():
    result = detect_ai_generated_patterns(encode(make_noise_image(), "PNG"))
    assert result.is_likely_ai_generated is False
    assert "missing_exif" in result.patterns
    assert 0.0 <= result.confidence <= 1.0
    for key in ("dimensions", "metadata", "pixel", "overall"):
        assert key in result.scores


def test_undecodable_input_is_neutral():
    result = detect_ai_generated_patterns(b"garbage")
    assert result.confidence == 0.5
    assert result.is_likely_ai_generated is False
    assert result.patterns == []
