"""
Tests for fixguard/detection/pipeline.py (fast-check orchestrator).

Detectors run for real against in-memory images; only the store is mocked,
and individual detectors are patched where a failure has to be simulated.
"""

import asyncio
from unittest.mock import patch

import pytest

from fixguard.detection.errors import EmptyImageError
from fixguard.detection.hashing import calculate_perceptual_hash
from fixguard.detection.pipeline import (
    combine_scores,
    run_fast_fraud_checks,
    run_fast_fraud_checks_with_timeout,
)
from fixguard.schemas.fraud import GpsCoordinates, ImageMetadata
from fixguard.services.fraud_store import record_fingerprint
from tests.conftest import encode, make_camera_jpeg, make_noise_image, make_tiny_jpeg

SITE = GpsCoordinates(latitude=48.8566, longitude=2.3522)


# ---------------------------------------------------------------------------
# Score combination
# ---------------------------------------------------------------------------


def test_combine_scores_is_rounded_mean():
    assert combine_scores(10, 10, 10, 10) == 10
    assert combine_scores(0, 10, 5, 10) == 6
    assert combine_scores(10, 10, 5, 10) == 9


# ---------------------------------------------------------------------------
# End-to-end fast path
# ---------------------------------------------------------------------------


async def test_clean_camera_photo_passes(mock_firebase):
    result = await run_fast_fraud_checks(make_camera_jpeg(), submission_id="sub-1")

    assert result.passed is True
    assert result.requires_manual_review is False
    assert result.scores.exif == 10
    assert result.scores.duplicate == 10
    assert result.scores.gps == 5
    assert result.scores.visual == 10
    assert result.scores.overall == 9
    assert "gps_unverified" in result.flags
    assert result.metadata.fingerprint is not None
    assert len(result.metadata.content_sha256) == 64


async def test_photo_without_exif_goes_to_review(mock_firebase):
    result = await run_fast_fraud_checks(encode(make_noise_image(), "PNG"))

    assert "missing_exif" in result.flags
    assert result.scores.exif == 0
    assert result.passed is False
    assert result.requires_manual_review is True


async def test_duplicate_of_other_submission_fails(mock_firebase):
    image = make_camera_jpeg()
    record_fingerprint("sub-old", calculate_perceptual_hash(image), "submitted_fix")

    result = await run_fast_fraud_checks(image, submission_id="sub-new")

    assert "duplicate_image" in result.flags
    assert result.scores.duplicate == 0
    assert result.passed is False
    assert result.metadata.duplicate_submission_ids == ["sub-old"]


async def test_own_earlier_fingerprint_is_not_a_duplicate(mock_firebase):
    image = make_camera_jpeg()
    record_fingerprint("sub-1", calculate_perceptual_hash(image), "before")

    result = await run_fast_fraud_checks(image, submission_id="sub-1")
    assert "duplicate_image" not in result.flags


async def test_gps_mismatch_forces_review(mock_firebase):
    far_away = ImageMetadata(
        make="Canon", model="EOS R6",
        date_time_original="2024-05-01T10:15:00",
        latitude=SITE.latitude + 0.05, longitude=SITE.longitude,
    )
    with patch("fixguard.detection.pipeline.extract_image_metadata", return_value=far_away):
        result = await run_fast_fraud_checks(make_camera_jpeg(), expected_gps=SITE)

    assert "gps_mismatch" in result.flags
    assert result.scores.gps == 0
    assert result.requires_manual_review is True
    assert result.metadata.gps_distance > 100


async def test_gps_match_scores_full(mock_firebase):
    on_site = ImageMetadata(
        make="Canon", model="EOS R6",
        date_time_original="2024-05-01T10:15:00",
        latitude=SITE.latitude, longitude=SITE.longitude,
    )
    with patch("fixguard.detection.pipeline.extract_image_metadata", return_value=on_site):
        result = await run_fast_fraud_checks(make_camera_jpeg(), expected_gps=SITE)

    assert result.scores.gps == 10
    assert result.scores.overall == 10
    assert result.passed is True
    assert not any(f.startswith("gps_") for f in result.flags)


async def test_visual_anomalies_flagged(mock_firebase):
    result = await run_fast_fraud_checks(make_tiny_jpeg())
    assert "visual_anomalies" in result.flags
    assert result.scores.visual == 1


# ---------------------------------------------------------------------------
# Degradation
# ---------------------------------------------------------------------------


async def test_empty_input_raises():
    with pytest.raises(EmptyImageError):
        await run_fast_fraud_checks(b"")


async def test_undecodable_image_degrades_everything(mock_firebase):
    result = await run_fast_fraud_checks(b"this is not an image at all")

    assert result.scores.exif == 0
    assert result.scores.duplicate == 5
    assert result.scores.gps == 5
    assert result.scores.visual == 5
    assert "fingerprint_unavailable" in result.flags
    assert result.requires_manual_review is True


async def test_store_unavailable_is_neutral(no_store):
    result = await run_fast_fraud_checks(make_camera_jpeg(), submission_id="sub-1")
    assert result.scores.duplicate == 5
    assert "duplicate_check_unavailable" in result.flags


async def test_crashing_detector_degrades_to_neutral(mock_firebase):
    with patch(
        "fixguard.detection.pipeline.analyze_visual_anomalies",
        side_effect=RuntimeError("boom"),
    ):
        result = await run_fast_fraud_checks(make_camera_jpeg())

    assert result.scores.visual == 5
    assert "visual_check_error" in result.flags


async def test_crashing_metadata_extractor_is_neutral(mock_firebase):
    with patch(
        "fixguard.detection.pipeline.extract_image_metadata",
        side_effect=RuntimeError("boom"),
    ):
        result = await run_fast_fraud_checks(make_camera_jpeg())

    assert result.scores.exif == 5
    assert "metadata_check_error" in result.flags
    assert "missing_exif" not in result.flags


# ---------------------------------------------------------------------------
# Timeout wrapper
# ---------------------------------------------------------------------------


async def test_timeout_routes_to_manual_review():
    async def _slow(*args, **kwargs):
        await asyncio.sleep(1)

    with patch("fixguard.detection.pipeline.run_fast_fraud_checks", side_effect=_slow):
        result = await run_fast_fraud_checks_with_timeout(make_tiny_jpeg(), timeout_sec=0.01)

    assert result.passed is False
    assert result.flags == ["check_timeout"]
    assert result.requires_manual_review is True
    assert result.scores.overall == 5


async def test_timeout_wrapper_passes_through(mock_firebase):
    result = await run_fast_fraud_checks_with_timeout(make_camera_jpeg(), timeout_sec=30)
    assert "check_timeout" not in result.flags
