"""
Fast-check fraud pipeline — the synchronous gate in front of reward payout.

`run_fast_fraud_checks` fans out, in parallel threads:
  1. Metadata extraction  → authenticity score → GPS match
  2. Perceptual fingerprint → duplicate lookup against other submissions
  3. Visual anomaly analysis
and folds the four scores into one verdict. A failing detector degrades to
its neutral score and adds a flag; the pipeline itself never raises except
for an empty input buffer.
"""

import asyncio
import logging
from typing import Optional

from fixguard.config import settings
from fixguard.detection.duplicates import check_duplicate_image
from fixguard.detection.errors import FingerprintError
from fixguard.detection.geo import verify_gps_match
from fixguard.detection.hashing import calculate_perceptual_hash, get_safe_hash
from fixguard.detection.imaging import ensure_image_bytes
from fixguard.detection.metadata_scorer import extract_image_metadata, verify_exif_authenticity
from fixguard.detection.visual import analyze_visual_anomalies
from fixguard.schemas.fraud import (
    DuplicateCheckResult,
    FraudCheckMetadata,
    FraudCheckResult,
    FraudScores,
    GpsCoordinates,
    VisualAnomalyResult,
)

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 5


async def _fingerprint_and_check(
    image_bytes: bytes, submission_id: Optional[str]
) -> tuple[Optional[str], Optional[DuplicateCheckResult]]:
    """Fingerprint then look up duplicates. Returns (None, None) when the image cannot be hashed."""
    try:
        fingerprint = await asyncio.to_thread(calculate_perceptual_hash, image_bytes)
    except FingerprintError as e:
        logger.warning(f"[FRAUD] Fingerprint unavailable, duplicate signal neutral: {e}")
        return None, None
    duplicate = await asyncio.to_thread(check_duplicate_image, fingerprint, submission_id)
    return fingerprint, duplicate


def combine_scores(exif: int, duplicate: int, gps: int, visual: int) -> int:
    """Weighted mean of the four 0-10 signals, rounded and clamped to 0-10."""
    weights = (
        settings.fraud_exif_weight,
        settings.fraud_duplicate_weight,
        settings.fraud_gps_weight,
        settings.fraud_visual_weight,
    )
    total = sum(weights)
    if total <= 0:
        return NEUTRAL_SCORE
    weighted = (
        exif * weights[0] + duplicate * weights[1] + gps * weights[2] + visual * weights[3]
    ) / total
    return max(0, min(10, int(round(weighted))))


async def run_fast_fraud_checks(
    image_bytes: bytes,
    expected_gps: Optional[GpsCoordinates] = None,
    submission_id: Optional[str] = None,
) -> FraudCheckResult:
    """
    Run every fast detector concurrently and fold the results into one verdict.

    Args:
        image_bytes: Raw uploaded image. Empty input raises EmptyImageError.
        expected_gps: Location of the reported issue; None leaves the GPS signal neutral.
        submission_id: Current submission, excluded from its own duplicate lookup.
    """
    ensure_image_bytes(image_bytes)

    content_sha256 = get_safe_hash(image_bytes)
    flags: list[str] = []

    metadata_res, duplicate_res, visual_res = await asyncio.gather(
        asyncio.to_thread(extract_image_metadata, image_bytes),
        _fingerprint_and_check(image_bytes, submission_id),
        asyncio.to_thread(analyze_visual_anomalies, image_bytes),
        return_exceptions=True,
    )

    # --- 1. Metadata / authenticity ---
    if isinstance(metadata_res, BaseException):
        logger.error(f"[FRAUD] Metadata check crashed: {metadata_res}")
        metadata = None
        exif_score = NEUTRAL_SCORE
        flags.append("metadata_check_error")
    else:
        metadata = metadata_res
        authenticity = verify_exif_authenticity(metadata)
        exif_score = authenticity.confidence_score
        if metadata is None:
            flags.append("missing_exif")
        elif not authenticity.is_complete:
            flags.append("incomplete_exif")
        if authenticity.suspicious_fields:
            flags.append("suspicious_exif_fields")

    # --- 2. Fingerprint / duplicates ---
    fingerprint = None
    duplicate = None
    if isinstance(duplicate_res, BaseException):
        logger.error(f"[FRAUD] Duplicate check crashed: {duplicate_res}")
    else:
        fingerprint, duplicate = duplicate_res

    if duplicate is None:
        duplicate_score = NEUTRAL_SCORE
        flags.append("fingerprint_unavailable")
    elif not duplicate.evaluated:
        duplicate_score = NEUTRAL_SCORE
        flags.append("duplicate_check_unavailable")
    elif duplicate.is_duplicate:
        duplicate_score = 0
        flags.append("duplicate_image")
    else:
        duplicate_score = 10

    # --- 3. GPS ---
    exif_gps = None
    if metadata is not None and metadata.latitude is not None and metadata.longitude is not None:
        try:
            exif_gps = GpsCoordinates(latitude=metadata.latitude, longitude=metadata.longitude)
        except ValueError:
            logger.warning(
                f"[FRAUD] Embedded GPS out of range ({metadata.latitude}, {metadata.longitude})"
            )
    gps = verify_gps_match(exif_gps, expected_gps)
    gps_mismatch = gps.distance_meters >= 0 and not gps.matches
    if gps_mismatch:
        flags.append("gps_mismatch")
    elif gps.distance_meters < 0:
        flags.append("gps_unverified")

    # --- 4. Visual ---
    if isinstance(visual_res, BaseException):
        logger.error(f"[FRAUD] Visual check crashed: {visual_res}")
        visual = VisualAnomalyResult(has_anomalies=False, confidence_score=NEUTRAL_SCORE)
        flags.append("visual_check_error")
    else:
        visual = visual_res
    if visual.has_anomalies:
        flags.append("visual_anomalies")

    # --- Verdict ---
    overall = combine_scores(exif_score, duplicate_score, gps.confidence_score, visual.confidence_score)
    is_duplicate = bool(duplicate and duplicate.is_duplicate)

    passed = overall >= settings.fraud_passing_threshold and not is_duplicate
    requires_manual_review = (
        not passed
        or overall < settings.fraud_manual_review_threshold
        or exif_score < settings.fraud_low_exif_threshold
        or gps_mismatch
    )

    logger.info(
        f"[FRAUD] overall={overall} (exif={exif_score}, dup={duplicate_score}, "
        f"gps={gps.confidence_score}, visual={visual.confidence_score}) "
        f"passed={passed}, review={requires_manual_review}, flags={flags}"
    )

    return FraudCheckResult(
        passed=passed,
        flags=flags,
        scores=FraudScores(
            exif=exif_score,
            duplicate=duplicate_score,
            gps=gps.confidence_score,
            visual=visual.confidence_score,
            overall=overall,
        ),
        requires_manual_review=requires_manual_review,
        metadata=FraudCheckMetadata(
            exif_data=metadata,
            duplicate_submission_ids=duplicate.matching_submission_ids if duplicate else [],
            gps_distance=gps.distance_meters,
            fingerprint=fingerprint,
            content_sha256=content_sha256,
        ),
    )


def timeout_result() -> FraudCheckResult:
    """Verdict used when the fast path overruns its time limit: neutral scores, human review."""
    return FraudCheckResult(
        passed=False,
        flags=["check_timeout"],
        scores=FraudScores(
            exif=NEUTRAL_SCORE,
            duplicate=NEUTRAL_SCORE,
            gps=NEUTRAL_SCORE,
            visual=NEUTRAL_SCORE,
            overall=NEUTRAL_SCORE,
        ),
        requires_manual_review=True,
    )


async def run_fast_fraud_checks_with_timeout(
    image_bytes: bytes,
    expected_gps: Optional[GpsCoordinates] = None,
    submission_id: Optional[str] = None,
    timeout_sec: Optional[float] = None,
) -> FraudCheckResult:
    """A slow response is not evidence of fraud: timeouts route to manual review."""
    limit = settings.fast_check_timeout_sec if timeout_sec is None else timeout_sec
    try:
        return await asyncio.wait_for(
            run_fast_fraud_checks(image_bytes, expected_gps, submission_id),
            timeout=limit,
        )
    except asyncio.TimeoutError:
        logger.warning(f"[FRAUD] Fast checks exceeded {limit:.1f}s; routing to manual review")
        return timeout_result()
