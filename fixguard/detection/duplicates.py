"""
Duplicate detection against fingerprints stored for other submissions.

The fast path reads only rows sharing a hash band with the fingerprint
(exact for distances below `fingerprint_band_count`); the slow-check worker
asks for a full scan, which also covers rows stored without bands.

A store failure never raises: the detector reports no duplicate with
`evaluated=False` so the caller can treat the signal as neutral.
"""

import logging
from typing import Optional

from fixguard.config import settings
from fixguard.detection.hashing import hamming_distance
from fixguard.schemas.fraud import DuplicateCheckResult
from fixguard.services.fraud_store import fetch_fingerprint_candidates, fetch_fingerprints_excluding

logger = logging.getLogger(__name__)


def _load_rows(
    fingerprint: str, exclude_submission_id: Optional[str], threshold: int, full_scan: bool
) -> list[dict]:
    if full_scan or threshold >= settings.fingerprint_band_count:
        return fetch_fingerprints_excluding(exclude_submission_id)
    return fetch_fingerprint_candidates(fingerprint, exclude_submission_id)


def check_duplicate_image(
    fingerprint: str,
    exclude_submission_id: Optional[str] = None,
    max_distance: Optional[int] = None,
    full_scan: bool = False,
) -> DuplicateCheckResult:
    """
    Compare `fingerprint` with the stored fingerprints of other submissions.

    A stored fingerprint within `max_distance` bits (Hamming) is a match;
    distance 0 is an exact match. The excluded submission is never reported.
    """
    threshold = settings.near_duplicate_max_distance if max_distance is None else max_distance

    try:
        rows = _load_rows(fingerprint, exclude_submission_id, threshold, full_scan)
    except Exception as e:
        logger.warning(f"[DUPLICATE] Fingerprint lookup failed, assuming unique: {e}")
        return DuplicateCheckResult(is_duplicate=False, evaluated=False)

    matching_ids: list[str] = []
    matching_hashes: list[str] = []

    for row in rows:
        stored = row.get("image_hash")
        submission_id = row.get("submission_id")
        if not stored or not submission_id:
            continue
        if exclude_submission_id and submission_id == exclude_submission_id:
            continue

        if stored == fingerprint:
            distance = 0
        else:
            try:
                distance = hamming_distance(fingerprint, stored)
            except (ValueError, TypeError) as e:
                logger.debug(f"[DUPLICATE] Skipping incomparable fingerprint for {submission_id}: {e}")
                continue

        if distance <= threshold:
            matching_hashes.append(stored)
            if submission_id not in matching_ids:
                matching_ids.append(submission_id)
            logger.info(f"[DUPLICATE] Match: submission={submission_id}, distance={distance}")

    return DuplicateCheckResult(
        is_duplicate=bool(matching_ids),
        matching_submission_ids=matching_ids,
        matching_fingerprints=matching_hashes,
    )
