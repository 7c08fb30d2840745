"""
Slow-check worker: drains pending `fraud_queue` rows.

Per job: mark processing → download image → generative-image forensics +
full-corpus duplicate comparison → record flags → mark completed (or failed).

Delivery is at-least-once: marking a job processing stamps `claimed_at`, and a
job still processing after `slow_check_lease_sec` is fetched again, so a worker
that dies mid-job does not strand it. Flags are keyed
`{submission_id}:{detector}:{image_role}` so reprocessing overwrites instead of
duplicating.
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional

import aiohttp

from fixguard.config import settings
from fixguard.detection.ai_forensics import detect_ai_generated_patterns
from fixguard.detection.duplicates import check_duplicate_image
from fixguard.detection.errors import FingerprintError, ImageFetchError
from fixguard.detection.hashing import calculate_perceptual_hash
from fixguard.integrations import http_client as http_module
from fixguard.services.fraud_store import fetch_pending_jobs, record_fraud_flag, update_job_status

logger = logging.getLogger(__name__)


def _decode_data_uri(reference: str, max_size: int) -> bytes:
    header, _, data = reference.partition(",")
    if ";base64" not in header:
        raise ImageFetchError("Only base64 data URIs are supported")
    try:
        content = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageFetchError(f"Invalid data URI: {e}") from e
    if len(content) > max_size:
        raise ImageFetchError(f"Image too large (max {max_size // (1024 * 1024)}MB)")
    return content


async def fetch_image_bytes(reference: str, max_size: Optional[int] = None) -> bytes:
    """Resolve an image reference (http(s) URL or base64 data URI) to bytes."""
    limit = settings.max_image_download_bytes if max_size is None else max_size

    if reference.startswith("data:"):
        return _decode_data_uri(reference, limit)
    if not reference.startswith(("http://", "https://")):
        raise ImageFetchError(f"Unsupported image reference scheme: {reference[:32]}")

    timeout = aiohttp.ClientTimeout(total=settings.slow_check_download_timeout_sec)
    async with http_module.request_session() as session:
        try:
            async with session.get(reference, timeout=timeout) as response:
                if response.status != 200:
                    raise ImageFetchError(f"Failed to fetch image: status {response.status}")
                if response.content_length and response.content_length > limit:
                    raise ImageFetchError(f"Image too large (max {limit // (1024 * 1024)}MB)")
                content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ImageFetchError(f"Download failed: {e}") from e

    if len(content) > limit:
        raise ImageFetchError(f"Image too large (max {limit // (1024 * 1024)}MB)")
    return content


async def process_slow_check_job(job_id: str, job: dict) -> Optional[dict]:
    """
    Run the expensive checks for one job. Returns the result summary written to
    the job row, or None when the job failed.
    """
    submission_id = job.get("submission_id")
    reference = job.get("image_reference")
    role = job.get("image_role", "submitted_fix")

    await asyncio.to_thread(update_job_status, job_id, "processing")

    try:
        if not submission_id or not reference:
            raise ImageFetchError("Job is missing submission_id or image_reference")

        image_bytes = await fetch_image_bytes(reference)
        forensics = await asyncio.to_thread(detect_ai_generated_patterns, image_bytes)

        duplicate = None
        try:
            fingerprint = await asyncio.to_thread(calculate_perceptual_hash, image_bytes)
            duplicate = await asyncio.to_thread(
                check_duplicate_image, fingerprint, submission_id, full_scan=True
            )
        except FingerprintError as e:
            logger.warning(f"[WORKER] Job {job_id}: fingerprint unavailable, skipping duplicate pass: {e}")

        flags = []
        if forensics.is_likely_ai_generated:
            await asyncio.to_thread(record_fraud_flag, submission_id, f"ai_forensics:{role}", {
                "image_role": role,
                "confidence": forensics.confidence,
                "patterns": forensics.patterns,
                "scores": forensics.scores,
            })
            flags.append("ai_forensics")
        if duplicate and duplicate.is_duplicate:
            await asyncio.to_thread(record_fraud_flag, submission_id, f"slow_duplicate:{role}", {
                "image_role": role,
                "matching_submission_ids": duplicate.matching_submission_ids,
            })
            flags.append("slow_duplicate")

        result = {
            "flags": flags,
            "ai_confidence": forensics.confidence,
            "ai_patterns": forensics.patterns,
            "duplicate_submission_ids": duplicate.matching_submission_ids if duplicate else [],
        }
        await asyncio.to_thread(update_job_status, job_id, "completed", result)
        logger.info(f"[WORKER] Job {job_id} completed for {submission_id}: flags={flags}")
        return result

    except Exception as e:
        logger.error(f"[WORKER] Job {job_id} failed for {submission_id}: {e}")
        try:
            await asyncio.to_thread(update_job_status, job_id, "failed", {"error": str(e)})
        except Exception as store_err:
            logger.error(f"[WORKER] Could not mark job {job_id} failed: {store_err}")
        return None


async def drain_pending_jobs(limit: Optional[int] = None) -> int:
    """Process up to `limit` pending jobs sequentially. Returns how many completed."""
    batch = settings.slow_check_batch_size if limit is None else limit
    jobs = await asyncio.to_thread(fetch_pending_jobs, batch)
    if not jobs:
        return 0

    logger.info(f"[WORKER] Draining {len(jobs)} pending slow-check job(s)")
    completed = 0
    for job_id, job in jobs:
        if await process_slow_check_job(job_id, job) is not None:
            completed += 1
    return completed


async def run_worker_loop(poll_interval: Optional[float] = None) -> None:
    """Periodic drain, started from the app lifespan. Runs until cancelled."""
    interval = settings.slow_check_poll_interval_sec if poll_interval is None else poll_interval
    logger.info(f"[WORKER] Slow-check loop started (every {interval}s)")
    while True:
        try:
            await drain_pending_jobs()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[WORKER] Drain failed: {e}")
        await asyncio.sleep(interval)
