"""
Firestore access for the fraud pipeline: fingerprint rows, slow-check jobs, and fraud flags.

The Firebase `db` client is accessed at call-time via the integration module
so it picks up the instance initialized during the FastAPI lifespan.

Fingerprint and flag rows use deterministic document IDs so repeated writes
(retries, at-least-once workers) overwrite instead of duplicating.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException
from google.cloud.firestore_v1.base_query import FieldFilter

from fixguard.config import settings
from fixguard.detection.hashing import fingerprint_bands
from fixguard.integrations import firebase as firebase_module

logger = logging.getLogger(__name__)


def _get_db():
    db = firebase_module.db
    if not db:
        raise HTTPException(status_code=503, detail="Database service unavailable.")
    return db


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------


def fetch_fingerprints_excluding(submission_id: Optional[str] = None) -> list[dict]:
    """
    Return every stored fingerprint row belonging to a submission other than `submission_id`.
    Full collection scan; only the slow-check worker's full-corpus pass uses it.
    """
    db = _get_db()
    return _rows_excluding(db.collection(settings.image_hashes_collection).stream(), submission_id)


def fetch_fingerprint_candidates(fingerprint: str, submission_id: Optional[str] = None) -> list[dict]:
    """
    Rows sharing at least one hash band with `fingerprint`.

    Any stored fingerprint fewer than `fingerprint_band_count` bits away shares
    a band, so a near-duplicate lookup under that distance reads candidates only.
    """
    db = _get_db()
    bands = fingerprint_bands(fingerprint, settings.fingerprint_band_count)
    query = db.collection(settings.image_hashes_collection).where(
        filter=FieldFilter("hash_bands", "array_contains_any", bands)
    )
    return _rows_excluding(query.stream(), submission_id)


def _rows_excluding(docs, submission_id: Optional[str]) -> list[dict]:
    rows = []
    for doc in docs:
        row = doc.to_dict()
        if submission_id and row.get("submission_id") == submission_id:
            continue
        rows.append(row)
    return rows


def record_fingerprint(
    submission_id: str,
    fingerprint: str,
    image_role: str,
    content_sha256: Optional[str] = None,
) -> None:
    db = _get_db()
    db.collection(settings.image_hashes_collection).document(f"{submission_id}:{image_role}").set({
        "submission_id": submission_id,
        "image_hash": fingerprint,
        "hash_bands": fingerprint_bands(fingerprint, settings.fingerprint_band_count),
        "content_sha256": content_sha256,
        "image_role": image_role,
        "created_at": datetime.now(timezone.utc),
    })
    logger.info(f"[STORE] Fingerprint recorded for {submission_id} ({image_role})")


# ---------------------------------------------------------------------------
# Fraud flags
# ---------------------------------------------------------------------------


def record_fraud_flag(submission_id: str, detector: str, detail: dict | str) -> str:
    """
    Insert (or overwrite) the flag for a (submission, detector) pair.
    Returns the flag's document ID.
    """
    db = _get_db()
    flag_id = f"{submission_id}:{detector}"
    db.collection(settings.fraud_flags_collection).document(flag_id).set({
        "submission_id": submission_id,
        "detector": detector,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc),
    })
    logger.info(f"[STORE] Flag recorded: {flag_id}")
    return flag_id


# ---------------------------------------------------------------------------
# Slow-check jobs
# ---------------------------------------------------------------------------


def insert_slow_check_job(job: dict) -> str:
    """Append a job row to the fraud queue. Returns the generated job ID."""
    db = _get_db()
    _, ref = db.collection(settings.fraud_queue_collection).add(job)
    return ref.id


def fetch_pending_jobs(limit: int) -> list[tuple[str, dict]]:
    """
    Up to `limit` runnable jobs: pending rows first, then `processing` rows whose
    lease (`claimed_at` + `slow_check_lease_sec`) has expired.
    """
    db = _get_db()
    collection = db.collection(settings.fraud_queue_collection)
    pending = collection.where(filter=FieldFilter("status", "==", "pending")).limit(limit)
    jobs = [(doc.id, doc.to_dict()) for doc in pending.stream()]
    if len(jobs) >= limit:
        return jobs

    cutoff = datetime.now(timezone.utc) - timedelta(seconds=settings.slow_check_lease_sec)
    for doc in collection.where(filter=FieldFilter("status", "==", "processing")).stream():
        job = doc.to_dict()
        claimed_at = job.get("claimed_at")
        if claimed_at is not None and claimed_at > cutoff:
            continue
        logger.warning(f"[STORE] Reclaiming stale slow-check job {doc.id} (claimed_at={claimed_at})")
        jobs.append((doc.id, job))
        if len(jobs) >= limit:
            break
    return jobs


def update_job_status(job_id: str, status: str, result: Optional[dict] = None) -> None:
    db = _get_db()
    update = {"status": status}
    if result is not None:
        update["result"] = result
    if status == "processing":
        update["claimed_at"] = datetime.now(timezone.utc)
    elif status in ("completed", "failed"):
        update["processed_at"] = datetime.now(timezone.utc)
    db.collection(settings.fraud_queue_collection).document(job_id).update(update)
