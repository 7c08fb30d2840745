"""
Slow-check queue: enqueue deferred fraud checks as `fraud_queue` rows.

`queue_slow_fraud_checks` never raises; it reports success as a bool.
A Redis nx lock (`slow_check:{submission_id}:{role}`) suppresses duplicate
enqueues within `slow_check_dedupe_ttl_sec`. Without Redis every call inserts;
workers are at-least-once safe so duplicates only cost work.

`schedule_slow_fraud_checks` is fire-and-forget: inside a running loop it
spawns a background thread and returns immediately; in sync contexts
(tests, CLI) it runs inline.
"""

import asyncio
import logging
from datetime import datetime, timezone

from fixguard.config import settings
from fixguard.integrations import redis_client as redis_module
from fixguard.schemas.queue import SlowCheckJob
from fixguard.services.fraud_store import insert_slow_check_job

logger = logging.getLogger(__name__)

# Strong references so pending enqueue tasks are not garbage-collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


def _dedupe_key(submission_id: str, image_role: str) -> str:
    return f"slow_check:{submission_id}:{image_role}"


def _acquire_dedupe_lock(submission_id: str, image_role: str) -> bool:
    """True when this caller should insert. Redis errors fall through to inserting."""
    rc = redis_module.client
    if not rc:
        return True
    try:
        acquired = rc.set(
            _dedupe_key(submission_id, image_role), "1",
            nx=True, ex=settings.slow_check_dedupe_ttl_sec,
        )
        return bool(acquired)
    except Exception as e:
        logger.warning(f"[QUEUE] Redis dedupe lock unavailable, inserting anyway: {e}")
        return True


def _release_dedupe_lock(submission_id: str, image_role: str) -> None:
    """Drop the lock after a failed insert so a retry is not mistaken for a duplicate."""
    rc = redis_module.client
    if not rc:
        return
    try:
        rc.delete(_dedupe_key(submission_id, image_role))
    except Exception as e:
        logger.warning(f"[QUEUE] Could not release dedupe lock for {submission_id} ({image_role}): {e}")


def queue_slow_fraud_checks(submission_id: str, image_reference: str, image_role: str) -> bool:
    """Insert a pending SlowCheckJob row. Returns False (and logs) on any failure."""
    try:
        job = SlowCheckJob(
            submission_id=submission_id,
            image_reference=image_reference,
            image_role=image_role,
            enqueued_at=datetime.now(timezone.utc),
        )
    except ValueError as e:
        logger.error(f"[QUEUE] Invalid slow-check job for {submission_id}: {e}")
        return False

    if not _acquire_dedupe_lock(submission_id, image_role):
        logger.info(f"[QUEUE] Slow check already queued for {submission_id} ({image_role})")
        return True

    try:
        job_id = insert_slow_check_job(job.model_dump())
        logger.info(f"[QUEUE] Slow check queued: job={job_id}, submission={submission_id}, role={image_role}")
        return True
    except Exception as e:
        logger.error(f"[QUEUE] Failed to queue slow check for {submission_id}: {e}")
        _release_dedupe_lock(submission_id, image_role)
        return False


def _log_task_outcome(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("[QUEUE] Background enqueue cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"[QUEUE] Background enqueue crashed: {exc}")
    elif task.result() is False:
        logger.warning("[QUEUE] Background enqueue reported failure")


def schedule_slow_fraud_checks(submission_id: str, image_reference: str, image_role: str) -> None:
    """Queue without waiting for the result. Never raises."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running event loop: sync context (tests, CLI). Run inline.
        queue_slow_fraud_checks(submission_id, image_reference, image_role)
        return

    task = loop.create_task(
        asyncio.to_thread(queue_slow_fraud_checks, submission_id, image_reference, image_role)
    )
    _background_tasks.add(task)
    task.add_done_callback(_log_task_outcome)
