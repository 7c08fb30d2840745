"""
Submission flow glue: fast fraud check → sampling → optional slow-check enqueue.

The fast path is awaited (with the timeout wrapper); persistence of the
fingerprint and fast-path flags is best effort, and the slow-check enqueue is
fire-and-forget. Nothing here rejects a submission because a store write failed.
"""

import asyncio
import logging
from typing import Callable, Optional

from fixguard.config import settings
from fixguard.detection.pipeline import run_fast_fraud_checks_with_timeout
from fixguard.schemas.fraud import FraudCheckResult, GpsCoordinates
from fixguard.schemas.queue import SubmissionDecision
from fixguard.services.fraud_store import record_fingerprint, record_fraud_flag
from fixguard.services.sampling_service import determine_sampling_strategy
from fixguard.services.slow_check_queue import schedule_slow_fraud_checks

logger = logging.getLogger(__name__)


def _persist_fast_check(submission_id: str, image_role: str, result: FraudCheckResult) -> None:
    if result.metadata.fingerprint:
        try:
            record_fingerprint(
                submission_id,
                result.metadata.fingerprint,
                image_role,
                content_sha256=result.metadata.content_sha256,
            )
        except Exception as e:
            logger.warning(f"[FRAUD] Could not record fingerprint for {submission_id}: {e}")

    if result.flags:
        try:
            record_fraud_flag(submission_id, f"fast_check:{image_role}", {
                "flags": result.flags,
                "scores": result.scores.model_dump(),
                "passed": result.passed,
                "requires_manual_review": result.requires_manual_review,
                "duplicate_submission_ids": result.metadata.duplicate_submission_ids,
            })
        except Exception as e:
            logger.warning(f"[FRAUD] Could not record fast-check flags for {submission_id}: {e}")


async def evaluate_fix_submission(
    image_bytes: bytes,
    ai_confidence: float,
    reward_amount: float,
    expected_gps: Optional[GpsCoordinates] = None,
    submission_id: Optional[str] = None,
    image_reference: Optional[str] = None,
    image_role: str = "submitted_fix",
    rng: Optional[Callable[[], float]] = None,
) -> SubmissionDecision:
    """
    Decide auto-approval for a fix submission.

    Auto-approve only when the AI verifier is confident, the fast fraud check
    passed and nothing asked for manual review. Raises EmptyImageError for an
    empty image.
    """
    fraud_check = await run_fast_fraud_checks_with_timeout(
        image_bytes, expected_gps=expected_gps, submission_id=submission_id
    )

    if submission_id:
        await asyncio.to_thread(_persist_fast_check, submission_id, image_role, fraud_check)

    sampling = determine_sampling_strategy(ai_confidence, reward_amount, rng=rng)

    slow_check_scheduled = False
    if sampling.should_sample:
        if submission_id and image_reference:
            schedule_slow_fraud_checks(submission_id, image_reference, image_role)
            slow_check_scheduled = True
        else:
            logger.warning("[FRAUD] Sampled for slow checks but no submission id / image reference; skipping enqueue")

    auto_approve = (
        ai_confidence >= settings.auto_approve_confidence
        and fraud_check.passed
        and not fraud_check.requires_manual_review
    )

    logger.info(
        f"[FRAUD] Submission {submission_id or '<anonymous>'}: auto_approve={auto_approve}, "
        f"risk={sampling.risk_level}, slow_check={slow_check_scheduled}"
    )

    return SubmissionDecision(
        auto_approve=auto_approve,
        requires_owner_review=not auto_approve,
        fraud_check=fraud_check,
        sampling=sampling,
        slow_check_scheduled=slow_check_scheduled,
        submission_id=submission_id,
    )
