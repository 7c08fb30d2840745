"""
Fraud routes: /fraud/*

- POST /fraud/check               multipart image (+ optional GPS) → FraudCheckResult
- POST /fraud/submissions         multipart image + verifier output → SubmissionDecision
- POST /fraud/queue               JSON SlowCheckRequest → {queued}
- POST /fraud/sampling            JSON {confidence, reward_amount} → SamplingStrategy
- POST /fraud/sampling/expected   JSON list → {expected_samples}
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from fixguard.core.file_validator import validate_image_upload
from fixguard.detection.errors import EmptyImageError
from fixguard.detection.pipeline import run_fast_fraud_checks_with_timeout
from fixguard.schemas.fraud import FraudCheckResult, GpsCoordinates
from fixguard.schemas.queue import ImageRole, SlowCheckRequest, SlowCheckResponse, SubmissionDecision
from fixguard.schemas.sampling import SamplingRequest, SamplingStrategy
from fixguard.services.sampling_service import calculate_expected_samples, determine_sampling_strategy
from fixguard.services.slow_check_queue import queue_slow_fraud_checks
from fixguard.services.submission_service import evaluate_fix_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fraud", tags=["Fraud"])


def _expected_gps(latitude: Optional[float], longitude: Optional[float]) -> Optional[GpsCoordinates]:
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise HTTPException(status_code=400, detail="Both latitude and longitude are required.")
    try:
        return GpsCoordinates(latitude=latitude, longitude=longitude)
    except ValueError:
        raise HTTPException(status_code=400, detail="Coordinates out of range.")


async def _read_upload(file: UploadFile) -> bytes:
    content = await file.read()
    validate_image_upload(file.filename or "upload", content)
    return content


@router.post("/check", response_model=FraudCheckResult)
async def check_image(
    file: UploadFile = File(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    submission_id: Optional[str] = Form(None),
):
    expected_gps = _expected_gps(latitude, longitude)
    content = await _read_upload(file)
    try:
        return await run_fast_fraud_checks_with_timeout(
            content, expected_gps=expected_gps, submission_id=submission_id
        )
    except EmptyImageError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/submissions", response_model=SubmissionDecision)
async def evaluate_submission(
    file: UploadFile = File(...),
    ai_confidence: float = Form(...),
    reward_amount: float = Form(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    submission_id: Optional[str] = Form(None),
    image_reference: Optional[str] = Form(None),
    image_role: ImageRole = Form("submitted_fix"),
):
    if reward_amount < 0:
        raise HTTPException(status_code=400, detail="reward_amount must be non-negative.")
    expected_gps = _expected_gps(latitude, longitude)
    content = await _read_upload(file)
    try:
        return await evaluate_fix_submission(
            content,
            ai_confidence=ai_confidence,
            reward_amount=reward_amount,
            expected_gps=expected_gps,
            submission_id=submission_id,
            image_reference=image_reference,
            image_role=image_role,
        )
    except EmptyImageError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/queue", response_model=SlowCheckResponse)
async def queue_slow_check(body: SlowCheckRequest):
    queued = await asyncio.to_thread(
        queue_slow_fraud_checks, body.submission_id, body.image_reference, body.image_role
    )
    return SlowCheckResponse(queued=queued)


@router.post("/sampling", response_model=SamplingStrategy)
async def sampling_decision(body: SamplingRequest):
    return determine_sampling_strategy(body.confidence, body.reward_amount)


@router.post("/sampling/expected")
async def expected_samples(body: List[SamplingRequest]):
    return {"expected_samples": calculate_expected_samples(body)}
