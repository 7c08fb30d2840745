from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from fixguard.schemas.fraud import FraudCheckResult
from fixguard.schemas.sampling import SamplingStrategy

ImageRole = Literal["before", "after", "submitted_fix"]


class SlowCheckJob(BaseModel):
    submission_id: str
    image_reference: str
    image_role: ImageRole
    enqueued_at: datetime
    status: str = "pending"  # pending → processing → completed | failed


class SlowCheckRequest(BaseModel):
    submission_id: str
    image_reference: str
    image_role: ImageRole = "submitted_fix"


class SlowCheckResponse(BaseModel):
    queued: bool


class SubmissionDecision(BaseModel):
    auto_approve: bool
    requires_owner_review: bool
    fraud_check: FraudCheckResult
    sampling: SamplingStrategy
    slow_check_scheduled: bool = False
    submission_id: Optional[str] = None
