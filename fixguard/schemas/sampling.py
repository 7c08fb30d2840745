from typing import Literal

from pydantic import BaseModel, Field

RiskLevel = Literal["low", "medium", "high", "critical"]


class SamplingStrategy(BaseModel):
    should_sample: bool
    sampling_rate: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    reason: str


class SamplingRequest(BaseModel):
    confidence: float = Field(description="AI-verifier confidence (1-10)")
    reward_amount: float = Field(ge=0, description="Reward in sats")
