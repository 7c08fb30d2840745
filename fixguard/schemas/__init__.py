from fixguard.schemas.fraud import (
    ImageMetadata,
    GpsCoordinates,
    AuthenticityAssessment,
    DuplicateCheckResult,
    GpsMatchResult,
    VisualAnomalyResult,
    AiMetadataIndicators,
    AiForensicsResult,
    ChannelStats,
    FraudScores,
    FraudCheckMetadata,
    FraudCheckResult,
)
from fixguard.schemas.sampling import RiskLevel, SamplingStrategy, SamplingRequest
from fixguard.schemas.queue import ImageRole, SlowCheckJob, SlowCheckRequest, SlowCheckResponse, SubmissionDecision

__all__ = [
    "ImageMetadata",
    "GpsCoordinates",
    "AuthenticityAssessment",
    "DuplicateCheckResult",
    "GpsMatchResult",
    "VisualAnomalyResult",
    "AiMetadataIndicators",
    "AiForensicsResult",
    "ChannelStats",
    "FraudScores",
    "FraudCheckMetadata",
    "FraudCheckResult",
    "RiskLevel",
    "SamplingStrategy",
    "SamplingRequest",
    "ImageRole",
    "SlowCheckJob",
    "SlowCheckRequest",
    "SlowCheckResponse",
    "SubmissionDecision",
]
