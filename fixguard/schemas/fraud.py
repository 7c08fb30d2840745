from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageMetadata(BaseModel):
    """Capture metadata embedded in an image. Every field is independently optional."""
    model_config = ConfigDict(frozen=True)

    make: Optional[str] = None
    model: Optional[str] = None
    date_time_original: Optional[datetime] = None
    create_date: Optional[datetime] = None
    modify_date: Optional[datetime] = None
    software: Optional[str] = None
    shutter_speed: Optional[float] = None
    aperture: Optional[float] = None
    focal_length: Optional[float] = None
    iso: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    orientation: Optional[int] = None

    @property
    def capture_time(self) -> Optional[datetime]:
        return self.date_time_original or self.create_date

    @property
    def has_camera_info(self) -> bool:
        return bool(self.make or self.model)


class GpsCoordinates(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class AuthenticityAssessment(BaseModel):
    is_complete: bool
    missing_critical_fields: List[str]
    suspicious_fields: List[str]
    confidence_score: int = Field(ge=0, le=10)


class DuplicateCheckResult(BaseModel):
    is_duplicate: bool
    evaluated: bool = True  # False when the fingerprint store could not be queried
    matching_submission_ids: List[str] = []
    matching_fingerprints: List[str] = []


class GpsMatchResult(BaseModel):
    matches: bool
    distance_meters: float  # -1 → not evaluable
    confidence_score: int = Field(ge=0, le=10)


class ChannelStats(BaseModel):
    mean: float
    stdev: float
    min: float
    max: float


class VisualAnomalyResult(BaseModel):
    has_anomalies: bool
    compression_artifacts: bool = False
    suspicious_patterns: List[str] = []
    confidence_score: int = Field(ge=0, le=10)
    channels: List[ChannelStats] = []


class AiMetadataIndicators(BaseModel):
    is_likely_ai: bool
    indicators: List[str]


class AiForensicsResult(BaseModel):
    is_likely_ai_generated: bool
    confidence: float = Field(ge=0.0, le=1.0)
    patterns: List[str] = []
    scores: Dict[str, float] = {}


class FraudScores(BaseModel):
    exif: int = Field(ge=0, le=10)
    duplicate: int = Field(ge=0, le=10)
    gps: int = Field(ge=0, le=10)
    visual: int = Field(ge=0, le=10)
    overall: int = Field(ge=0, le=10)


class FraudCheckMetadata(BaseModel):
    exif_data: Optional[ImageMetadata] = None
    duplicate_submission_ids: List[str] = []
    gps_distance: Optional[float] = None
    fingerprint: Optional[str] = None
    content_sha256: Optional[str] = None


class FraudCheckResult(BaseModel):
    """Fast-path verdict consumed by the submission flow."""
    passed: bool
    flags: List[str]
    scores: FraudScores
    requires_manual_review: bool
    metadata: FraudCheckMetadata = Field(default_factory=FraudCheckMetadata)
