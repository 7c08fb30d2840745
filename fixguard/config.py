"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    FRAUD_PASSING_THRESHOLD=8 uvicorn fixguard.main:app   # stricter rollout
    export GPS_THRESHOLD_METERS=250                        # rural pilot

A `.env` file at the project root is loaded automatically.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # GPS_THRESHOLD_METERS == gps_threshold_meters
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # Firestore collections                                               #
    # ------------------------------------------------------------------ #
    image_hashes_collection: str = Field(
        "image_hashes", description="Fingerprint rows, one per (submission, role)"
    )
    fraud_queue_collection: str = Field(
        "fraud_queue", description="Deferred slow-check jobs"
    )
    fraud_flags_collection: str = Field(
        "fraud_flags", description="Audit log of discovered fraud flags"
    )

    # ------------------------------------------------------------------ #
    # Redis TTLs (seconds)                                                #
    # ------------------------------------------------------------------ #
    slow_check_dedupe_ttl_sec: int = Field(
        600, description="10 min — suppress duplicate enqueues (slow_check:{id}:{role})"
    )

    # ------------------------------------------------------------------ #
    # File Size Limits                                                    #
    # ------------------------------------------------------------------ #
    max_image_upload_mb: int = Field(
        20, description="Max MB for multipart image uploads"
    )
    max_image_download_mb: int = Field(
        50, description="Max MB the slow-check worker will download"
    )
    pil_max_image_pixels: int = Field(
        40_000_000, description="PIL decompression-bomb guard (pixels)"
    )

    # ------------------------------------------------------------------ #
    # Authenticity Scorer                                                 #
    # ------------------------------------------------------------------ #
    authenticity_missing_field_penalty: int = Field(
        3, description="Score deduction per missing critical field"
    )
    authenticity_suspicious_field_penalty: int = Field(
        2, description="Score deduction per suspicious field"
    )
    authenticity_incomplete_max_score: int = Field(
        6, description="Score ceiling when any critical field is missing"
    )
    modified_timestamp_tolerance_min: int = Field(
        60, description="Capture vs modify gap (minutes) before it looks edited"
    )

    # ------------------------------------------------------------------ #
    # Perceptual Fingerprint & Duplicates                                 #
    # ------------------------------------------------------------------ #
    fingerprint_hash_size: int = Field(
        16, description="Hash grid side; 16 → 256-bit fingerprint (64 hex chars)"
    )
    near_duplicate_max_distance: int = Field(
        10, description="Hamming distance (bits) still counted as a duplicate"
    )
    fingerprint_band_count: int = Field(
        11, ge=1, le=30,
        description="Bands indexed per fingerprint; fast lookups are exact while max distance < band count",
    )

    # ------------------------------------------------------------------ #
    # Geospatial Matcher                                                  #
    # ------------------------------------------------------------------ #
    gps_threshold_meters: float = Field(
        100.0, description="Max distance from the reported issue to count as a match"
    )
    gps_falloff_meters: float = Field(
        100.0, description="Lose one confidence point per N metres beyond threshold"
    )
    earth_radius_meters: float = Field(
        6_371_000.0, description="Mean Earth radius for the haversine formula"
    )

    # ------------------------------------------------------------------ #
    # Visual Anomaly Analyzer                                             #
    # ------------------------------------------------------------------ #
    visual_resize_px: int = Field(
        256, description="Square size pixels are normalized to before statistics"
    )
    visual_low_stdev_threshold: float = Field(
        10.0, description="Avg channel stdev below this → uniform / over-compressed"
    )
    visual_uniform_mean_threshold: float = Field(
        5.0, description="Summed channel-mean gaps below this → uniform colour"
    )
    visual_low_detail_threshold: float = Field(
        10.0, description="Laplacian variance below this → synthetic fill"
    )
    visual_pattern_penalty: int = Field(
        2, description="Score deduction per suspicious pattern"
    )
    visual_compression_penalty: int = Field(
        3, description="Extra deduction when compression artifacts are present"
    )

    # ------------------------------------------------------------------ #
    # Generative-Image Forensics                                          #
    # ------------------------------------------------------------------ #
    ai_likely_threshold: float = Field(
        0.6, description="Forensics confidence above this → likely AI-generated"
    )
    ai_dimension_weight: float = Field(0.2, description="Weight of the canonical-size signal")
    ai_metadata_weight: float = Field(0.4, description="Weight of the metadata-indicator signal")
    ai_pixel_weight: float = Field(0.4, description="Weight of the pixel-statistic signal")
    ai_software_indicator_score: float = Field(
        0.6, description="Metadata signal contribution of a generator software tag"
    )
    ai_weak_indicator_score: float = Field(
        0.2, description="Metadata signal contribution of each weak indicator"
    )

    # ------------------------------------------------------------------ #
    # Fast-Check Orchestrator                                             #
    # ------------------------------------------------------------------ #
    fraud_exif_weight: float = Field(0.25, description="Overall-score weight of EXIF authenticity")
    fraud_duplicate_weight: float = Field(0.25, description="Overall-score weight of duplicate check")
    fraud_gps_weight: float = Field(0.25, description="Overall-score weight of GPS match")
    fraud_visual_weight: float = Field(0.25, description="Overall-score weight of visual quality")
    fraud_passing_threshold: int = Field(
        7, description="Overall score at or above this (and no duplicate) → passed"
    )
    fraud_manual_review_threshold: int = Field(
        8, description="Passing submissions below this still go to manual review"
    )
    fraud_low_exif_threshold: int = Field(
        7, description="EXIF score below this always routes to manual review"
    )
    fast_check_timeout_sec: float = Field(
        10.0, description="Time limit for the whole synchronous fast path (seconds)"
    )

    # ------------------------------------------------------------------ #
    # Sampling Strategy                                                   #
    # ------------------------------------------------------------------ #
    auto_approve_confidence: float = Field(
        7.0, description="AI-verifier confidence below this is always escalated"
    )
    sampling_medium_reward: int = Field(
        10_000, description="Rewards at or above this (sats) are medium risk"
    )
    sampling_high_reward: int = Field(
        50_000, description="Rewards at or above this (sats) are high risk"
    )
    sampling_low_rate: float = Field(0.10, description="Baseline sampling rate")
    sampling_medium_rate: float = Field(0.25, description="Medium-value sampling rate")
    sampling_high_rate: float = Field(0.50, description="High-value sampling rate")

    # ------------------------------------------------------------------ #
    # Slow-Check Worker                                                   #
    # ------------------------------------------------------------------ #
    slow_check_worker_enabled: bool = Field(
        False, description="Run the periodic queue drain inside the API process"
    )
    slow_check_poll_interval_sec: int = Field(
        30, description="How often the periodic drain runs (seconds)"
    )
    slow_check_batch_size: int = Field(
        10, description="Max jobs picked up per drain"
    )
    slow_check_download_timeout_sec: int = Field(
        30, description="Total timeout for image downloads (seconds)"
    )
    slow_check_lease_sec: int = Field(
        900, description="A 'processing' job claimed longer ago than this is picked up again (seconds)"
    )

    # ------------------------------------------------------------------ #
    # Derived byte-level properties (computed from MB fields)             #
    # ------------------------------------------------------------------ #
    @property
    def max_image_upload_bytes(self) -> int:
        return self.max_image_upload_mb * 1024 * 1024

    @property
    def max_image_download_bytes(self) -> int:
        return self.max_image_download_mb * 1024 * 1024


# Single shared instance, import this everywhere.
settings = Settings()
