"""
Heuristic generative-image forensics.

Three independent signals, each scored 0-1:
  1. Dimensions  — both sides match a canonical generator output size.
  2. Metadata    — generator name in the software tag (strong), missing
                   camera identity / capture timestamp (weak).
  3. Pixels      — channel statistics unusually regular for a camera sensor
                   (noise uniformity, mean distribution, range coherence).

This is a cheap screening signal for the slow-check path, not a classifier.
"""

import math
import logging
from typing import Optional

from fixguard.config import settings
from fixguard.detection.constants import AI_SOFTWARE_SIGNATURES, CANONICAL_GENERATOR_SIZES
from fixguard.detection.imaging import load_normalized_rgb
from fixguard.detection.metadata_scorer import extract_image_metadata
from fixguard.detection.visual import compute_channel_stats
from fixguard.schemas.fraud import AiForensicsResult, AiMetadataIndicators, ChannelStats, ImageMetadata

logger = logging.getLogger(__name__)

NEUTRAL_SCORES = {
    "dimensions": 0.5,
    "metadata": 0.5,
    "noise_uniformity": 0.5,
    "frequency_distribution": 0.5,
    "pixel_coherence": 0.5,
    "pixel": 0.5,
    "overall": 0.5,
}


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _pstdev(values: list[float]) -> float:
    avg = sum(values) / len(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def has_ai_typical_dimensions(width: int, height: int) -> bool:
    return width in CANONICAL_GENERATOR_SIZES and height in CANONICAL_GENERATOR_SIZES


def check_ai_metadata_indicators(metadata: Optional[ImageMetadata]) -> AiMetadataIndicators:
    """
    Likely AI once two or more indicators fire; a single weak indicator
    (e.g. only a missing timestamp) is not enough.
    """
    indicators = []

    if metadata is None:
        indicators.append("missing_exif")
    else:
        if not metadata.has_camera_info:
            indicators.append("no_camera_info")
        if metadata.capture_time is None:
            indicators.append("no_timestamp")
        if metadata.software:
            software = metadata.software.lower()
            if any(sig in software for sig in AI_SOFTWARE_SIGNATURES):
                indicators.append("ai_software_detected")

    return AiMetadataIndicators(is_likely_ai=len(indicators) >= 2, indicators=indicators)


def _metadata_signal(indicators: list[str]) -> float:
    score = 0.0
    for indicator in indicators:
        if indicator == "ai_software_detected":
            score += settings.ai_software_indicator_score
        else:
            score += settings.ai_weak_indicator_score
    return _clamp01(score)


def _noise_uniformity(channels: list[ChannelStats]) -> tuple[float, bool]:
    """Camera sensors produce different noise per channel; near-equal stdevs look synthetic."""
    spread = _pstdev([ch.stdev for ch in channels])
    return _clamp01(1 - spread / 20), spread < 5


def _frequency_distribution(channels: list[ChannelStats], width: int, height: int) -> tuple[float, bool]:
    means = [ch.mean for ch in channels]
    avg = sum(means) / len(means)
    max_mean_diff = max(abs(m - avg) for m in means)

    score = 0.0
    if max_mean_diff < 10:
        score += 0.4
    if width == height and width in CANONICAL_GENERATOR_SIZES:
        score += 0.3
    if len(means) >= 3:
        diffs = [abs(means[0] - means[1]), abs(means[1] - means[2]), abs(means[0] - means[2])]
        if max(diffs) - min(diffs) < 3:
            score += 0.3
    return _clamp01(score), max_mean_diff < 5


def _pixel_coherence(channels: list[ChannelStats]) -> tuple[float, bool]:
    spread = _pstdev([ch.max - ch.min for ch in channels])
    return _clamp01(1 - spread / 30), spread < 5


def detect_ai_generated_patterns(
    image_bytes: bytes,
    metadata: Optional[ImageMetadata] = None,
) -> AiForensicsResult:
    """
    Combine dimension, metadata and pixel signals into a 0-1 likelihood.
    Metadata is extracted from the buffer when not supplied.
    Returns confidence 0.5 (neutral) on any processing error.
    """
    try:
        pixels, original = load_normalized_rgb(image_bytes)
        width, height = original.size
        if metadata is None:
            metadata = extract_image_metadata(image_bytes)
        channels = compute_channel_stats(pixels)
    except Exception as e:
        logger.warning(f"[FORENSICS] Analysis failed, returning neutral confidence: {e}")
        return AiForensicsResult(
            is_likely_ai_generated=False,
            confidence=0.5,
            patterns=[],
            scores=dict(NEUTRAL_SCORES),
        )

    patterns = []

    dimension_score = 1.0 if has_ai_typical_dimensions(width, height) else 0.0
    if dimension_score:
        patterns.append("canonical_dimensions")

    meta = check_ai_metadata_indicators(metadata)
    patterns.extend(meta.indicators)
    metadata_score = _metadata_signal(meta.indicators)

    noise_score, uniform_noise = _noise_uniformity(channels)
    frequency_score, unnatural_frequencies = _frequency_distribution(channels, width, height)
    coherence_score, pixel_artifacts = _pixel_coherence(channels)
    if uniform_noise:
        patterns.append("uniform_noise")
    if unnatural_frequencies:
        patterns.append("unnatural_frequencies")
    if pixel_artifacts:
        patterns.append("pixel_artifacts")
    pixel_score = (noise_score + frequency_score + coherence_score) / 3

    total_weight = settings.ai_dimension_weight + settings.ai_metadata_weight + settings.ai_pixel_weight
    confidence = _clamp01(
        (
            dimension_score * settings.ai_dimension_weight
            + metadata_score * settings.ai_metadata_weight
            + pixel_score * settings.ai_pixel_weight
        ) / total_weight
    )
    is_likely_ai = confidence > settings.ai_likely_threshold

    logger.info(
        f"[FORENSICS] confidence={confidence:.2f} (dim={dimension_score:.2f}, "
        f"meta={metadata_score:.2f}, pixel={pixel_score:.2f}), patterns={patterns}"
    )

    return AiForensicsResult(
        is_likely_ai_generated=is_likely_ai,
        confidence=round(confidence, 4),
        patterns=patterns,
        scores={
            "dimensions": dimension_score,
            "metadata": metadata_score,
            "noise_uniformity": round(noise_score, 4),
            "frequency_distribution": round(frequency_score, 4),
            "pixel_coherence": round(coherence_score, 4),
            "pixel": round(pixel_score, 4),
            "overall": round(confidence, 4),
        },
    )
