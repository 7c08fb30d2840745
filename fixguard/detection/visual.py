"""
Statistical visual anomaly analysis on normalized pixel data.

Flags patterns consistent with heavy recompression or synthetic fill:
uniform channels (very low stdev), near-identical channel means,
generator-typical dimensions and near-zero local detail (Laplacian variance).
"""

import logging

import cv2
import numpy as np

from fixguard.config import settings
from fixguard.detection.constants import CANONICAL_GENERATOR_SIZES
from fixguard.detection.imaging import GRAYSCALE_MODES, load_normalized_rgb
from fixguard.schemas.fraud import ChannelStats, VisualAnomalyResult

logger = logging.getLogger(__name__)


def compute_channel_stats(pixels: np.ndarray) -> list[ChannelStats]:
    """Per-channel mean / stdev / min / max over an HxWxC uint8 array."""
    flat = pixels.reshape(-1, pixels.shape[-1]).astype(np.float64)
    return [
        ChannelStats(
            mean=float(flat[:, c].mean()),
            stdev=float(flat[:, c].std()),
            min=float(flat[:, c].min()),
            max=float(flat[:, c].max()),
        )
        for c in range(flat.shape[1])
    ]


def laplacian_variance(pixels: np.ndarray) -> float:
    gray = cv2.cvtColor(pixels, cv2.COLOR_RGB2GRAY)
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def analyze_visual_anomalies(image_bytes: bytes) -> VisualAnomalyResult:
    """
    Score visual quality 0-10; each suspicious pattern costs
    `visual_pattern_penalty`, compression artifacts cost an extra
    `visual_compression_penalty`. Returns the neutral 5 on any processing error.
    """
    try:
        pixels, original = load_normalized_rgb(image_bytes)
        channels = compute_channel_stats(pixels)
        detail = laplacian_variance(pixels)
        fmt = (original.format or "").upper()
        width, height = original.size
        is_grayscale = original.mode in GRAYSCALE_MODES
    except Exception as e:
        logger.warning(f"[VISUAL] Analysis failed, returning neutral score: {e}")
        return VisualAnomalyResult(has_anomalies=False, confidence_score=5)

    patterns = []
    compression_artifacts = False

    avg_stdev = sum(ch.stdev for ch in channels) / len(channels)
    if avg_stdev < settings.visual_low_stdev_threshold:
        if fmt in ("JPEG", "MPO"):
            compression_artifacts = True
            patterns.append("heavy_compression")
        else:
            patterns.append("suspiciously_uniform")

    if not is_grayscale and len(channels) >= 3:
        r, g, b = channels[0].mean, channels[1].mean, channels[2].mean
        mean_diff = abs(r - g) + abs(g - b) + abs(r - b)
        if mean_diff < settings.visual_uniform_mean_threshold:
            patterns.append("uniform_color_distribution")

    if width in CANONICAL_GENERATOR_SIZES and height in CANONICAL_GENERATOR_SIZES:
        patterns.append("ai_common_dimensions")

    if detail < settings.visual_low_detail_threshold:
        patterns.append("low_detail")

    score = 10
    score -= len(patterns) * settings.visual_pattern_penalty
    score -= settings.visual_compression_penalty if compression_artifacts else 0
    score = max(0, min(10, score))

    logger.info(
        f"[VISUAL] stdev={avg_stdev:.1f}, laplacian={detail:.1f}, patterns={patterns}, score={score}"
    )

    return VisualAnomalyResult(
        has_anomalies=bool(patterns) or compression_artifacts,
        compression_artifacts=compression_artifacts,
        suspicious_patterns=patterns,
        confidence_score=score,
        channels=channels,
    )
