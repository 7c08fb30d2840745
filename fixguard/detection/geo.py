"""
Great-circle GPS matching between the photo's embedded location and the reported issue.
"""

import math
import logging
from typing import Optional

from fixguard.config import settings
from fixguard.schemas.fraud import GpsCoordinates, GpsMatchResult

logger = logging.getLogger(__name__)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in metres between two (lat, lon) points on a spherical Earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return settings.earth_radius_meters * c


def verify_gps_match(
    exif_gps: Optional[GpsCoordinates],
    expected_gps: Optional[GpsCoordinates],
    threshold_meters: Optional[float] = None,
) -> GpsMatchResult:
    """
    Full confidence (10) inside the threshold, then one point lost per
    `gps_falloff_meters` beyond it. Missing coordinates on either side are
    neutral (5) with distance -1.
    """
    if exif_gps is None or expected_gps is None:
        return GpsMatchResult(matches=False, distance_meters=-1, confidence_score=5)

    threshold = settings.gps_threshold_meters if threshold_meters is None else threshold_meters

    distance = haversine_distance(
        exif_gps.latitude, exif_gps.longitude,
        expected_gps.latitude, expected_gps.longitude,
    )
    matches = distance <= threshold

    score = 10.0
    if not matches:
        excess = distance - threshold
        score = max(0.0, 10.0 - excess / settings.gps_falloff_meters)

    logger.info(f"[GPS] distance={distance:.1f}m, threshold={threshold:.0f}m, matches={matches}")

    return GpsMatchResult(
        matches=matches,
        distance_meters=distance,
        confidence_score=int(round(score)),
    )
