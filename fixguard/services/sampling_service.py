"""
Sampling policy for the slow-check path.

Pure functions of (AI-verifier confidence, reward amount). The random source
is injected (`rng`: zero-arg callable returning a float in [0, 1)) so tests can
drive exact outcomes; production uses `random.SystemRandom`.
"""

import logging
import random
from typing import Callable, Iterable, Optional, Union

from fixguard.config import settings
from fixguard.schemas.sampling import SamplingRequest, SamplingStrategy

logger = logging.getLogger(__name__)

_system_random = random.SystemRandom()


def _is_low_confidence(confidence: float) -> bool:
    return confidence < settings.auto_approve_confidence


def _reward_tier(reward_amount: float) -> tuple[str, float]:
    if reward_amount >= settings.sampling_high_reward:
        return "high", settings.sampling_high_rate
    if reward_amount >= settings.sampling_medium_reward:
        return "medium", settings.sampling_medium_rate
    return "low", settings.sampling_low_rate


def get_sampling_rate(confidence: float, reward_amount: float) -> float:
    """Probability that a submission goes through the slow checks (1.0 for low confidence)."""
    if _is_low_confidence(confidence):
        return 1.0
    _, rate = _reward_tier(reward_amount)
    return rate


def should_random_sample(
    confidence: float,
    reward_amount: float,
    rng: Optional[Callable[[], float]] = None,
) -> bool:
    if _is_low_confidence(confidence):
        return True
    draw = (rng or _system_random.random)()
    return draw < get_sampling_rate(confidence, reward_amount)


def determine_sampling_strategy(
    confidence: float,
    reward_amount: float,
    rng: Optional[Callable[[], float]] = None,
) -> SamplingStrategy:
    if _is_low_confidence(confidence):
        strategy = SamplingStrategy(
            should_sample=True,
            sampling_rate=1.0,
            risk_level="critical",
            reason="Low confidence score requires full review",
        )
    else:
        risk_level, rate = _reward_tier(reward_amount)
        reason = {
            "high": "High-value reward",
            "medium": "Medium-value reward",
            "low": "Routine random sample",
        }[risk_level]
        strategy = SamplingStrategy(
            should_sample=should_random_sample(confidence, reward_amount, rng),
            sampling_rate=rate,
            risk_level=risk_level,
            reason=reason,
        )

    logger.info(
        f"[SAMPLING] confidence={confidence}, reward={reward_amount} -> "
        f"{strategy.risk_level} (rate={strategy.sampling_rate}, sample={strategy.should_sample})"
    )
    return strategy


def calculate_expected_samples(
    submissions: Iterable[Union[SamplingRequest, dict]],
) -> float:
    """
    Sum of sampling rates across a batch (capacity planning for the worker pool).
    Accepts SamplingRequest models or dicts with `confidence` / `reward_amount`.
    """
    total = 0.0
    for item in submissions:
        if isinstance(item, dict):
            item = SamplingRequest(**item)
        total += get_sampling_rate(item.confidence, item.reward_amount)
    return total
