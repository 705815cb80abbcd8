"""Pure scoring helpers: exponential decay and Wilson lower bound."""
import math
from datetime import datetime
from typing import Iterable

HALF_LIFE_DAYS = 75.0
Z_SCORE = 1.96
_SECONDS_PER_DAY = 86400.0


def wilson_lower_bound(successes: float, total: float, z: float = Z_SCORE) -> float:
    """Lower bound of the Wilson score interval for a binomial rate.

    Accepts fractional (decayed) counts. Returns 0 for an empty sample.
    For a fixed observed rate the bound rises toward that rate as the
    sample grows.
    """
    if total <= 0:
        return 0.0
    p = min(max(successes / total, 0.0), 1.0)
    z2 = z * z
    numerator = p + z2 / (2 * total) - z * math.sqrt((p * (1 - p) + z2 / (4 * total)) / total)
    denominator = 1 + z2 / total
    return max(0.0, numerator / denominator)


def decay_weight(age_days: float, half_life_days: float = HALF_LIFE_DAYS) -> float:
    return 0.5 ** (max(age_days, 0.0) / half_life_days)


def decayed_count(
    timestamps: Iterable[datetime],
    as_of: datetime,
    half_life_days: float = HALF_LIFE_DAYS,
) -> float:
    """Sum of decay weights, one per timestamp, measured at ``as_of``."""
    total = 0.0
    for ts in timestamps:
        age_days = (as_of - ts).total_seconds() / _SECONDS_PER_DAY
        total += decay_weight(age_days, half_life_days)
    return total


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
