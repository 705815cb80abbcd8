"""Reputation scoring and bid guidance."""
from src.reputation.engine import ReputationEngine, describe
from src.reputation.price_guide import PriceGuidance, PriceGuide, winsorized_percentiles
from src.reputation.scoring import decay_weight, decayed_count, wilson_lower_bound
from src.reputation.social import SocialService, vouch_weight
__all__ = [
    "ReputationEngine", "describe",
    "PriceGuidance", "PriceGuide", "winsorized_percentiles",
    "decay_weight", "decayed_count", "wilson_lower_bound",
    "SocialService", "vouch_weight",
]
