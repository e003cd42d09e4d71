"""
Threshold tables for risk levels and credit tiers.

The risk engine, the statistics engine and the text report all read these
tables, so there is exactly one copy of each threshold set.
"""

from typing import List, Literal, Tuple

RiskLevel = Literal["low", "moderate", "high", "critical"]
CreditTier = Literal["excellent", "good", "fair", "poor", "bad"]

# (exclusive upper bound on collapse probability, level); "critical" catches the rest
RISK_LEVEL_THRESHOLDS: List[Tuple[float, RiskLevel]] = [
    (0.10, "low"),
    (0.25, "moderate"),
    (0.50, "high"),
]

# (inclusive lower bound on score, tier); "bad" catches the rest
CREDIT_TIER_THRESHOLDS: List[Tuple[float, CreditTier]] = [
    (750, "excellent"),
    (670, "good"),
    (580, "fair"),
    (450, "poor"),
]

CREDIT_TIERS: List[CreditTier] = ["excellent", "good", "fair", "poor", "bad"]


def risk_level(collapse_probability: float) -> RiskLevel:
    """Map a collapse probability to a risk level."""
    for upper_bound, level in RISK_LEVEL_THRESHOLDS:
        if collapse_probability < upper_bound:
            return level
    return "critical"


def credit_tier(score: float) -> CreditTier:
    """Map a credit score to its tier."""
    for lower_bound, tier in CREDIT_TIER_THRESHOLDS:
        if score >= lower_bound:
            return tier
    return "bad"
