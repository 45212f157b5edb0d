"""
Risk level utilities.
A risk level is always derived from the 0-100 score, never set on its own.
"""

from scamshield.models.analysis import RiskLevel


# Inclusive upper bound of each band; anything above LIKELY_SCAM is CONFIRMED_SCAM.
RISK_THRESHOLDS = (
    (15, RiskLevel.SAFE),
    (35, RiskLevel.LOW_RISK),
    (60, RiskLevel.SUSPICIOUS),
    (85, RiskLevel.LIKELY_SCAM),
)


def level_for_score(score: float) -> RiskLevel:
    """
    Map a risk score (0-100) to its band.

    Scores outside 0-100 are accepted and land in the nearest end band.
    """
    for upper, level in RISK_THRESHOLDS:
        if score <= upper:
            return level
    return RiskLevel.CONFIRMED_SCAM
