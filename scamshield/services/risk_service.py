"""
Risk scoring: blends the AI judgment with threat intelligence into one 0-100 score.

threat_adjustment = 25 if reputation-flagged, plus 3 per scan detection (max 30)
url_adjustment    = 5 per heuristic flag (max 20)
final             = ai*0.6 + (threat + url) * confidence * 0.4 + ai*0.4, clamped

A reputation flag floors the final score at 60.
"""

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from scamshield.models.analysis import RiskLevel
from scamshield.utils.risk_levels import level_for_score


REPUTATION_FLAG_POINTS = 25
SCAN_POSITIVE_POINTS = 3
SCAN_POINTS_CAP = 30
URL_FLAG_POINTS = 5
URL_POINTS_CAP = 20

AI_WEIGHT = 0.6
SIGNAL_WEIGHT = 0.4
AI_CARRY_WEIGHT = 0.4

REPUTATION_FLOOR = 60


@dataclass
class RiskScore:
    ai_base_score: int
    threat_adjustment: int
    url_adjustment: int
    confidence_weight: float
    final_score: int
    risk_level: RiskLevel
    floor_applied: bool = False

    def breakdown(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        return data


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_risk_score(
    ai_score: float,
    ai_confidence: float,
    reputation_flagged: bool = False,
    scan_positives: int = 0,
    suspicious_flags: Optional[List[str]] = None,
) -> RiskScore:
    """Deterministic final score for one analysis; no I/O."""
    flags = suspicious_flags or []

    threat_adjustment = (REPUTATION_FLAG_POINTS if reputation_flagged else 0) + min(
        max(scan_positives, 0) * SCAN_POSITIVE_POINTS, SCAN_POINTS_CAP
    )
    url_adjustment = min(len(flags) * URL_FLAG_POINTS, URL_POINTS_CAP)
    combined = (threat_adjustment + url_adjustment) * ai_confidence

    raw = ai_score * AI_WEIGHT + combined * SIGNAL_WEIGHT + ai_score * AI_CARRY_WEIGHT
    final_score = max(0, min(100, round_half_up(raw)))

    floor_applied = False
    if reputation_flagged and final_score < REPUTATION_FLOOR:
        final_score = REPUTATION_FLOOR
        floor_applied = True

    return RiskScore(
        ai_base_score=int(ai_score),
        threat_adjustment=threat_adjustment,
        url_adjustment=url_adjustment,
        confidence_weight=ai_confidence,
        final_score=final_score,
        risk_level=level_for_score(final_score),
        floor_applied=floor_applied,
    )
