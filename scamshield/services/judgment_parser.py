"""
Normalization of raw model output into an AIJudgment.

Three tiers, in order:
1. full decode: JSON that satisfies the judgment schema is used as-is
2. partial salvage: JSON object that violates the schema keeps whatever
   fields are individually usable (numbers clamped), level forced to
   SUSPICIOUS, defaults elsewhere
3. fixed fallback: anything that is not a JSON object at all

The result is always a well-formed AIJudgment; this module never raises on
bad model output.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from scamshield.models.analysis import RiskLevel, ScamType
from scamshield.schemas.analyze_schemas import AIJudgment, Indicator

logger = logging.getLogger(__name__)


_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

DEFAULT_EXPLANATION = "Analysis completed with limited confidence."
DEFAULT_RECOMMENDATIONS = ["Exercise caution with this content"]


def fallback_judgment() -> AIJudgment:
    """Judgment used when the model's answer cannot be decoded at all."""
    return AIJudgment(
        risk_score=50,
        risk_level=RiskLevel.SUSPICIOUS,
        confidence=0.3,
        scam_type=None,
        scam_sub_type=None,
        indicators=[
            Indicator(
                type="red_flag",
                text="Unable to parse analysis - treat with caution",
                weight=0.5,
            )
        ],
        explanation=(
            "The analysis could not be completed reliably. We recommend treating this "
            "content with caution and verifying through other means."
        ),
        recommendations=[
            "Do not interact with the suspicious content until verified",
            "Contact the supposed sender through official channels to verify",
            "Report this content if you believe it is a scam",
        ],
    )


def strip_code_fences(raw: str) -> str:
    text = (raw or "").strip()
    if text.startswith("```"):
        text = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1))
    return text.strip()


def _decode_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        decoded = json.loads(text)
    except ValueError:
        # Tolerate prose around a single JSON object
        match = _JSON_OBJECT.search(text)
        if not match:
            return None
        try:
            decoded = json.loads(match.group(0))
        except ValueError:
            return None
    return decoded if isinstance(decoded, dict) else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # json.loads accepts NaN and Infinity
    return number if math.isfinite(number) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _salvage_indicators(value: Any) -> List[Indicator]:
    if not isinstance(value, list):
        return []
    salvaged = []
    for item in value:
        if not isinstance(item, dict):
            continue
        kind = item.get("type")
        text = item.get("text")
        weight = _number(item.get("weight"))
        if kind not in ("red_flag", "trust_signal") or not isinstance(text, str) or weight is None:
            continue
        salvaged.append(Indicator(type=kind, text=text, weight=_clamp(weight, 0.0, 1.0)))
    return salvaged


def _salvage(data: Dict[str, Any]) -> AIJudgment:
    score = _number(data.get("risk_score"))
    confidence = _number(data.get("confidence"))

    scam_type = None
    if isinstance(data.get("scam_type"), str):
        try:
            scam_type = ScamType(data["scam_type"].upper())
        except ValueError:
            scam_type = None

    sub_type = data.get("scam_sub_type")
    explanation = data.get("explanation")

    recommendations = DEFAULT_RECOMMENDATIONS
    if isinstance(data.get("recommendations"), list):
        recommendations = [r for r in data["recommendations"] if isinstance(r, str)] or DEFAULT_RECOMMENDATIONS

    return AIJudgment(
        risk_score=int(round(_clamp(score, 0, 100))) if score is not None else 50,
        risk_level=RiskLevel.SUSPICIOUS,
        confidence=_clamp(confidence, 0.0, 1.0) if confidence is not None else 0.5,
        scam_type=scam_type,
        scam_sub_type=sub_type if isinstance(sub_type, str) else None,
        indicators=_salvage_indicators(data.get("indicators")),
        explanation=explanation if isinstance(explanation, str) and explanation.strip() else DEFAULT_EXPLANATION,
        recommendations=list(recommendations),
    )


def parse_judgment(raw_response: str) -> AIJudgment:
    """Decode raw model text into a judgment, degrading instead of failing."""
    data = _decode_object(strip_code_fences(raw_response))
    if data is None:
        logger.warning("Model response was not a JSON object; using fallback judgment")
        return fallback_judgment()

    try:
        return AIJudgment.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Model response failed schema validation ({e.error_count()} errors); salvaging fields")
    except (ValueError, OverflowError) as e:
        logger.warning(f"Model response failed schema validation ({e}); salvaging fields")
    return _salvage(data)
