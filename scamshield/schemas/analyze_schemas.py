import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional

from scamshield.models.analysis import InputType, RiskLevel, ScamType
from scamshield.models.feedback import FeedbackType


# ============== JUDGMENT (normalized model output) ==============


class Indicator(BaseModel):
    """A single red flag or trust signal reported by the model."""
    type: Literal["red_flag", "trust_signal"]
    text: str
    weight: float = Field(ge=0.0, le=1.0)


class AIJudgment(BaseModel):
    """Structured judgment decoded from the model's free-text response."""
    model_config = ConfigDict(extra="ignore")

    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    confidence: float = Field(ge=0.0, le=1.0)
    scam_type: Optional[ScamType] = None
    scam_sub_type: Optional[str] = None
    indicators: List[Indicator]
    explanation: str
    recommendations: List[str]

    @field_validator("risk_score", mode="before")
    @classmethod
    def _round_fractional_score(cls, value):
        # Models sometimes answer 72.5; keep the number, drop the fraction.
        # Non-finite values fall through to the range check.
        if isinstance(value, float) and math.isfinite(value):
            return int(round(value))
        return value


# ============== API ==============


class AnalyzeRequest(BaseModel):
    content: str = Field(min_length=1)
    input_type: Optional[InputType] = None  # Detected from content when omitted
    conversation_id: Optional[str] = None
    image_base64: Optional[str] = None
    image_media_type: Optional[str] = None


class IndicatorOut(BaseModel):
    type: str
    text: str
    weight: float


class AnalyzeResponse(BaseModel):
    analysis_id: str
    conversation_id: str
    risk_score: int
    risk_level: str
    confidence: float
    scam_type: Optional[str] = None
    explanation: str
    recommendations: List[str]
    indicators: List[IndicatorOut]
    processing_time_ms: int
    cached: bool
    score_breakdown: Optional[Dict] = None  # Absent on cache hits


class AnalysisRecordOut(BaseModel):
    """Read-only view of a persisted analysis."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    input_type: str
    status: str
    risk_score: int
    risk_level: str
    confidence: float
    scam_type: Optional[str] = None
    scam_sub_type: Optional[str] = None
    indicators: List[IndicatorOut]
    recommendation: str
    actions: List[str]
    threat_intel: Optional[Dict] = None
    url_analysis: Optional[Dict] = None
    processing_time_ms: Optional[int] = None
    ai_model_used: Optional[str] = None
    ai_tokens_used: int
    created_at: datetime
    completed_at: Optional[datetime] = None


class FeedbackRequest(BaseModel):
    """Request to submit feedback on an analysis."""
    analysis_id: str
    feedback: FeedbackType
    comment: Optional[str] = Field(default=None, max_length=2000)


class FeedbackResponse(BaseModel):
    """Response after submitting feedback."""
    id: int
    message: str
    feedback_type: str


class FeedbackStats(BaseModel):
    """Feedback statistics."""
    period_days: int
    total_feedback: int
    helpful: int
    not_helpful: int
    false_positives: int
    false_negatives: int
    false_positive_rate: float
    false_negative_rate: float
