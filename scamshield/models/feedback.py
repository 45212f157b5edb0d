"""
Feedback model for tracking how users judged a verdict.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from scamshield.database import Base
import enum


class FeedbackType(str, enum.Enum):
    HELPFUL = "HELPFUL"
    NOT_HELPFUL = "NOT_HELPFUL"
    FALSE_POSITIVE = "FALSE_POSITIVE"  # Flagged as scam but wasn't
    FALSE_NEGATIVE = "FALSE_NEGATIVE"  # Missed a scam


class Feedback(Base):
    """User feedback on an analysis result.

    Stored apart from the analysis row, which is never touched again once
    it reaches a terminal status.
    """
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)

    # Reference to original analysis
    analysis_id = Column(String(32), nullable=False, index=True)

    # What the system predicted, copied at submission time
    predicted_risk_level = Column(String(20))
    predicted_score = Column(Integer)

    feedback_type = Column(String(20), nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
