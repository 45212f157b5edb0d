"""
Feedback service for tracking and analyzing user feedback.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from scamshield.models.feedback import Feedback, FeedbackType
from scamshield.services import analysis_store


def submit_feedback(
    db: Session,
    analysis_id: str,
    feedback_type: FeedbackType,
    comment: Optional[str] = None,
) -> Feedback:
    """
    Record how a user judged an analysis.

    Args:
        db: Database session
        analysis_id: The analysis the feedback is about
        feedback_type: HELPFUL, NOT_HELPFUL, FALSE_POSITIVE or FALSE_NEGATIVE
        comment: Optional user explanation

    Raises:
        RecordNotFound: if the analysis does not exist
    """
    analysis = analysis_store.get_analysis(db, analysis_id)
    if analysis is None:
        raise analysis_store.RecordNotFound(analysis_id)

    feedback = Feedback(
        analysis_id=analysis.id,
        predicted_risk_level=analysis.risk_level,
        predicted_score=analysis.risk_score,
        feedback_type=FeedbackType(feedback_type).value,
        comment=comment,
    )

    db.add(feedback)
    db.commit()
    db.refresh(feedback)

    return feedback


def get_feedback_stats(db: Session, days: int = 30) -> Dict[str, Any]:
    """
    Get feedback statistics for monitoring model performance.
    """
    since = datetime.utcnow() - timedelta(days=days)

    rows = (
        db.query(Feedback.feedback_type, func.count(Feedback.id))
        .filter(Feedback.created_at >= since)
        .group_by(Feedback.feedback_type)
        .all()
    )
    counts = {feedback_type: count for feedback_type, count in rows}
    total = sum(counts.values())

    false_positives = counts.get(FeedbackType.FALSE_POSITIVE.value, 0)
    false_negatives = counts.get(FeedbackType.FALSE_NEGATIVE.value, 0)

    return {
        "period_days": days,
        "total_feedback": total,
        "helpful": counts.get(FeedbackType.HELPFUL.value, 0),
        "not_helpful": counts.get(FeedbackType.NOT_HELPFUL.value, 0),
        "false_positives": false_positives,
        "false_negatives": false_negatives,
        "false_positive_rate": round(false_positives / total, 4) if total > 0 else 0.0,
        "false_negative_rate": round(false_negatives / total, 4) if total > 0 else 0.0,
    }
