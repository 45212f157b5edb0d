"""
Persistence for analysis records.

Only the operations the pipeline needs: create, get, update by id, and the
most recent completed record for a fingerprint.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from scamshield.models.analysis import Analysis, AnalysisStatus, TERMINAL_STATUSES


class RecordNotFound(LookupError):
    pass


class RecordFinalized(RuntimeError):
    """Raised when something tries to change a record that already reached a terminal status."""


def create_analysis(db: Session, **fields: Any) -> Analysis:
    analysis = Analysis(**fields)
    db.add(analysis)
    db.commit()
    db.refresh(analysis)
    return analysis


def get_analysis(db: Session, analysis_id: str) -> Optional[Analysis]:
    return db.get(Analysis, analysis_id)


def update_analysis(db: Session, analysis_id: str, **fields: Any) -> Analysis:
    analysis = get_analysis(db, analysis_id)
    if analysis is None:
        raise RecordNotFound(analysis_id)
    if AnalysisStatus(analysis.status) in TERMINAL_STATUSES:
        raise RecordFinalized(f"analysis {analysis_id} is already {analysis.status}")

    for name, value in fields.items():
        setattr(analysis, name, value)
    db.commit()
    db.refresh(analysis)
    return analysis


def find_recent_completed(
    db: Session,
    input_hash: str,
    window: timedelta,
    now: Optional[datetime] = None,
) -> Optional[Analysis]:
    """Newest COMPLETED record with this fingerprint created within `window`."""
    since = (now or datetime.utcnow()) - window
    return (
        db.query(Analysis)
        .filter(
            Analysis.input_hash == input_hash,
            Analysis.status == AnalysisStatus.COMPLETED.value,
            Analysis.created_at >= since,
        )
        .order_by(Analysis.created_at.desc())
        .first()
    )
