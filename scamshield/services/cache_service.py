"""
Fingerprint cache over persisted analyses.

A submission whose fingerprint matches a COMPLETED analysis from the last
24 hours is served from that analysis. The hit still gets its own record
(status CACHED, no token cost) so every submission stays auditable.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from scamshield.models.analysis import Analysis, AnalysisStatus
from scamshield.services import analysis_store

logger = logging.getLogger(__name__)


CACHE_WINDOW = timedelta(hours=24)

# Scoring content carried over from the source analysis on a hit
_COPIED_FIELDS = (
    "risk_score",
    "risk_level",
    "confidence",
    "scam_type",
    "scam_sub_type",
    "ai_analysis",
    "threat_intel",
    "url_analysis",
    "indicators",
    "recommendation",
    "actions",
    "ai_model_used",
)


def lookup(db: Session, input_hash: str, now: Optional[datetime] = None) -> Optional[Analysis]:
    source = analysis_store.find_recent_completed(db, input_hash, CACHE_WINDOW, now=now)
    if source is not None:
        logger.debug(f"Cache hit for {input_hash[:12]} (source analysis {source.id})")
    return source


def create_cached_copy(
    db: Session,
    source: Analysis,
    conversation_id: str,
    input_type: str,
    input_content: str,
    processing_time_ms: int,
) -> Analysis:
    """New CACHED record with the source's scoring fields and zero token cost."""
    fields = {name: getattr(source, name) for name in _COPIED_FIELDS}
    return analysis_store.create_analysis(
        db,
        conversation_id=conversation_id,
        input_type=input_type,
        input_content=input_content,
        input_hash=source.input_hash,
        ai_tokens_used=0,
        processing_time_ms=processing_time_ms,
        status=AnalysisStatus.CACHED.value,
        completed_at=datetime.utcnow(),
        **fields,
    )
