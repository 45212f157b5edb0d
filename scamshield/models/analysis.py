import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text

from scamshield.database import Base


class InputType(str, enum.Enum):
    TEXT = "TEXT"
    URL = "URL"
    IMAGE = "IMAGE"
    EMAIL = "EMAIL"


class RiskLevel(str, enum.Enum):
    """Five ordered bands, lowest risk first."""
    SAFE = "SAFE"
    LOW_RISK = "LOW_RISK"
    SUSPICIOUS = "SUSPICIOUS"
    LIKELY_SCAM = "LIKELY_SCAM"
    CONFIRMED_SCAM = "CONFIRMED_SCAM"


class ScamType(str, enum.Enum):
    PHISHING = "PHISHING"
    ADVANCE_FEE = "ADVANCE_FEE"
    ROMANCE = "ROMANCE"
    TECH_SUPPORT = "TECH_SUPPORT"
    INVESTMENT = "INVESTMENT"
    LOTTERY = "LOTTERY"
    IMPERSONATION = "IMPERSONATION"
    EMPLOYMENT = "EMPLOYMENT"
    CRYPTO = "CRYPTO"
    SHOPPING = "SHOPPING"
    CHARITY = "CHARITY"
    GOVERNMENT = "GOVERNMENT"
    SUBSCRIPTION = "SUBSCRIPTION"
    SMS_SMISHING = "SMS_SMISHING"
    SOCIAL_ENGINEERING = "SOCIAL_ENGINEERING"
    MALWARE = "MALWARE"
    OTHER = "OTHER"


class AnalysisStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CACHED = "CACHED"
    FAILED = "FAILED"


TERMINAL_STATUSES = {AnalysisStatus.COMPLETED, AnalysisStatus.CACHED, AnalysisStatus.FAILED}


def _new_id() -> str:
    return uuid.uuid4().hex


class Analysis(Base):
    """One row per submission, cached or not."""
    __tablename__ = "analyses"

    id = Column(String(32), primary_key=True, default=_new_id)
    conversation_id = Column(String(64), nullable=False, index=True)

    input_type = Column(String(10), nullable=False)    # TEXT | URL | IMAGE | EMAIL
    input_content = Column(Text, nullable=False)
    input_hash = Column(String(64), nullable=False, index=True)

    risk_score = Column(Integer, nullable=False, default=0)      # 0-100
    risk_level = Column(String(20), nullable=False, default=RiskLevel.SAFE.value)
    confidence = Column(Float, nullable=False, default=0.0)      # 0.0-1.0
    scam_type = Column(String(30), nullable=True)
    scam_sub_type = Column(String(200), nullable=True)

    ai_analysis = Column(JSON, nullable=False, default=dict)     # normalized judgment
    threat_intel = Column(JSON, nullable=True)                   # {"safe_browsing": ..., "virustotal": ...}
    url_analysis = Column(JSON, nullable=True)                   # URL heuristics result
    indicators = Column(JSON, nullable=False, default=list)      # [{"type", "text", "weight"}]
    recommendation = Column(Text, nullable=False, default="")
    actions = Column(JSON, nullable=False, default=list)         # ["...", ...]

    processing_time_ms = Column(Integer, nullable=True)
    ai_model_used = Column(String(100), nullable=True)
    ai_tokens_used = Column(Integer, nullable=False, default=0)

    status = Column(String(12), nullable=False, default=AnalysisStatus.PENDING.value, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
