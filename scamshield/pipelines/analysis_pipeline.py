"""
Analysis pipeline: one submission in, one verdict out.

CACHE_LOOKUP -> CACHED       fingerprint matches a COMPLETED analysis < 24h old
CACHE_LOOKUP -> PROCESSING   otherwise; a placeholder record is written first
PROCESSING   -> COMPLETED    threat intel (URLs only) -> judgment -> scoring
PROCESSING   -> FAILED       any unexpected error; re-raised as PipelineError

Provider outages and malformed model output are absorbed further down and
never reach this level as errors.
"""

import hashlib
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from scamshield.models.analysis import AnalysisStatus, InputType, RiskLevel
from scamshield.services import analysis_store, cache_service
from scamshield.services.judgment_service import (
    EmailInput,
    ImageInput,
    JudgmentInput,
    TextInput,
    UrlInput,
    judge,
)
from scamshield.services.llm_client import JudgmentModel, LLMClient
from scamshield.services.risk_service import calculate_risk_score
from scamshield.services.threat_intel import ThreatIntelAggregator, ThreatSignal
from scamshield.utils.logging_config import StructuredLogger, analysis_id_var, track_analysis
from scamshield.utils.preprocessing import fingerprint, is_url

logger = StructuredLogger(__name__)


class PipelineError(Exception):
    """An analysis could not be completed; its record (if any) is FAILED."""

    def __init__(self, message: str, analysis_id: Optional[str] = None):
        super().__init__(message)
        self.analysis_id = analysis_id


@dataclass
class PipelineInput:
    content: str
    input_type: Optional[InputType] = None
    conversation_id: Optional[str] = None
    image_bytes: Optional[bytes] = None
    image_media_type: Optional[str] = None


@dataclass
class PipelineResult:
    analysis_id: str
    conversation_id: str
    risk_score: int
    risk_level: RiskLevel
    confidence: float
    scam_type: Optional[str]
    explanation: str
    recommendations: List[str]
    indicators: List[Dict[str, Any]]
    processing_time_ms: int
    cached: bool
    breakdown: Optional[Dict[str, Any]] = None
    degraded_providers: List[str] = field(default_factory=list)


def classify_input(pipeline_input: PipelineInput) -> InputType:
    """
    Decide which kind of analysis a submission gets.

    Declared IMAGE needs an image payload; declared URL is trusted; undeclared
    or TEXT content is promoted to URL when it is a single http(s) URL.
    """
    declared = pipeline_input.input_type

    if declared == InputType.IMAGE and pipeline_input.image_bytes:
        return InputType.IMAGE
    if declared == InputType.URL:
        return InputType.URL
    if declared in (None, InputType.TEXT) and is_url(pipeline_input.content):
        return InputType.URL
    if declared == InputType.EMAIL:
        return InputType.EMAIL
    return InputType.TEXT


def input_fingerprint(pipeline_input: PipelineInput, kind: InputType) -> str:
    if kind == InputType.IMAGE:
        image_digest = hashlib.sha256(pipeline_input.image_bytes).hexdigest()
        return fingerprint(f"{pipeline_input.content}:{image_digest}")
    return fingerprint(pipeline_input.content)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _judgment_input(
    pipeline_input: PipelineInput,
    kind: InputType,
    signal: Optional[ThreatSignal],
) -> JudgmentInput:
    if kind == InputType.IMAGE:
        return ImageInput(
            image_bytes=pipeline_input.image_bytes,
            media_type=pipeline_input.image_media_type or "image/png",
        )
    if kind == InputType.URL:
        return UrlInput(
            url=pipeline_input.content.strip(),
            threat_context=signal.context_summary() if signal else None,
        )
    if kind == InputType.EMAIL:
        return EmailInput(content=pipeline_input.content)
    return TextInput(text=pipeline_input.content)


class AnalysisPipeline:
    def __init__(
        self,
        model: Optional[JudgmentModel] = None,
        threat_intel: Optional[ThreatIntelAggregator] = None,
    ):
        self.model = model or LLMClient()
        self.threat_intel = threat_intel or ThreatIntelAggregator()

    @track_analysis("analysis")
    async def run(self, db: Session, pipeline_input: PipelineInput) -> PipelineResult:
        start = time.perf_counter()
        conversation_id = pipeline_input.conversation_id or uuid.uuid4().hex
        analysis_id: Optional[str] = None

        try:
            kind = classify_input(pipeline_input)
            input_hash = input_fingerprint(pipeline_input, kind)

            source = cache_service.lookup(db, input_hash)
            if source is not None:
                return self._serve_cached(db, source, pipeline_input, kind, conversation_id, start)

            placeholder = analysis_store.create_analysis(
                db,
                conversation_id=conversation_id,
                input_type=kind.value,
                input_content=pipeline_input.content,
                input_hash=input_hash,
                status=AnalysisStatus.PROCESSING.value,
            )
            analysis_id = placeholder.id
            analysis_id_var.set(analysis_id)

            return await self._process(db, analysis_id, pipeline_input, kind, conversation_id, start)

        except Exception as e:
            logger.error(
                "Analysis pipeline failed",
                exc_info=True,
                analysis_id=analysis_id,
                error_type=type(e).__name__,
            )
            if analysis_id is not None:
                self._mark_failed(db, analysis_id, start)
            raise PipelineError(f"analysis failed: {e}", analysis_id=analysis_id) from e

    def _serve_cached(self, db, source, pipeline_input, kind, conversation_id, start) -> PipelineResult:
        record = cache_service.create_cached_copy(
            db,
            source,
            conversation_id=conversation_id,
            input_type=kind.value,
            input_content=pipeline_input.content,
            processing_time_ms=_elapsed_ms(start),
        )
        logger.info(
            "Analysis served from cache",
            analysis_id=record.id,
            source_analysis_id=source.id,
            risk_score=record.risk_score,
        )
        return PipelineResult(
            analysis_id=record.id,
            conversation_id=conversation_id,
            risk_score=record.risk_score,
            risk_level=RiskLevel(record.risk_level),
            confidence=record.confidence,
            scam_type=record.scam_type,
            explanation=record.recommendation,
            recommendations=list(record.actions or []),
            indicators=list(record.indicators or []),
            processing_time_ms=record.processing_time_ms,
            cached=True,
        )

    async def _process(self, db, analysis_id, pipeline_input, kind, conversation_id, start) -> PipelineResult:
        signal: Optional[ThreatSignal] = None
        if kind == InputType.URL:
            signal = await self.threat_intel.gather(pipeline_input.content.strip())
            if signal.degraded:
                logger.warning("Threat intelligence degraded", providers=signal.degraded)

        judgment, response = await judge(self.model, _judgment_input(pipeline_input, kind, signal))

        score = calculate_risk_score(
            ai_score=judgment.risk_score,
            ai_confidence=judgment.confidence,
            reputation_flagged=signal.reputation_flagged if signal else False,
            scan_positives=signal.scan_positives if signal else 0,
            suspicious_flags=signal.suspicious_flags if signal else None,
        )

        indicators = [indicator.model_dump() for indicator in judgment.indicators]
        scam_type = judgment.scam_type.value if judgment.scam_type else None
        processing_time_ms = _elapsed_ms(start)

        analysis_store.update_analysis(
            db,
            analysis_id,
            risk_score=score.final_score,
            risk_level=score.risk_level.value,
            confidence=judgment.confidence,
            scam_type=scam_type,
            scam_sub_type=judgment.scam_sub_type,
            ai_analysis=judgment.model_dump(mode="json"),
            threat_intel=signal.threat_intel_dict() if signal else None,
            url_analysis=signal.url_analysis.to_dict() if signal else None,
            indicators=indicators,
            recommendation=judgment.explanation,
            actions=list(judgment.recommendations),
            ai_model_used=response.model,
            ai_tokens_used=response.tokens_used,
            processing_time_ms=processing_time_ms,
            status=AnalysisStatus.COMPLETED.value,
            completed_at=datetime.utcnow(),
        )

        logger.info(
            "Analysis completed",
            analysis_id=analysis_id,
            input_type=kind.value,
            risk_score=score.final_score,
            risk_level=score.risk_level.value,
            tokens=response.tokens_used,
            processing_time_ms=processing_time_ms,
        )

        return PipelineResult(
            analysis_id=analysis_id,
            conversation_id=conversation_id,
            risk_score=score.final_score,
            risk_level=score.risk_level,
            confidence=judgment.confidence,
            scam_type=scam_type,
            explanation=judgment.explanation,
            recommendations=list(judgment.recommendations),
            indicators=indicators,
            processing_time_ms=processing_time_ms,
            cached=False,
            breakdown=score.breakdown(),
            degraded_providers=list(signal.degraded) if signal else [],
        )

    @staticmethod
    def _mark_failed(db: Session, analysis_id: str, start: float):
        try:
            db.rollback()
            analysis_store.update_analysis(
                db,
                analysis_id,
                status=AnalysisStatus.FAILED.value,
                processing_time_ms=_elapsed_ms(start),
                completed_at=datetime.utcnow(),
            )
        except Exception:
            # The original error is what the caller needs; this one is only logged.
            logger.error("Could not mark analysis as failed", exc_info=True, analysis_id=analysis_id)


async def run_analysis_pipeline(
    db: Session,
    content: str,
    input_type: Optional[InputType] = None,
    conversation_id: Optional[str] = None,
    image_bytes: Optional[bytes] = None,
    image_media_type: Optional[str] = None,
) -> PipelineResult:
    """Convenience entry point with the default model and providers."""
    pipeline = AnalysisPipeline()
    return await pipeline.run(
        db,
        PipelineInput(
            content=content,
            input_type=input_type,
            conversation_id=conversation_id,
            image_bytes=image_bytes,
            image_media_type=image_media_type,
        ),
    )
