import base64
import binascii
import uuid

from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from typing import Optional

from scamshield.config import settings
from scamshield.database import SessionLocal, Base, engine
from scamshield.models.analysis import InputType
from scamshield.models import feedback as _feedback_models  # noqa: F401  (registers the table)
from scamshield.schemas.analyze_schemas import (
    AnalysisRecordOut,
    AnalyzeRequest,
    AnalyzeResponse,
    FeedbackRequest,
    FeedbackResponse,
    FeedbackStats,
)
from scamshield.services.analysis_store import RecordNotFound, get_analysis
from scamshield.services.feedback_service import submit_feedback, get_feedback_stats
from scamshield.pipelines.analysis_pipeline import AnalysisPipeline, PipelineError, PipelineInput
from scamshield.api.security import verify_api_token, check_rate_limit
from scamshield.utils.logging_config import metrics, StructuredLogger, init_logging, request_id_var

API_VERSION = "0.1.0"

# Initialize structured logging
init_logging()

logger = StructuredLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="ScamShield API",
    version=API_VERSION,
    description="Scam and fraud risk analysis for text, links, emails and screenshots",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# Rate limit headers middleware
@app.middleware("http")
async def add_rate_limit_headers(request: Request, call_next):
    response = await call_next(request)
    if hasattr(request.state, "rate_limit_remaining"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
    return response


# Request id for log correlation
@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline()


def _decode_image(payload: AnalyzeRequest) -> bytes:
    if not payload.image_base64 or not payload.image_media_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Fields 'image_base64' and 'image_media_type' are required for input_type='IMAGE'.",
        )

    allowed = settings.allowed_image_types_list
    if payload.image_media_type not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image type '{payload.image_media_type}'. Must be one of {allowed}.",
        )

    try:
        image_bytes = base64.b64decode(payload.image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Field 'image_base64' is not valid base64.",
        )

    if not image_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Image payload is empty.",
        )
    if len(image_bytes) > settings.max_image_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {settings.max_image_bytes} bytes.",
        )
    return image_bytes


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info():
    """
    API status and configuration info.
    Useful for debugging and monitoring.
    """
    return {
        "status": "ok",
        "version": API_VERSION,
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "model": settings.openai_model,
        "providers": {
            "safe_browsing": bool(settings.safe_browsing_api_key),
            "virustotal": bool(settings.virustotal_api_key),
        },
        "rate_limit": {
            "requests": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window,
        },
        "supported_types": [t.value for t in InputType],
    }


@app.get("/metrics", dependencies=[Depends(verify_api_token)])
def get_metrics():
    """In-process counters and latency stats."""
    return metrics.get_stats()


@app.post(
    "/analyze",
    response_model=AnalyzeResponse,
    dependencies=[Depends(verify_api_token), Depends(check_rate_limit)],
)
async def analyze(
    payload: AnalyzeRequest,
    db: Session = Depends(get_db),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    if len(payload.content) > settings.max_content_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content exceeds {settings.max_content_length} characters.",
        )

    image_bytes: Optional[bytes] = None
    if payload.input_type == InputType.IMAGE:
        image_bytes = _decode_image(payload)

    try:
        result = await pipeline.run(
            db,
            PipelineInput(
                content=payload.content,
                input_type=payload.input_type,
                conversation_id=payload.conversation_id,
                image_bytes=image_bytes,
                image_media_type=payload.image_media_type if image_bytes else None,
            ),
        )
    except PipelineError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Analysis failed. Please try again later.",
                "analysis_id": e.analysis_id,
            },
        )

    return AnalyzeResponse(
        analysis_id=result.analysis_id,
        conversation_id=result.conversation_id,
        risk_score=result.risk_score,
        risk_level=result.risk_level.value,
        confidence=result.confidence,
        scam_type=result.scam_type,
        explanation=result.explanation,
        recommendations=result.recommendations,
        indicators=result.indicators,
        processing_time_ms=result.processing_time_ms,
        cached=result.cached,
        score_breakdown=result.breakdown,
    )


@app.get(
    "/analyses/{analysis_id}",
    response_model=AnalysisRecordOut,
    dependencies=[Depends(verify_api_token)],
)
def read_analysis(analysis_id: str, db: Session = Depends(get_db)):
    analysis = get_analysis(db, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found.")
    return AnalysisRecordOut.model_validate(analysis)


# ============== FEEDBACK ENDPOINTS ==============


@app.post(
    "/feedback",
    response_model=FeedbackResponse,
    dependencies=[Depends(verify_api_token), Depends(check_rate_limit)],
)
async def submit_analysis_feedback(
    feedback: FeedbackRequest,
    db: Session = Depends(get_db),
):
    """
    Submit feedback on an analysis result.

    Use this to report false positives or false negatives,
    which helps improve the system over time.
    """
    try:
        result = submit_feedback(
            db=db,
            analysis_id=feedback.analysis_id,
            feedback_type=feedback.feedback,
            comment=feedback.comment,
        )
    except RecordNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found.")

    logger.info("Feedback recorded", analysis_id=feedback.analysis_id, feedback_type=result.feedback_type)
    return FeedbackResponse(
        id=result.id,
        message="Feedback submitted successfully. Thank you!",
        feedback_type=result.feedback_type,
    )


@app.get(
    "/feedback/stats",
    response_model=FeedbackStats,
    dependencies=[Depends(verify_api_token)],
)
async def get_feedback_statistics(
    days: int = 30,
    db: Session = Depends(get_db),
):
    """
    Get feedback statistics for monitoring verdict quality.

    Shows counts per feedback type and false positive/negative rates.
    """
    stats = get_feedback_stats(db=db, days=days)
    return FeedbackStats(**stats)
