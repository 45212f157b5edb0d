import os

# Keep the app's import-time table creation off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scamshield.api.security import rate_limiter
from scamshield.api.server import app, get_db, get_pipeline
from scamshield.database import Base
from scamshield.pipelines.analysis_pipeline import AnalysisPipeline
from scamshield.services.link_service import LinkAnalysisService
from scamshield.services.threat_intel import ThreatIntelAggregator
from scamshield.tests.fakes import FakeModel, StubFetcher, StubReputation, StubScanner
from scamshield.utils.logging_config import metrics


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Fresh in-memory database session per test."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def reputation():
    return StubReputation()


@pytest.fixture
def scanner():
    return StubScanner()


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def threat_intel(reputation, scanner, fetcher):
    return ThreatIntelAggregator(
        reputation=reputation,
        scanner=scanner,
        url_analyzer=LinkAnalysisService(fetcher=fetcher),
    )


@pytest.fixture
def pipeline(fake_model, threat_intel):
    return AnalysisPipeline(model=fake_model, threat_intel=threat_intel)


@pytest.fixture(autouse=True)
def reset_process_state():
    metrics.reset()
    rate_limiter.reset()
    yield
    metrics.reset()
    rate_limiter.reset()


@pytest.fixture
def client(db_session, pipeline):
    """FastAPI test client wired to the in-memory database and fake model."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sample_scam_text():
    """Sample scam message for testing."""
    return "URGENT: Your PayPal account has been compromised! Click here immediately to verify your password and OTP code."


@pytest.fixture
def sample_safe_text():
    """Sample safe message for testing."""
    return "Hi, just wanted to check in about our meeting tomorrow at 3pm."


@pytest.fixture
def sample_phishing_url():
    """Sample phishing URL for testing."""
    return "http://paypal-secure-login.tk/verify"
