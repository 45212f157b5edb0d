"""Tests for analysis persistence."""

from datetime import datetime, timedelta

import pytest

from scamshield.models.analysis import AnalysisStatus
from scamshield.services.analysis_store import (
    RecordFinalized,
    RecordNotFound,
    create_analysis,
    find_recent_completed,
    get_analysis,
    update_analysis,
)

HASH = "a" * 64


def _create(db, status=AnalysisStatus.PROCESSING, input_hash=HASH):
    return create_analysis(
        db,
        conversation_id="conv",
        input_type="TEXT",
        input_content="hello",
        input_hash=input_hash,
        status=status.value,
    )


class TestAnalysisStore:
    def test_create_sets_defaults(self, db_session):
        analysis = _create(db_session)
        assert len(analysis.id) == 32
        assert analysis.risk_score == 0
        assert analysis.risk_level == "SAFE"
        assert analysis.indicators == []
        assert analysis.created_at is not None

    def test_update_and_get(self, db_session):
        analysis = _create(db_session)
        update_analysis(db_session, analysis.id, risk_score=40, status=AnalysisStatus.COMPLETED.value)
        assert get_analysis(db_session, analysis.id).risk_score == 40

    def test_terminal_records_are_frozen(self, db_session):
        analysis = _create(db_session, status=AnalysisStatus.COMPLETED)
        with pytest.raises(RecordFinalized):
            update_analysis(db_session, analysis.id, risk_score=99)

    def test_update_missing(self, db_session):
        with pytest.raises(RecordNotFound):
            update_analysis(db_session, "missing", risk_score=1)


class TestFindRecentCompleted:
    def test_newest_completed_wins(self, db_session):
        older = _create(db_session, status=AnalysisStatus.COMPLETED)
        older.created_at = datetime.utcnow() - timedelta(hours=2)
        newer = _create(db_session, status=AnalysisStatus.COMPLETED)
        db_session.commit()

        found = find_recent_completed(db_session, HASH, timedelta(hours=24))

        assert found.id == newer.id

    def test_ignores_other_statuses_and_hashes(self, db_session):
        _create(db_session, status=AnalysisStatus.FAILED)
        _create(db_session, status=AnalysisStatus.CACHED)
        _create(db_session, status=AnalysisStatus.COMPLETED, input_hash="b" * 64)

        assert find_recent_completed(db_session, HASH, timedelta(hours=24)) is None

    def test_window_boundary(self, db_session):
        analysis = _create(db_session, status=AnalysisStatus.COMPLETED)
        now = analysis.created_at + timedelta(hours=24)

        assert find_recent_completed(db_session, HASH, timedelta(hours=24), now=now).id == analysis.id
        assert find_recent_completed(db_session, HASH, timedelta(hours=24), now=now + timedelta(seconds=1)) is None
