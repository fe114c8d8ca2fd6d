"""Tests for debounced response persistence."""

import logging
from unittest.mock import call, patch

import pytest

from cri_assessment.response_sync import ResponseSyncer, mark_pending
from cri_assessment.scoring import ScoreResult


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def mock_backend():
    with patch("cri_assessment.response_sync.backend") as mock:
        yield mock


@pytest.fixture
def clock():
    return FakeClock()


def _edit(session, diag_id, value, at):
    session.set_response(diag_id, value, ScoreResult(1, "Low"))
    mark_pending(session, diag_id, now=at)


class TestDebounce:
    def test_recent_edit_is_not_due(self, assessment_session, clock):
        syncer = ResponseSyncer(debounce_seconds=2.0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=999.5)
        assert syncer.due(assessment_session) == []

    def test_quiet_edit_is_due(self, assessment_session, clock):
        syncer = ResponseSyncer(debounce_seconds=2.0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=998.0)
        assert syncer.due(assessment_session) == ["CRI-01"]

    def test_rapid_edits_collapse_to_one_write(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=2.0, clock=clock)
        for i, text in enumerate(["W", "We", "We keep", "We keep an inventory"]):
            _edit(assessment_session, "CRI-01", text, at=990.0 + i * 0.5)

        assert syncer.flush_due(assessment_session) == ["CRI-01"]
        mock_backend.upsert_response.assert_called_once()
        assert mock_backend.upsert_response.call_args.kwargs["response_text"] == "We keep an inventory"

    def test_flush_due_leaves_recent_edits_pending(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=2.0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=990.0)
        _edit(assessment_session, "CRI-02", "No", at=999.9)

        assert syncer.flush_due(assessment_session) == ["CRI-01"]
        assert list(assessment_session.pending_saves) == ["CRI-02"]


class TestFlush:
    def test_forced_flush_writes_everything(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=60, clock=clock)
        assessment_session.set_response("CRI-01", "inventory", ScoreResult(3, "High"))
        assessment_session.set_evidence("CRI-01", "CRI-01/a.pdf")
        mark_pending(assessment_session, "CRI-01", now=clock.now)
        assessment_session.set_evidence("CRI-02", "CRI-02/b.pdf")
        mark_pending(assessment_session, "CRI-02", now=clock.now)

        saved = syncer.flush(assessment_session)

        assert saved == ["CRI-01", "CRI-02"]
        assert assessment_session.pending_saves == {}
        assert mock_backend.upsert_response.call_args_list == [
            call(diagnostic_id="CRI-01", response_text="inventory", score=3,
                 confidence="High", evidence_ref="CRI-01/a.pdf"),
            call(diagnostic_id="CRI-02", response_text=None, score=0,
                 confidence="Low", evidence_ref="CRI-02/b.pdf"),
        ]

    def test_unforced_flush_matches_flush_due(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=60, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=clock.now)
        assert syncer.flush(assessment_session, force=False) == []
        mock_backend.upsert_response.assert_not_called()

    def test_failure_keeps_local_state(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=clock.now)
        _edit(assessment_session, "CRI-02", "No", at=clock.now)
        mock_backend.upsert_response.side_effect = [Exception("network down"), None]

        saved = syncer.flush(assessment_session)

        assert saved == ["CRI-02"]
        assert assessment_session.pending_saves == {}
        assert assessment_session.response_for("CRI-01") == "Yes"

    def test_failure_is_logged_with_context(self, assessment_session, clock, mock_backend, caplog):
        syncer = ResponseSyncer(debounce_seconds=0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=clock.now)
        mock_backend.upsert_response.side_effect = Exception("network down")

        with caplog.at_level(logging.ERROR, logger="cri_assessment.response_sync"):
            syncer.flush(assessment_session)

        record = caplog.records[-1]
        assert "network down" in record.getMessage()
        assert record.diagnostic_id == "CRI-01"
        assert record.session == "test-session"[:8]

    def test_failed_write_is_not_retried(self, assessment_session, clock, mock_backend):
        syncer = ResponseSyncer(debounce_seconds=0, clock=clock)
        _edit(assessment_session, "CRI-01", "Yes", at=clock.now)
        mock_backend.upsert_response.side_effect = Exception("network down")

        syncer.flush(assessment_session)
        syncer.flush(assessment_session)

        assert mock_backend.upsert_response.call_count == 1

    def test_nothing_pending(self, assessment_session, mock_backend):
        assert ResponseSyncer().flush(assessment_session) == []
        mock_backend.upsert_response.assert_not_called()
