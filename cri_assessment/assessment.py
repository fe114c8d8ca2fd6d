"""
Assessment operations.

The edits a user makes to an assessment session (recording a response,
attaching evidence, setting a notification address) and report generation.
Remote failures degrade to the local session state and are only logged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from cri_assessment import backend
from cri_assessment.catalog import Catalog
from cri_assessment.logging import get_logger, log_with_context
from cri_assessment.notifications import send_report_notification
from cri_assessment.report_builder import ReportRow, ReportSummary, build_report, summarize_report
from cri_assessment.response_sync import ResponseSyncer, mark_pending
from cri_assessment.scoring import ScoreResult, ScoringStrategy, mock_ai_score
from cri_assessment.session_manager import AssessmentSession

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class GeneratedReport:
    rows: List[ReportRow]
    summary: ReportSummary
    created_at: str
    archived: bool = False
    notified: bool = False


def _require_diagnostic(catalog: Catalog, diagnostic_id: str) -> None:
    if diagnostic_id not in catalog:
        raise ValueError(f"Unknown diagnostic id: {diagnostic_id}")


def record_response(
    session: AssessmentSession,
    catalog: Catalog,
    diagnostic_id: str,
    value: Optional[str],
    scorer: ScoringStrategy = mock_ai_score,
    now: Optional[float] = None,
) -> ScoreResult:
    """Store the latest response for a diagnostic and queue it for saving.

    Raises:
        ValueError: if the diagnostic is not in the catalog.
    """
    _require_diagnostic(catalog, diagnostic_id)
    result = scorer(value)
    session.set_response(diagnostic_id, value, result)
    mark_pending(session, diagnostic_id, now)
    logger.debug(f"Recorded response for {diagnostic_id}: score={result.score} confidence={result.confidence}")
    return result


def evidence_path(diagnostic_id: str, filename: str) -> str:
    return f"{diagnostic_id}/{filename}"


def attach_evidence(
    session: AssessmentSession,
    catalog: Catalog,
    diagnostic_id: str,
    filename: str,
    file_bytes: bytes,
    content_type: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> Optional[str]:
    """Upload an evidence file and record its storage path.

    Returns:
        The stored path, or None if the upload was rejected or failed; the
        previous evidence reference is kept in that case.

    Raises:
        ValueError: if the diagnostic is not in the catalog.
    """
    _require_diagnostic(catalog, diagnostic_id)
    if not filename:
        log_with_context(logger, logging.WARNING, "Evidence upload without a file name",
                         session_id=session.session_id, diagnostic_id=diagnostic_id)
        return None
    if max_bytes is not None and len(file_bytes) > max_bytes:
        log_with_context(
            logger, logging.WARNING, f"Evidence file too large ({len(file_bytes)} bytes)",
            session_id=session.session_id, diagnostic_id=diagnostic_id,
        )
        return None

    try:
        stored_path = backend.upload_evidence(
            evidence_path(diagnostic_id, filename), file_bytes, content_type
        )
    except Exception as e:
        log_with_context(logger, logging.ERROR, f"Upload failed: {e}",
                         session_id=session.session_id, diagnostic_id=diagnostic_id)
        return None

    session.set_evidence(diagnostic_id, stored_path)
    mark_pending(session, diagnostic_id)
    return stored_path


def set_notify_email(session: AssessmentSession, email: Optional[str]) -> bool:
    """Set or clear the report notification address; False if it is malformed."""
    email = (email or "").strip()
    if not email:
        session.notify_email = None
        return True
    if not EMAIL_RE.match(email):
        return False
    session.notify_email = email
    return True


def generate_report(
    session: AssessmentSession,
    catalog: Catalog,
    syncer: Optional[ResponseSyncer] = None,
    scorer: ScoringStrategy = mock_ai_score,
    archive: bool = True,
) -> GeneratedReport:
    """Build the report for the session's current answers.

    Pending responses are saved first. The report is archived and, when the
    session has a notification address, emailed; both are best effort.
    """
    if syncer is not None:
        syncer.flush(session, force=True)

    rows = build_report(catalog, session, scorer)
    report = GeneratedReport(
        rows=rows,
        summary=summarize_report(rows),
        created_at=datetime.now(timezone.utc).isoformat(),
    )

    if archive:
        try:
            backend.insert_report_snapshot([r.as_dict() for r in rows], report.created_at)
            report.archived = True
        except Exception as e:
            log_with_context(logger, logging.ERROR, f"Failed to store report: {e}", session_id=session.session_id)

    if session.notify_email:
        try:
            report.notified = send_report_notification(session.notify_email, report.summary) is not None
        except Exception as e:
            log_with_context(logger, logging.ERROR, f"Email notification failed: {e}", session_id=session.session_id)

    session.last_report_at = report.created_at
    return report
