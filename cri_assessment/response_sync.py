"""
Debounced persistence of responses.

Response edits only mark the diagnostic as pending in the session.  The
syncer writes a pending response to the backend once it has been quiet for
the debounce period, or immediately when a save is explicitly requested.
Local session state stays authoritative: a failed write is logged and the
diagnostic is dropped from the pending set until it is edited again.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from cri_assessment import backend
from cri_assessment.logging import get_logger, log_with_context
from cri_assessment.session_manager import AssessmentSession

logger = get_logger(__name__)


def mark_pending(session: AssessmentSession, diagnostic_id: str, now: Optional[float] = None) -> None:
    """Queue a diagnostic's response for the next save."""
    session.pending_saves[diagnostic_id] = time.time() if now is None else now


class ResponseSyncer:
    """Flushes pending responses of a session to the responses table."""

    def __init__(self, debounce_seconds: float = 2.0, clock: Callable[[], float] = time.time):
        self.debounce_seconds = debounce_seconds
        self.clock = clock

    def due(self, session: AssessmentSession) -> List[str]:
        """Pending ids whose last edit is at least the debounce period old."""
        now = self.clock()
        return [
            diag_id for diag_id, edited_at in session.pending_saves.items()
            if now - edited_at >= self.debounce_seconds
        ]

    def flush_due(self, session: AssessmentSession) -> List[str]:
        return self._flush_ids(session, self.due(session))

    def flush(self, session: AssessmentSession, force: bool = True) -> List[str]:
        """Persist pending responses; all of them when ``force`` is set.

        Returns:
            Ids that were written successfully
        """
        ids = list(session.pending_saves) if force else self.due(session)
        return self._flush_ids(session, ids)

    def _flush_ids(self, session: AssessmentSession, ids: List[str]) -> List[str]:
        saved = []
        for diag_id in ids:
            session.pending_saves.pop(diag_id, None)
            record = session.responses.get(diag_id)
            if record is None:
                continue
            try:
                backend.upsert_response(
                    diagnostic_id=diag_id,
                    response_text=record.value,
                    score=record.score if record.score is not None else 0,
                    confidence=record.confidence or "Low",
                    evidence_ref=record.evidence,
                )
            except Exception as e:
                log_with_context(
                    logger, logging.ERROR, f"Failed to persist response: {e}",
                    session_id=session.session_id, diagnostic_id=diag_id,
                )
                continue
            saved.append(diag_id)
        if saved:
            log_with_context(
                logger, logging.INFO, f"Persisted {len(saved)} responses",
                session_id=session.session_id,
            )
        return saved
