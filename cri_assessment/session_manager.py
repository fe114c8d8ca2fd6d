"""
Session Management Module for the CRI Assessment Platform

The assessment session is the document a user edits: the response store
(one ResponseRecord per diagnostic), the evidence references, the filter
state of the listing and the notification address.  It is owned by the
Flask shell and handed by reference to the report pipeline.  This module
includes:
- Session data structures
- File-backed session persistence with expiry
- Session export/import as JSON
"""

from __future__ import annotations
import json
import secrets
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict
from pathlib import Path

from cri_assessment.logging import get_logger
from cri_assessment.scoring import ScoreResult

logger = get_logger(__name__)

EXPORT_FORMAT_VERSION = "1.0"


@dataclass
class ResponseRecord:
    """Latest response to one diagnostic.

    ``score`` and ``confidence`` are a cache of the scoring result at edit
    time; reports always rescore.
    """
    value: Optional[str] = None
    updated_at: Optional[str] = None
    evidence: Optional[str] = None
    score: Optional[int] = None
    confidence: Optional[str] = None


@dataclass
class AssessmentSession:
    """Complete session data structure"""
    session_id: str
    created_at: str
    last_accessed: str
    user_agent: Optional[str] = None

    # Response store, keyed by diagnostic id
    responses: Dict[str, ResponseRecord] = field(default_factory=dict)
    # Diagnostic id -> epoch seconds of the unsaved edit
    pending_saves: Dict[str, float] = field(default_factory=dict)

    # Listing state
    selected_tiers: List[int] = field(default_factory=lambda: [1, 2, 3, 4])
    selected_tag: Optional[str] = None
    current_page: int = 1

    notify_email: Optional[str] = None
    last_report_at: Optional[str] = None
    session_timeout_hours: int = 24

    def is_expired(self) -> bool:
        """Check if session has expired"""
        last_access = datetime.fromisoformat(self.last_accessed)
        expiry_time = last_access + timedelta(hours=self.session_timeout_hours)
        return datetime.now() > expiry_time

    def update_last_accessed(self):
        """Update last accessed timestamp"""
        self.last_accessed = datetime.now().isoformat()

    def set_response(self, diagnostic_id: str, value: Optional[str], result: ScoreResult) -> ResponseRecord:
        """Upsert the response for a diagnostic; the latest write wins."""
        record = self.responses.setdefault(diagnostic_id, ResponseRecord())
        record.value = value
        record.score = result.score
        record.confidence = result.confidence
        record.updated_at = datetime.now().isoformat()
        return record

    def set_evidence(self, diagnostic_id: str, evidence_ref: str) -> ResponseRecord:
        record = self.responses.setdefault(diagnostic_id, ResponseRecord())
        record.evidence = evidence_ref
        record.updated_at = datetime.now().isoformat()
        return record

    def response_for(self, diagnostic_id: str) -> Optional[str]:
        record = self.responses.get(diagnostic_id)
        return record.value if record else None

    def evidence_for(self, diagnostic_id: str) -> Optional[str]:
        record = self.responses.get(diagnostic_id)
        return record.evidence if record else None

    def answered_ids(self) -> List[str]:
        return [k for k, r in self.responses.items() if r.value]

    def get_progress(self, total_items: int) -> float:
        """Percentage of ``total_items`` diagnostics with a non-empty response"""
        if total_items <= 0:
            return 0.0
        return min(100.0, len(self.answered_ids()) / total_items * 100)


class SessionManager:
    """File-backed store of assessment sessions"""

    def __init__(self, storage_dir: str = "sessions", max_sessions: int = 1000,
                 session_timeout_hours: int = 24):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.max_sessions = max_sessions
        self.session_timeout_hours = session_timeout_hours

        # Keep session files out of version control
        gitignore_path = self.storage_dir / ".gitignore"
        if not gitignore_path.exists():
            gitignore_path.write_text("*\n!.gitignore\n")

    def _generate_session_id(self) -> str:
        return secrets.token_urlsafe(32)

    def _get_session_file_path(self, session_id: str) -> Path:
        return self.storage_dir / f"{session_id}.json"

    def create_session(self, user_agent: Optional[str] = None) -> AssessmentSession:
        """Create a new session"""
        now = datetime.now().isoformat()
        session = AssessmentSession(
            session_id=self._generate_session_id(),
            created_at=now,
            last_accessed=now,
            user_agent=user_agent,
            session_timeout_hours=self.session_timeout_hours,
        )
        self._save_session(session)
        self._cleanup_old_sessions()
        return session

    def get_session(self, session_id: str) -> Optional[AssessmentSession]:
        """Retrieve session by ID, or None if unknown, expired or corrupted"""
        if not session_id:
            return None

        file_path = self._get_session_file_path(session_id)
        if not file_path.exists():
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            session = self._dict_to_session(data)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            logger.warning(f"Discarding corrupted session file {file_path.name}: {e}")
            file_path.unlink(missing_ok=True)
            return None

        if session.is_expired():
            self.delete_session(session_id)
            return None

        session.update_last_accessed()
        self._save_session(session)
        return session

    def save_session(self, session: AssessmentSession) -> bool:
        """Save session data"""
        session.update_last_accessed()
        return self._save_session(session)

    def _save_session(self, session: AssessmentSession) -> bool:
        try:
            file_path = self._get_session_file_path(session.session_id)
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(session), f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            logger.error(f"Failed to save session {session.session_id[:8]}: {e}")
            return False

    def delete_session(self, session_id: str) -> bool:
        """Delete a session"""
        try:
            self._get_session_file_path(session_id).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed to delete session {session_id[:8]}: {e}")
            return False

    def export_session(self, session: AssessmentSession) -> str:
        """Export the user's answers as a JSON string"""
        session_dict = asdict(session)
        export_data = {
            "exported_at": datetime.now().isoformat(),
            "cri_assessment_version": EXPORT_FORMAT_VERSION,
            "data": {
                "responses": session_dict["responses"],
                "selected_tiers": session_dict["selected_tiers"],
                "selected_tag": session_dict["selected_tag"],
                "notify_email": session_dict["notify_email"],
            }
        }
        return json.dumps(export_data, indent=2, ensure_ascii=False)

    def import_session(self, json_data: str) -> Optional[AssessmentSession]:
        """Import answers from an exported JSON string into a new session"""
        try:
            import_data = json.loads(json_data)
            data = import_data["data"]
            responses = {
                diag_id: self._dict_to_response_record(record)
                for diag_id, record in (data.get("responses") or {}).items()
            }
        except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Rejected session import: {e}")
            return None

        session = self.create_session()
        session.responses = responses
        # Due on the next flush, so restored answers reach the backend
        session.pending_saves = {diag_id: 0.0 for diag_id in responses}
        session.selected_tiers = list(data.get("selected_tiers", session.selected_tiers))
        session.selected_tag = data.get("selected_tag")
        session.notify_email = data.get("notify_email")
        self.save_session(session)
        return session

    def _cleanup_old_sessions(self):
        """Remove expired sessions and limit total sessions"""
        session_files = list(self.storage_dir.glob("*.json"))

        for file_path in session_files[:]:
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    expired = self._dict_to_session(json.load(f)).is_expired()
            except (json.JSONDecodeError, KeyError, ValueError, TypeError):
                expired = True
            if expired:
                file_path.unlink(missing_ok=True)
                session_files.remove(file_path)

        if len(session_files) > self.max_sessions:
            session_files.sort(key=lambda p: p.stat().st_mtime)
            for file_path in session_files[:-self.max_sessions]:
                file_path.unlink(missing_ok=True)

    def get_session_stats(self) -> Dict[str, Any]:
        """Get statistics about current sessions"""
        session_files = list(self.storage_dir.glob("*.json"))
        return {
            "total_sessions": len(session_files),
            "total_size_bytes": sum(p.stat().st_size for p in session_files),
            "storage_directory": str(self.storage_dir)
        }

    # Helper methods for data conversion
    def _dict_to_response_record(self, data: Dict[str, Any]) -> ResponseRecord:
        return ResponseRecord(
            value=data.get("value"),
            updated_at=data.get("updated_at"),
            evidence=data.get("evidence"),
            score=data.get("score"),
            confidence=data.get("confidence"),
        )

    def _dict_to_session(self, data: Dict[str, Any]) -> AssessmentSession:
        return AssessmentSession(
            session_id=data["session_id"],
            created_at=data["created_at"],
            last_accessed=data["last_accessed"],
            user_agent=data.get("user_agent"),
            responses={
                diag_id: self._dict_to_response_record(record)
                for diag_id, record in (data.get("responses") or {}).items()
            },
            pending_saves={k: float(v) for k, v in (data.get("pending_saves") or {}).items()},
            selected_tiers=list(data.get("selected_tiers", [1, 2, 3, 4])),
            selected_tag=data.get("selected_tag"),
            current_page=int(data.get("current_page", 1)),
            notify_email=data.get("notify_email"),
            last_report_at=data.get("last_report_at"),
            session_timeout_hours=data.get("session_timeout_hours", self.session_timeout_hours),
        )
