"""Remote collaborators backed by Supabase.

Catalog reads, response upserts, evidence uploads and report archiving. Every
function here raises on failure; callers decide how to degrade.
"""

from typing import Any

from cri_assessment.config import get_settings
from cri_assessment.logging import get_logger
from cri_assessment.supabase_client import get_supabase

logger = get_logger(__name__)


def list_diagnostics() -> list[dict[str, Any]]:
    """
    Fetch all diagnostic statement rows.

    Returns:
        Raw rows from the diagnostics table (possibly empty)
    """
    settings = get_settings()
    supabase = get_supabase()
    response = supabase.table(settings.DIAGNOSTICS_TABLE).select("*").execute()
    return response.data or []


def list_response_keys() -> list[dict[str, Any]]:
    """
    Fetch categorical response labels ordered by id.

    Returns:
        Rows with id, label and description
    """
    settings = get_settings()
    supabase = get_supabase()
    response = (
        supabase.table(settings.RESPONSE_KEYS_TABLE)
        .select("*")
        .order("id", desc=False)
        .execute()
    )
    return response.data or []


def list_tags() -> list[str]:
    """Fetch the tag names available for filtering."""
    settings = get_settings()
    supabase = get_supabase()
    response = supabase.table(settings.TAGS_TABLE).select("name").execute()
    return [row["name"] for row in (response.data or []) if row.get("name")]


def upsert_response(
    diagnostic_id: str,
    response_text: str | None,
    score: int,
    confidence: str,
    evidence_ref: str | None,
) -> dict[str, Any] | None:
    """
    Insert or replace the stored response for a diagnostic.

    Args:
        diagnostic_id: Diagnostic the response belongs to
        response_text: Latest response value
        score: Cached score for the response
        confidence: Cached confidence label
        evidence_ref: Storage path of the evidence file, if any

    Returns:
        The stored row, if the backend returned one
    """
    settings = get_settings()
    supabase = get_supabase()
    payload = {
        "diagnostic_id": diagnostic_id,
        "response_text": response_text,
        "ai_score": score,
        "ai_confidence": confidence,
        "evidence_url": evidence_ref,
    }
    response = (
        supabase.table(settings.RESPONSES_TABLE)
        .upsert(payload, on_conflict="diagnostic_id")
        .execute()
    )
    logger.debug(f"Upserted response for {diagnostic_id}")
    return response.data[0] if response.data else None


def upload_evidence(path: str, file_bytes: bytes, content_type: str | None = None) -> str:
    """
    Upload an evidence file to the evidence bucket.

    Args:
        path: Storage path, "{diagnostic_id}/{filename}"
        file_bytes: File content
        content_type: MIME type reported by the client

    Returns:
        The stored path
    """
    settings = get_settings()
    supabase = get_supabase()
    result = supabase.storage.from_(settings.EVIDENCE_BUCKET).upload(
        path=path,
        file=file_bytes,
        file_options={"content-type": content_type or "application/octet-stream"},
    )
    stored_path = getattr(result, "path", None) or path
    logger.info(f"Uploaded evidence to {settings.EVIDENCE_BUCKET}/{stored_path}")
    return stored_path


def insert_report_snapshot(rows: list[dict[str, Any]], created_at: str) -> None:
    """
    Archive a generated report.

    Args:
        rows: Report rows as plain dicts
        created_at: ISO-8601 generation timestamp
    """
    settings = get_settings()
    supabase = get_supabase()
    supabase.table(settings.REPORTS_TABLE).insert(
        [{"payload": rows, "created_at": created_at}]
    ).execute()
    logger.info(f"Archived report with {len(rows)} rows")
