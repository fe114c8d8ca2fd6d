"""Outbound email notification when an assessment report is generated.

Sends through the Resend API. Without RESEND_API_KEY the notification is
skipped and logged.
"""

import html
from typing import Any

import httpx

from cri_assessment.config import get_settings
from cri_assessment.logging import get_logger
from cri_assessment.report_builder import ReportSummary

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def _report_email_bodies(summary: ReportSummary, title: str) -> tuple[str, str]:
    lines = [
        f"Diagnostics assessed: {summary.total}",
        f"Answered: {summary.answered}",
        f"With evidence: {summary.with_evidence}",
        f"Score: {summary.total_score} / {summary.max_score} ({summary.percentage:.0f}%)",
    ]
    lines.extend(f"{level} confidence: {count}" for level, count in summary.confidence_counts.items())
    text_body = f"{title}\n\n" + "\n".join(lines)
    items = "".join(f"<li>{html.escape(line)}</li>" for line in lines)
    html_body = f"<h2>{html.escape(title)}</h2><ul>{items}</ul>"
    return html_body, text_body


def send_report_notification(to_email: str, summary: ReportSummary) -> dict[str, Any] | None:
    """
    Email a report summary to the address captured in the session.

    Args:
        to_email: Recipient address
        summary: Summary of the generated report

    Returns:
        Dict with message_id and status, or None when notifications are not configured

    Raises:
        httpx.HTTPError: If the Resend API call fails
    """
    settings = get_settings()
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not configured, skipping report notification")
        return None

    html_body, text_body = _report_email_bodies(summary, settings.REPORT_TITLE)
    payload: dict[str, Any] = {
        "from": f"{settings.RESEND_FROM_NAME} <{settings.RESEND_FROM_EMAIL}>",
        "to": [to_email],
        "subject": f"{settings.REPORT_TITLE} is ready",
        "html": html_body,
        "text": text_body,
    }

    with httpx.Client(timeout=15) as client:
        response = client.post(
            RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {settings.RESEND_API_KEY}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        response.raise_for_status()
        message_id = response.json().get("id", "")

    logger.info(f"Report notification sent, message_id={message_id}")
    return {"message_id": message_id, "status": "sent"}
