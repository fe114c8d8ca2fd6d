"""
Report Builder for the CRI Assessment Platform.

Joins the catalog with the session's responses and a fresh scoring pass
into flat report rows, and summarises those rows for the on-screen report.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Dict, Iterable, List

import pandas as pd

from cri_assessment.catalog import DiagnosticItem
from cri_assessment.scoring import CONFIDENCE_LEVELS, MAX_SCORE, ScoringStrategy, mock_ai_score
from cri_assessment.session_manager import AssessmentSession

NOT_ANSWERED = "Not answered"
NO_EVIDENCE = "None"

# Canonical report schema. Bump the version when columns change.
REPORT_SCHEMA_VERSION = "1"
REPORT_COLUMNS = ("ID", "Title", "Response", "Confidence", "Score", "Evidence")


@dataclass(frozen=True)
class ReportRow:
    id: str
    title: str
    response: str
    confidence: str
    score: int
    evidence: str

    @property
    def answered(self) -> bool:
        return self.response != NOT_ANSWERED

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class ReportSummary:
    """Totals shown above the report table."""
    total: int = 0
    answered: int = 0
    with_evidence: int = 0
    total_score: int = 0
    max_score: int = 0
    confidence_counts: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in CONFIDENCE_LEVELS})

    @property
    def average_score(self) -> float:
        return self.total_score / self.total if self.total else 0.0

    @property
    def percentage(self) -> float:
        return self.total_score / self.max_score * 100 if self.max_score else 0.0


def build_report(
    catalog: Iterable[DiagnosticItem],
    session: AssessmentSession,
    scorer: ScoringStrategy = mock_ai_score,
) -> List[ReportRow]:
    """One row per catalog item, in catalog order.

    Scores are recomputed from the (possibly defaulted) response text rather
    than read from the session's cache, so the export matches what is on
    screen when it is generated.
    """
    rows = []
    for item in catalog:
        response = session.response_for(item.id) or NOT_ANSWERED
        evidence = session.evidence_for(item.id) or NO_EVIDENCE
        result = scorer(response)
        rows.append(ReportRow(
            id=item.id,
            title=item.title,
            response=response,
            confidence=result.confidence,
            score=result.score,
            evidence=evidence,
        ))
    return rows


def summarize_report(rows: List[ReportRow]) -> ReportSummary:
    summary = ReportSummary(total=len(rows), max_score=MAX_SCORE * len(rows))
    for row in rows:
        summary.total_score += row.score
        summary.confidence_counts[row.confidence] = summary.confidence_counts.get(row.confidence, 0) + 1
        if row.answered:
            summary.answered += 1
        if row.evidence != NO_EVIDENCE:
            summary.with_evidence += 1
    return summary


def rows_to_dataframe(rows: List[ReportRow]) -> pd.DataFrame:
    """Report rows as a DataFrame with the canonical report columns."""
    data = [
        [r.id, r.title, r.response, r.confidence, r.score, r.evidence]
        for r in rows
    ]
    return pd.DataFrame(data, columns=list(REPORT_COLUMNS))
