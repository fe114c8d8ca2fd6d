"""Bar chart of the score given to each diagnostic."""

from __future__ import annotations

import base64
import io
from typing import List

import matplotlib

matplotlib.use("Agg")  # Use non-interactive backend for server
import matplotlib.pyplot as plt

from cri_assessment.report_builder import ReportRow
from cri_assessment.scoring import MAX_SCORE

BAR_COLOR = "#006699"


def score_chart_png(rows: List[ReportRow]) -> bytes:
    """Render score per diagnostic title as a PNG image."""
    fig, ax = plt.subplots(figsize=(max(6, len(rows) * 0.6), 4))
    try:
        ax.bar([r.title for r in rows], [r.score for r in rows], color=BAR_COLOR)
        ax.set_ylim(0, MAX_SCORE)
        ax.set_yticks(range(MAX_SCORE + 1))
        ax.set_ylabel("AI Score")
        ax.tick_params(axis="x", labelrotation=45, labelsize=8)
        for label in ax.get_xticklabels():
            label.set_horizontalalignment("right")
        buf = io.BytesIO()
        fig.savefig(buf, format="png", bbox_inches="tight")
    finally:
        plt.close(fig)
    return buf.getvalue()


def score_chart_base64(rows: List[ReportRow]) -> str:
    """PNG chart encoded for an inline ``data:`` URI."""
    return base64.b64encode(score_chart_png(rows)).decode("utf-8")
