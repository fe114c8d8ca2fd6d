"""Scoring of assessment responses: a score from 0 to 3 plus a confidence label."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

# Confidence labels attached to a score, lowest first
CONFIDENCE_LEVELS = ["Low", "Medium", "High"]

MAX_SCORE = 3

# Phrases that signal a well-described control. Matched case-sensitively.
HIGH_SIGNAL_KEYWORDS = ("least privilege", "inventory")

# Responses longer than this are treated as a substantive description
DETAILED_RESPONSE_LENGTH = 40


@dataclass(frozen=True)
class ScoreResult:
    """Score (0-3) and confidence label computed for one response."""
    score: int
    confidence: str

    def as_dict(self) -> dict:
        return {"score": self.score, "confidence": self.confidence}


class ScoringStrategy(Protocol):
    """Anything that turns a response text into a ScoreResult."""

    def __call__(self, response_text: Optional[str]) -> ScoreResult:
        ...


def mock_ai_score(response_text: Optional[str]) -> ScoreResult:
    """Placeholder for an AI scoring service.

    Keyword matches win over length, whatever the length of the text.
    """
    if not response_text:
        return ScoreResult(0, "Low")
    if any(k in response_text for k in HIGH_SIGNAL_KEYWORDS):
        return ScoreResult(3, "High")
    if len(response_text) > DETAILED_RESPONSE_LENGTH:
        return ScoreResult(2, "Medium")
    return ScoreResult(1, "Low")
