"""Pytest configuration and fixtures."""

import os
from datetime import datetime

import pytest

# Required settings must exist before any module resolves them
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-key")
os.environ.setdefault("CRI_ENV", "test")

from cri_assessment.catalog import Catalog, DiagnosticItem  # noqa: E402
from cri_assessment.config import get_settings  # noqa: E402
from cri_assessment.session_manager import AssessmentSession  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Settings are cached; tests that change the environment need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sample_catalog():
    """Small catalog spanning tiers and tags."""
    return Catalog(
        items=[
            DiagnosticItem(id="CRI-01", title="Asset Inventory", tiers=frozenset({1}), tags=("Identify",)),
            DiagnosticItem(id="CRI-02", title="Access Controls", tiers=frozenset({1, 2}), tags=("Protect",)),
            DiagnosticItem(id="CRI-03", title="Threat Intelligence", tiers=frozenset({2}), tags=("Detect",)),
            DiagnosticItem(id="CRI-04", title="Incident Response", tiers=frozenset({3}), tags=("Respond", "Protect")),
            DiagnosticItem(id="CRI-05", title="Third Party Risk", tiers=frozenset({4}), tags=()),
        ],
        tags=["Identify", "Protect", "Detect", "Respond"],
    )


@pytest.fixture
def assessment_session():
    now = datetime.now().isoformat()
    return AssessmentSession(session_id="test-session", created_at=now, last_accessed=now)
