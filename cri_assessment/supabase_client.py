"""Supabase client for the assessment backend.

The app only ever acts as the public (anon) role: it reads the diagnostic
catalog, upserts responses, archives reports and writes to the evidence
bucket, all under the project's row-level security policies.
"""

from functools import lru_cache
from urllib.parse import urlparse

from supabase import Client, create_client

from cri_assessment.config import get_settings
from cri_assessment.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get the shared Supabase client.

    Returns:
        Client authenticated with the project anon key

    Raises:
        RuntimeError: If settings are missing or client initialization fails;
            the assessment app does not start without a backend
    """
    try:
        settings = get_settings()
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e

    logger.info(f"Connected to Supabase project {urlparse(settings.SUPABASE_URL).netloc}")
    return client
