"""Configuration management for the CRI Assessment Platform."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_ANON_KEY: str = Field(..., description="Supabase anon key")

    # Environment
    CRI_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    FLASK_SECRET_KEY: str = Field(
        default="dev-key-change-in-production", description="Flask session signing key"
    )

    # Remote tables and buckets
    DIAGNOSTICS_TABLE: str = Field(
        default="diagnosticstatements", description="Table holding the diagnostic catalog"
    )
    RESPONSE_KEYS_TABLE: str = Field(default="response_keys", description="Categorical answer labels")
    TAGS_TABLE: str = Field(default="tags", description="Tag names used for filtering")
    RESPONSES_TABLE: str = Field(
        default="assessment_responses", description="Upsert target for responses"
    )
    REPORTS_TABLE: str = Field(default="reports", description="Archive of generated reports")
    EVIDENCE_BUCKET: str = Field(default="evidence", description="Storage bucket for evidence files")

    # Assessment behaviour
    PAGE_SIZE: int = Field(default=10, description="Diagnostics shown per page")
    SAVE_DEBOUNCE_SECONDS: float = Field(
        default=2.0, description="Quiet period before a response edit is persisted"
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=10_000_000, description="Max evidence file size in bytes"
    )
    REPORT_TITLE: str = Field(
        default="CREAM Assessment Report", description="Heading of the exported PDF report"
    )

    # Session storage
    SESSION_DIR: str = Field(default="sessions", description="Directory for session JSON files")
    SESSION_TIMEOUT_HOURS: int = Field(default=24, description="Idle session lifetime")

    # Email notification (optional)
    RESEND_API_KEY: str | None = Field(default=None, description="Resend API key")
    RESEND_FROM_EMAIL: str = Field(
        default="assessments@example.com", description="Sender address for notifications"
    )
    RESEND_FROM_NAME: str = Field(default="CREAM Assessments", description="Sender display name")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
