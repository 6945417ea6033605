"""STRATA — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── GA4 (live provider) ──
    ga4_property_id: str = ""
    ga_service_account_key: str = ""  # Full service-account JSON
    ga4_access_token: Optional[str] = None  # Static bearer token, skips key exchange
    ga4_base_url: str = "https://analyticsdata.googleapis.com/v1beta"
    ga4_start_date: str = "2024-06-01"  # Cutover: first day tracked by GA4

    # ── Live provider resilience ──
    live_timeout_seconds: float = 30.0
    live_max_retries: int = 3
    live_retry_base_delay: float = 1.0  # seconds, multiplied by attempt number

    # ── Historical store ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    default_top_limit: int = 10
    geographic_limit: int = 20

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/strata.db"
        return "sqlite:///./strata.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
