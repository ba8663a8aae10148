"""Configuration management for the payroll desk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    api_base_url: str
    request_timeout: float
    created_by_user_id: int
    reconcile_delay_seconds: float
    log_level: str

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            api_base_url=os.getenv("HRMS_API_URL", "http://localhost:5000/api").rstrip("/"),
            request_timeout=float(os.getenv("HRMS_API_TIMEOUT", "10")),
            created_by_user_id=int(os.getenv("HRMS_CREATED_BY_USER_ID", "1")),
            reconcile_delay_seconds=float(os.getenv("HRMS_RECONCILE_DELAY", "1.5")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
