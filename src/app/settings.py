"""Configuration helpers for the review scheduler runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_LOCAL_STORAGE_URL = "sqlite+aiosqlite:///./local_storage.db"
DEFAULT_PACING_MS = 300


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    local_storage_url: str
    review_pacing_ms: int

    @property
    def review_pacing_delay(self) -> float:
        """Pause between a rating and the next card, in seconds."""
        return self.review_pacing_ms / 1000

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Deck Review Scheduler")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        local_storage_url = os.getenv("LOCAL_STORAGE_URL", DEFAULT_LOCAL_STORAGE_URL)

        if not local_storage_url.strip():
            raise RuntimeError("LOCAL_STORAGE_URL must not be empty.")

        try:
            review_pacing_ms = int(os.getenv("REVIEW_PACING_MS", str(DEFAULT_PACING_MS)))
        except ValueError as exc:
            raise RuntimeError("REVIEW_PACING_MS must be an integer.") from exc

        if review_pacing_ms < 0:
            raise RuntimeError("REVIEW_PACING_MS must not be negative.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            local_storage_url=local_storage_url,
            review_pacing_ms=review_pacing_ms,
        )
