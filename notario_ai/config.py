"""
Application configuration and logging setup.

Settings come from environment variables (and a local `.env` file). The API
key is read once at start-up and never rotated during a session.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


# ─── Limits ──────────────────────────────────────────────────────────

# Characters of transcript sent to the analysis model. Anything past this
# prefix is dropped before the request (the full text is kept locally).
DEFAULT_ANALYSIS_CHAR_LIMIT = 40_000

# Characters of transcript given to the research model as context.
DEFAULT_RESEARCH_CONTEXT_CHAR_LIMIT = 2_000

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"

    openai_api_key: str = ""
    openai_base_url: str | None = None
    openai_timeout_seconds: int = 120

    transcription_model: str = "gpt-4o"
    analysis_model: str = "gpt-4o"
    research_model: str = "gpt-4o-mini"

    analysis_char_limit: int = DEFAULT_ANALYSIS_CHAR_LIMIT
    research_context_char_limit: int = DEFAULT_RESEARCH_CONTEXT_CHAR_LIMIT
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()


def configure_logging(log_level: str) -> None:
    """Attach a stdout handler to the package logger at the given level."""
    logger = logging.getLogger("notario_ai")
    logger.setLevel(log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(handler)
