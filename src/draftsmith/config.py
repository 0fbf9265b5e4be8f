"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `DRAFTSMITH_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Draftsmith settings.

    All fields are environment-configurable. Prefix is `DRAFTSMITH_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAFTSMITH_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Completion service (OpenAI-compatible chat completions endpoint)
    llm_api_key: str | None = Field(default=None)
    llm_base_url: str = Field(default="https://openrouter.ai/api/v1")
    llm_model: str = Field(default="openai/gpt-4.1-mini")
    llm_fallback_model: str = Field(default="openai/gpt-4o-mini")
    llm_referer: str | None = Field(default=None)
    llm_app_title: str = Field(default="Draftsmith")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Timeouts (seconds); every call is aborted once its budget is spent
    outline_timeout_s: float = Field(default=45.0, ge=1.0, le=600.0)
    backfill_timeout_s: float = Field(default=30.0, ge=1.0, le=600.0)
    enrich_timeout_s: float = Field(default=35.0, ge=1.0, le=600.0)
    draft_timeout_s: float = Field(default=180.0, ge=1.0, le=600.0)

    # Token ceilings
    draft_max_tokens_cap: int = Field(default=8000, ge=256, le=32000)
    adjust_max_tokens_cap: int = Field(default=3000, ge=256, le=32000)
    continuation_max_tokens_cap: int = Field(default=6000, ge=256, le=32000)
    intro_adjust_max_tokens: int = Field(default=600, ge=64, le=8000)

    # Synthesizer policy
    repair_max_iterations: int = Field(default=2, ge=0, le=5)
    max_continuations: int = Field(default=2, ge=0, le=5)
    legacy_fallback_enabled: bool = Field(default=True)
    # When candidate sources are supplied but none verifies, block non-introduction drafts.
    require_verified_sources: bool = Field(default=True)


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("DRAFTSMITH_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
