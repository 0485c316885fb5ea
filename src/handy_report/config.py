"""Application configuration."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "medium"
    openai_store: bool = False
    openai_retry_attempts: int = 1
    prompt_pill_count: int = 4
    highlight_dwell_seconds: float = 3.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("openai_retry_attempts")
    @classmethod
    def retries_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("openai_retry_attempts must be zero or more")
        return v

    @field_validator("prompt_pill_count")
    @classmethod
    def pill_count_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("prompt_pill_count must be at least 1")
        return v

    @field_validator("highlight_dwell_seconds")
    @classmethod
    def dwell_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("highlight_dwell_seconds must be positive")
        return v
