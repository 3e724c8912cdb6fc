"""
Configuration management for the tutor stream core.

Centralizes all configuration using Pydantic settings with environment variable support.
Budget values (context capacity, reservation margin/floor, token ratio) are supplied
here per use site; the parsing and assembly code only enforces them.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./tutor.db",
        description="SQLAlchemy connection URL for the practice log store"
    )

    # LLM Configuration
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (required at runtime)"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model used for tutoring chat and answer assessment"
    )
    llm_max_retries: int = Field(
        default=3,
        description="Retries for rate-limited or timed-out LLM calls"
    )
    llm_timeout: int = Field(
        default=60,
        description="LLM request timeout in seconds"
    )
    chat_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for the streaming tutor chat"
    )
    chat_max_tokens: int = Field(
        default=600,
        description="Maximum completion tokens for one streamed tutor reply"
    )

    # Context Budgets
    chat_context_max_chars: int = Field(
        default=12_000,
        description="Hard cap on the CONTEXT block sent with a chat request"
    )
    practice_context_capacity: int = Field(
        default=11_500,
        description="Character capacity of the assembled practice context"
    )
    practice_log_reserve_margin: int = Field(
        default=500,
        description="Extra characters reserved on top of the practice history size"
    )
    practice_log_reserve_floor: int = Field(
        default=2_000,
        description="Minimum characters always reserved for the practice history"
    )
    chars_per_token: int = Field(
        default=4,
        ge=1,
        description="Estimated characters per model token"
    )
    document_char_budget: int = Field(
        default=180_000,
        description="Character cap when inlining source documents into a request"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


def validate_required_settings():
    """
    Validate that all required settings are present at runtime.

    Raises ValueError if required settings are missing or inconsistent.
    """
    settings = get_settings()

    if not settings.openai_api_key:
        raise ValueError(
            "OPENAI_API_KEY environment variable is required but not set. "
            "Please ensure the secret is configured in your environment."
        )

    if settings.practice_log_reserve_floor > settings.practice_context_capacity:
        raise ValueError(
            "PRACTICE_LOG_RESERVE_FLOOR cannot exceed PRACTICE_CONTEXT_CAPACITY"
        )

    return True
