"""
Application Settings for Swift Assistant

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Speech-to-text and chat completion both speak the OpenAI wire protocol,
    so either OpenAI or an OpenAI-compatible host (Groq) can be configured
    through the *_BASE_URL variables.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    app_url: str = "http://localhost:3000"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Supabase Auth (JWT verification only)
    supabase_url: str = "http://localhost:54321"
    supabase_jwt_secret: Optional[str] = None

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id: Optional[str] = None
    subscription_price_cents: int = 900

    # Speech-to-text (OpenAI-compatible)
    stt_api_key: Optional[str] = None
    stt_base_url: Optional[str] = "https://api.groq.com/openai/v1"
    stt_model: str = "whisper-large-v3"

    # Chat completion (OpenAI-compatible)
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = "https://api.groq.com/openai/v1"
    llm_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"

    # Text-to-speech (Cartesia)
    cartesia_api_key: Optional[str] = None
    cartesia_base_url: str = "https://api.cartesia.ai"
    cartesia_version: str = "2024-06-30"
    cartesia_model_id: str = "sonic-english"
    cartesia_voice_id: str = "79a125e8-cd45-4c13-8a67-188112f4dd22"
    cartesia_sample_rate: int = 24000
    provider_timeout_seconds: float = 30.0

    # Telegram admin notifications
    telegram_admin_bot_token: Optional[str] = None
    telegram_admin_user_id: Optional[str] = None
    telegram_api_base: str = "https://api.telegram.org"

    # Admission / paywall
    daily_interaction_limit: int = 10
    paywall_enabled: bool = False
    allow_anonymous_interactions: bool = True
    limit_audio_path: Optional[str] = "assets/limit_reached.pcm"
    limit_message: str = (
        "You have reached your daily limit of conversations. "
        "Please come back tomorrow."
    )

    # Feedback prompt window (total interactions)
    feedback_prompt_min_interactions: int = 3
    feedback_prompt_max_interactions: int = 10

    # Admin API
    admin_api_key: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would make the admission gate meaningless."""
        if self.daily_interaction_limit < 1:
            raise ValueError("DAILY_INTERACTION_LIMIT must be at least 1")

        if self.feedback_prompt_min_interactions > self.feedback_prompt_max_interactions:
            raise ValueError(
                "FEEDBACK_PROMPT_MIN_INTERACTIONS cannot exceed FEEDBACK_PROMPT_MAX_INTERACTIONS"
            )

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def telegram_enabled(self) -> bool:
        """Admin notifications need both a bot token and a destination chat."""
        return bool(self.telegram_admin_bot_token and self.telegram_admin_user_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
