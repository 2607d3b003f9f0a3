"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.timing import DelayRange, ReplyTiming


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    telegram_bot_token: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    telegram_bot_username: str = Field(..., alias="TELEGRAM_BOT_USERNAME")
    telegram_api_base_url: str = Field(
        default="https://api.telegram.org",
        alias="TELEGRAM_API_BASE_URL",
    )
    telegram_poll_timeout_seconds: int = Field(default=30, alias="TELEGRAM_POLL_TIMEOUT_SECONDS")
    openrouter_api_key: str = Field(..., alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(..., alias="OPENROUTER_MODEL")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    database_path: Path = Field(default=Path("relay.db"), alias="DATABASE_PATH")
    # Comma-separated sticker set names the model may pick stickers from.
    sticker_sets: str = Field(default="", alias="STICKER_SETS")
    google_api_key: str = Field(default="", alias="GOOGLE_API_KEY")
    custom_search_engine_id: str = Field(default="", alias="CUSTOM_SEARCH_ENGINE_ID")
    staleness_default_seconds: int = Field(default=60, alias="STALENESS_DEFAULT_SECONDS")
    staleness_business_seconds: int = Field(default=15 * 60, alias="STALENESS_BUSINESS_SECONDS")
    delay_idle_min_ms: int = Field(default=60_000, alias="DELAY_IDLE_MIN_MS")
    delay_idle_max_ms: int = Field(default=600_000, alias="DELAY_IDLE_MAX_MS")
    delay_read_min_ms: int = Field(default=5_000, alias="DELAY_READ_MIN_MS")
    delay_read_max_ms: int = Field(default=15_000, alias="DELAY_READ_MAX_MS")
    delay_typing_min_ms: int = Field(default=2_000, alias="DELAY_TYPING_MIN_MS")
    delay_typing_max_ms: int = Field(default=5_000, alias="DELAY_TYPING_MAX_MS")
    alarm_poll_interval_seconds: float = Field(default=1.0, alias="ALARM_POLL_INTERVAL_SECONDS")
    demo_prompts_path: Path | None = Field(default=None, alias="DEMO_PROMPTS_PATH")
    force_business: bool = Field(default=False, alias="FORCE_BUSINESS")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def sticker_set_names(settings: Settings) -> list[str]:
    """Return the configured sticker set names, skipping blanks."""

    return [name.strip() for name in settings.sticker_sets.split(",") if name.strip()]


def secret_values(settings: Settings) -> list[str]:
    """Return configured credentials that must never reach a chat."""

    candidates = [
        settings.telegram_bot_token,
        settings.openrouter_api_key,
        settings.google_api_key,
        settings.custom_search_engine_id,
    ]
    return [value for value in candidates if value]


def timing_from_settings(settings: Settings) -> ReplyTiming:
    return ReplyTiming(
        idle=DelayRange(settings.delay_idle_min_ms, settings.delay_idle_max_ms),
        read=DelayRange(settings.delay_read_min_ms, settings.delay_read_max_ms),
        typing=DelayRange(settings.delay_typing_min_ms, settings.delay_typing_max_ms),
        staleness_default_seconds=settings.staleness_default_seconds,
        staleness_business_seconds=settings.staleness_business_seconds,
    )
