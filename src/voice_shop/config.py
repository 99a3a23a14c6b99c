"""Runtime configuration for the voice shopping assistant."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="VOICE_SHOP_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "voice-shop"
    log_level: str = "INFO"

    ai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VOICE_SHOP_AI_API_KEY", "GEMINI_API_KEY"),
        description="Key for the AI intent endpoint. Without it only the fast path and fallback run.",
    )
    ai_endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    ai_model: str = "gemini-1.5-pro"
    ai_api_key_header: str = Field(
        default="x-goog-api-key",
        description="Header carrying the key; 'Authorization' sends it as a bearer token.",
    )
    ai_timeout_seconds: float = 15.0
    ai_temperature: float = 0.3
    ai_max_output_tokens: int = 1024
    history_window: int = Field(default=3, ge=3, le=5)

    stt_language: str = "en-US"
    stt_continuous: bool = False
    stt_interim_results: bool = False
    stt_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    stt_phrase_time_limit: float = 6.0

    tts_engine: str = "auto"
    tts_voice: str | None = None
    tts_rate: float = 1.0
    tts_pitch: float = 1.0
    tts_volume: float = 1.0

    history_limit: int = 10
    execution_confidence_threshold: float = 0.5
    confirmation_confidence_threshold: float = 0.8
    error_reset_seconds: float = 5.0

    cart_path: str | None = Field(default=None, description="JSON file backing the cart store.")
    voice_enabled: bool = True


settings = Settings()
