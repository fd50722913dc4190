from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when a required credential or setting is missing."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "LeadScout"
    debug: bool = False
    log_level: str = "INFO"

    llm_provider: str = "gemini"

    gemini_api_key: Optional[str] = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"

    openai_api_key: Optional[str] = None
    openai_api_base: str = "https://api.openai.com/v1"

    search_model: str = "gemini-2.5-flash"
    outreach_model: str = "gemini-2.5-flash"
    llm_timeout_seconds: float = 120.0

    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000

    search_first_batch_size: int = 5
    search_batch_size: int = 25
    search_exclusion_window: int = 50
    search_round_delay_seconds: float = 0.5

    cache_ttl_seconds: float = 30 * 60

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False


settings = Settings()
