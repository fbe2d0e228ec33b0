"""Configuration settings for the Coach Orchestrator service."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings


# __file__ = src/coach_orchestrator/config.py
# .parent.parent.parent = repository root
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:19006", "http://127.0.0.1:8081"]
    cors_methods: list[str] = ["POST", "OPTIONS"]
    cors_headers: list[str] = ["authorization", "x-client-info", "apikey", "content-type"]

    # LLM provider
    openai_api_key: str = ""
    llm_model: str = "gpt-4o"
    llm_max_tokens: int = 2048
    llm_temperature: float = 0.7

    # Supabase (data store + auth)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Intervals.icu gateway
    intervals_base_url: str = "https://intervals.icu/api/v1"
    intervals_timeout_seconds: float = 30.0

    # Fernet key for stored upstream credentials
    credential_encryption_key: str = ""

    # Whole-request deadline; covers up to five sequential provider round trips
    orchestrator_timeout_seconds: float = 150.0

    # Langfuse tracing; enabled only when both keys are set
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_host: str = "https://cloud.langfuse.com"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_orchestrator: str = "10/minute"

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
