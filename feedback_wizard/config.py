"""Application configuration"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Application
    environment: str = "development"
    cors_origins: list[str] = ["*"]

    # Wizard sessions idle for longer than this are dropped; 0 keeps them forever
    session_ttl_minutes: int = 60

    # Persistence
    persistence_backend: Literal["webhook", "supabase"] = "webhook"
    persistence_webhook_url: str = ""
    persist_timeout: float = 30.0

    # Supabase (persistence_backend=supabase)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    feedback_table: str = "feedback_submissions"

    # Sentiment analysis
    sentiment_backend: Literal["http", "mistral"] = "http"
    sentiment_url: str = ""
    mistral_api_key: str = ""
    mistral_model: str = "mistral-small-latest"
    analysis_timeout: float = 60.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
