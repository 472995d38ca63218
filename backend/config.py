"""
Configuration management for PRD Wizard.
Uses pydantic-settings for environment variable handling.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "PRD Wizard"
    app_version: str = "0.1.0"
    debug: bool = False

    # LLM Configuration
    openai_api_key: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai_key: Optional[str] = None
    azure_openai_deployment: Optional[str] = None
    groq_api_key: Optional[str] = None

    # LLM Settings
    llm_mode: str = "real"  # "mock" or "real"
    llm_provider: str = "groq"  # "openai", "azure", or "groq"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 3000

    # Extraction runs cooler than questioning
    extraction_temperature: float = 0.3
    extraction_max_tokens: int = 4096

    # Retry / degradation
    llm_max_attempts: int = 3
    llm_timeout_seconds: float = 60.0
    llm_rate_limit_delay_seconds: float = 5.0  # fixed, not exponential
    llm_backoff_base_seconds: float = 1.0
    llm_backoff_jitter_seconds: float = 0.5

    # Questioning
    max_questions_per_round: int = 2
    token_warning_threshold: int = 12000

    # Audit
    audit_log_path: str = "./audit_logs"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
