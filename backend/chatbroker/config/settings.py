"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "AI Chat Interface API"
    app_version: str = "1.0.0"
    debug: bool = True
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 5000

    # Database
    database_url: str = "sqlite+aiosqlite:///./chatbroker.db"
    database_echo: bool = False

    # Provider keys used when no key is stored in the database
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Rate limiting (fixed window per client IP)
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 15 * 60 * 1000  # 15 minutes
    rate_limit_max_requests: int = 100

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/chatbroker.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
