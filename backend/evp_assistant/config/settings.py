"""
Configuration Settings.
"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # App info
    app_name: str = "EVP Clinical Assistant"
    app_version: str = "1.0.0"
    debug: bool = False  # also exposes truncated stack traces in 500 responses

    # Provider (assistants API + chat completions)
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_request_timeout: float = 60.0

    # Follow-up question generation
    follow_up_model: str = "gpt-4o-mini"
    follow_up_max_tokens: int = 200
    follow_up_temperature: float = 0.7

    # Run polling
    run_poll_interval: float = 1.0  # seconds
    run_poll_timeout: Optional[float] = 300.0  # seconds, None disables the bound
    run_max_poll_attempts: Optional[int] = 600  # None disables the bound

    # Logs endpoint
    qa_logs_secret: Optional[str] = None

    # Persistence
    database_url: str = "sqlite:///./data/evp_assistant.db"
    database_auto_init: bool = False
    persistence_failure_policy: Literal["log", "raise"] = "log"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/evp_assistant.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses


settings = Settings()
