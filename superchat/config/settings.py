"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "SuperChat"
    app_version: str = "1.0.0"
    debug: bool = True

    # Completion service
    llm_base_url: str = "https://api.llm7.io/v1"
    llm_default_model: str = "deepseek-r1-0528"
    llm_default_temperature: float = 0.7
    llm_timeout: float = 120.0
    llm_credential: Optional[str] = None  # sent as "unused" when empty
    refresh_models_on_startup: bool = True

    # Title synthesis
    title_model: str = "gpt-4o-mini"  # cheap model, titles only
    title_temperature: float = 0.3
    title_max_tokens: int = 20
    title_debounce_ms: int = 2000

    # Session history
    autosave_debounce_ms: int = 1000
    max_sessions: int = 50

    # Storage
    storage_type: str = "local"  # local, memory
    local_storage_path: str = "./data"
    storage_key: str = "superchat-storage"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/superchat.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
