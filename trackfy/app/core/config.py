"""
Configuration settings for the Trackfy Tracking API.

This module handles application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Trackfy Tracking API"
    api_version: str = "v1"
    debug: bool = False
    log_level: str = "INFO"

    # Storage Configuration
    store_backend: str = "file"  # "file" or "sql"
    data_file: str = "data/tracking-codes.json"
    database_url: str = "sqlite+aiosqlite:///./trackfy.db"
    db_echo: bool = False

    # Redis Configuration (empty disables the shared sweep lease)
    redis_url: str = ""
    redis_decode_responses: bool = True

    # Simulation
    timezone: str = "America/Sao_Paulo"
    business_hours_start: int = 6
    business_hours_end: int = 20
    recent_window_minutes: int = 30

    # Retention
    retention_days: int = 30
    cleanup_enabled: bool = True
    cleanup_initial_delay_seconds: float = 5
    cleanup_interval_seconds: float = 24 * 60 * 60
    cleanup_lock_ttl_seconds: int = 300

    class Config:
        env_file = ".env"
        env_prefix = "TRACKFY_"
        case_sensitive = False


settings = Settings()
