# ==== APPLICATION SETTINGS CONFIGURATION ==== #

"""
Application settings configuration for Credit Gate.

This module provides centralized configuration management using Pydantic Settings
with environment variable loading and validation for the credit validation
service, its database connection and its observability stack.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


# ==== MAIN SETTINGS CLASS ==== #


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provides configuration for the database connection, read deadlines of the
    credit engine, logging and tracing, with validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

    # --► CORE APPLICATION SETTINGS
    APP_ENV: str = "dev"
    SERVICE_NAME: str = "credit-gate"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILES: bool = False
    LOG_DIR: str = "logs"

    # --► DATABASE CONFIGURATION
    DATABASE_URL: str
    DB_ECHO: bool = False

    # --► CREDIT ENGINE CONFIGURATION
    # Deadline for the concurrent reads of one validation; None disables it
    CREDIT_READ_TIMEOUT_SECONDS: float | None = 5.0
    CREDIT_POLICY_DEFAULTS_PATH: str | None = None

    # --► OBSERVABILITY CONFIGURATION
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_HEADERS: str | None = None
    OTEL_SERVICE_NAME: str | None = None
    OTEL_RESOURCE_ATTRIBUTES: str | None = None

    # --► HTTP CONFIGURATION
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # --► METRICS CONFIGURATION
    PROMETHEUS_SCRAPE_PATH: str = "/metrics"


# ==== GLOBAL SETTINGS INSTANCE ==== #


# Global settings instance for application-wide access
settings = Settings()


def get_settings() -> Settings:
    """
    Get global settings instance.

    Returns:
        Settings: Global application settings instance
    """
    return settings
