"""
Configuration settings for NodeFlow.
"""

from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "NodeFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Engine diagnostics: "warn", "error" or "ignore"
    SUCCESSOR_OVERWRITE: Literal["warn", "error", "ignore"] = "warn"
    UNMATCHED_ACTION: Literal["warn", "error", "ignore"] = "warn"

    # Sample workflows
    GUESSING_MAX_TURNS: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
