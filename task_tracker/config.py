"""Configuration settings using Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    database_url: str = Field(default="sqlite:///data/tasks.db", description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")

    # Web Configuration
    secret_key: str = Field(default="change-me-in-production", description="Secret used to sign session cookies")
    app_host: str = Field(default="0.0.0.0", description="FastAPI host")
    app_port: int = Field(default=8000, description="FastAPI port")
    debug: bool = Field(default=False, description="Enable debug mode")
    environment: str = Field(default="development", description="Deployment environment name")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(default=Path("logs"), description="Directory for rotating log files")
    log_to_file: bool = Field(default=True, description="Write app.log and error.log under log_dir")


# Global settings instance
settings = Settings()
