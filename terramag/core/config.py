"""
Application Configuration

This module provides centralized configuration management using Pydantic Settings.
Configuration can be loaded from environment variables or .env files.
"""

from typing import Optional, List
from pathlib import Path
from functools import lru_cache
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_FILE = str(PROJECT_ROOT / ".env")


def _group_config(prefix: str) -> SettingsConfigDict:
    """Prefixed settings group reading the same .env file as Settings"""
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore"
    )


class DatabaseSettings(BaseSettings):
    """Database configuration"""
    url: str = Field(
        default=f"sqlite:///{PROJECT_ROOT}/data/database/magnetic_survey.db",
        description="Database connection URL"
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=5, description="Connection pool size")

    model_config = _group_config("DATABASE_")


class APISettings(BaseSettings):
    """API server configuration"""
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=8000, description="API port")
    reload: bool = Field(default=False, description="Auto-reload on changes")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = _group_config("API_")

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v


class ExportSettings(BaseSettings):
    """Export configuration"""
    directory: str = Field(
        default=str(PROJECT_ROOT / "data" / "exports"),
        description="Export directory"
    )
    software_tag: str = Field(
        default="TerraMag Field v1.0",
        description="Software tag written into export metadata"
    )
    filesystem_available: bool = Field(
        default=True,
        description="Whether the runtime can read and copy local files"
    )

    model_config = _group_config("EXPORT_")


class QualitySettings(BaseSettings):
    """Plausible total-field range (uT) for the GOOD/POOR quality flag"""
    min_field: float = Field(default=20.0, description="Lower bound (exclusive) in uT")
    max_field: float = Field(default=70.0, description="Upper bound (exclusive) in uT")

    model_config = _group_config("QUALITY_")

    @model_validator(mode='after')
    def check_range(self):
        if self.max_field <= self.min_field:
            raise ValueError('max_field must be greater than min_field')
        return self

    def is_good(self, total_field: float) -> bool:
        """Check a total-field value against the plausible range"""
        return self.min_field < total_field < self.max_field


class AnalysisSettings(BaseSettings):
    """Anomaly detection configuration"""
    min_readings: int = Field(default=10, ge=1, description="Minimum readings for anomaly detection")
    threshold_sigma: float = Field(default=2.0, gt=0, description="Deviation threshold in std-devs")
    high_sigma: float = Field(default=3.0, gt=0, description="High severity threshold in std-devs")
    display_limit: int = Field(default=20, ge=1, description="Anomalies shown to the user")

    model_config = _group_config("ANALYSIS_")


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} - {name} - {level} - {message}",
        description="Log format"
    )
    file: Optional[str] = Field(
        default=str(PROJECT_ROOT / "logs" / "terramag.log"),
        description="Log file path"
    )

    model_config = _group_config("LOG_")


class Settings(BaseSettings):
    """Main application settings"""

    # Application info
    app_name: str = Field(default="TerraMag Survey API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: APISettings = Field(default_factory=APISettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    quality: QualitySettings = Field(default_factory=QualitySettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings instance (cached)
    """
    return Settings()


# Convenience access to settings
settings = get_settings()
