"""
Configuration management for UI Watch.

Uses Pydantic Settings for environment variable validation and type safety.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uiwatch.change_monitor.models import (
    MajorThresholds,
    MinorThresholds,
    ThresholdConfig,
)


class MajorThresholdSettings(BaseSettings):
    """Default major-change thresholds for new detectors."""

    model_config = SettingsConfigDict(
        env_prefix="UIWATCH_MAJOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    element_delta: float = Field(
        default=100,
        description="Element count change that counts as major"
    )
    dialog_delta: float = Field(
        default=1,
        description="Dialog count threshold"
    )
    overlay_delta: float = Field(
        default=1,
        description="Overlay count threshold"
    )
    form_delta: float = Field(
        default=1,
        description="Form count change that counts as major"
    )
    z_index_delta: float = Field(
        default=500,
        description="Max z-index increase that counts as major"
    )
    viewport_delta: float = Field(
        default=30,
        description="Viewport height change (percent) that counts as major"
    )


class MinorThresholdSettings(BaseSettings):
    """Default minor-change thresholds for new detectors."""

    model_config = SettingsConfigDict(
        env_prefix="UIWATCH_MINOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    element_delta: float = Field(
        default=20,
        description="Element count change that counts as minor"
    )
    viewport_delta: float = Field(
        default=5,
        description="Visible element change (percent) that counts as minor"
    )


class ApiConfig(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UIWATCH_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind"
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port to listen on"
    )
    reload: bool = Field(
        default=False,
        description="Enable uvicorn auto-reload (development only)"
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UIWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    include_details: bool = Field(
        default=True,
        description="Append the full JSON result to formatted detection output"
    )

    # Nested configurations
    major: MajorThresholdSettings = Field(default_factory=MajorThresholdSettings)
    minor: MinorThresholdSettings = Field(default_factory=MinorThresholdSettings)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v

    def thresholds(self) -> ThresholdConfig:
        """Build the default detector thresholds from settings."""
        return ThresholdConfig(
            major=MajorThresholds(**self.major.model_dump()),
            minor=MinorThresholds(**self.minor.model_dump()),
        )


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance.

    Lazily loads configuration on first access.

    Returns:
        AppConfig: The global configuration instance
    """
    global _config
    if _config is None:
        _config = AppConfig(
            major=MajorThresholdSettings(),
            minor=MinorThresholdSettings(),
            api=ApiConfig(),
        )
    return _config


def reload_config() -> AppConfig:
    """
    Reload configuration from environment variables.

    Useful for testing or when environment changes.

    Returns:
        AppConfig: The reloaded configuration instance
    """
    global _config
    _config = None
    return get_config()
