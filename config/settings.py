"""
Configuration management for the developer productivity tracker.

This module provides centralized configuration management with:
- Grouped settings for the Klaviyo API, the developer identity,
  the tracked repository and the tracker itself
- Type validation and defaults
- .env file support
- Startup validation of required credentials
"""

from functools import lru_cache
from typing import Optional, Dict, Any, List

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings import BaseSettings as PydanticBaseSettings


class ConfigurationError(Exception):
    """Raised when the configuration is not usable at startup."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))


class KlaviyoSettings(BaseSettings):
    """Klaviyo Events API configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="KLAVIYO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_key: Optional[SecretStr] = Field(default=None, description="Klaviyo private API key")
    base_url: str = Field(default="https://a.klaviyo.com", description="Klaviyo API base URL")
    revision: str = Field(default="2024-10-15", description="Klaviyo API revision header")
    timeout: float = Field(default=10.0, gt=0, description="HTTP request timeout in seconds")
    metric_prefix: str = Field(
        default="developer_productivity",
        validation_alias=AliasChoices("metric_prefix", "klaviyo_metric_prefix"),
        description="Namespace prepended to every metric name",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("Klaviyo URL must be HTTP/HTTPS")
        return v.rstrip("/")

    @field_validator("metric_prefix")
    @classmethod
    def validate_metric_prefix(cls, v):
        v = v.strip().strip(".")
        if not v:
            raise ValueError("Metric prefix cannot be empty")
        return v


class DeveloperSettings(BaseSettings):
    """Identity of the developer whose activity is tracked."""

    model_config = SettingsConfigDict(
        env_prefix="DEVELOPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    email: Optional[str] = Field(default=None, description="Developer email (Klaviyo profile)")
    name: Optional[str] = Field(default=None, description="Developer display name")

    @field_validator("email", "name")
    @classmethod
    def strip_blank(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


class RepositorySettings(BaseSettings):
    """Tracked repository configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="REPO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    path: str = Field(default=".", description="Path to the Git repository to watch")


class TrackerSettings(BaseSettings):
    """Polling, scheduling and persistence settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: str = Field(default="data", description="Directory holding the tracking file")
    data_file: str = Field(default="tracking-data.json", description="Tracking file name")
    poll_interval_seconds: int = Field(default=30, ge=1, description="Activity poll interval")
    summary_hour: int = Field(default=22, ge=0, le=23, description="Local hour of the daily summary")
    uncommitted_threshold: int = Field(
        default=5, ge=0, description="Modified file count above which a commit reminder is sent"
    )
    achievement_mode: str = Field(
        default="exact", description="Achievement trigger mode (exact/crossing)"
    )

    @field_validator("achievement_mode")
    @classmethod
    def validate_achievement_mode(cls, v):
        valid_modes = ["exact", "crossing"]
        if v.lower() not in valid_modes:
            raise ValueError(f"Achievement mode must be one of: {valid_modes}")
        return v.lower()


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="MONITORING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Logging format string",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class Settings(PydanticBaseSettings):
    """
    Main application settings.

    Each group reads its own environment prefix, so the variables used by
    earlier versions of the tracker keep working:
    - KLAVIYO_API_KEY
    - DEVELOPER_EMAIL / DEVELOPER_NAME
    - REPO_PATH
    - METRIC_PREFIX
    """

    app_name: str = Field(default="Developer Productivity Tracker", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")

    klaviyo: KlaviyoSettings = Field(default_factory=KlaviyoSettings)
    developer: DeveloperSettings = Field(default_factory=DeveloperSettings)
    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration object

    Example:
        >>> settings = get_settings()
        >>> print(settings.klaviyo.metric_prefix)
    """
    return Settings()


def validate_configuration(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Validate the settings needed to send events.

    Returns:
        Dict[str, Any]: Validation results with status, errors and warnings
    """
    settings = settings or get_settings()
    errors = []
    warnings = []

    api_key = settings.klaviyo.api_key
    if api_key is None or not api_key.get_secret_value().strip():
        errors.append("KLAVIYO_API_KEY is required")
    elif not api_key.get_secret_value().startswith("pk_"):
        warnings.append("KLAVIYO_API_KEY does not look like a Klaviyo private key (pk_...)")

    if not settings.developer.email:
        errors.append("DEVELOPER_EMAIL is required")
    elif "@" not in settings.developer.email:
        errors.append(f"DEVELOPER_EMAIL is not an email address: {settings.developer.email}")

    if not settings.developer.name:
        errors.append("DEVELOPER_NAME is required")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def require_valid_configuration(settings: Optional[Settings] = None) -> Settings:
    """Return the settings or raise ConfigurationError listing every problem."""
    settings = settings or get_settings()
    validation = validate_configuration(settings)
    if not validation["valid"]:
        raise ConfigurationError(validation["errors"])
    return settings


def export_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Export configuration for display.

    Returns:
        Dict[str, Any]: Configuration export (without the API key)
    """
    settings = settings or get_settings()
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "klaviyo": {
            "base_url": settings.klaviyo.base_url,
            "revision": settings.klaviyo.revision,
            "timeout": settings.klaviyo.timeout,
            "metric_prefix": settings.klaviyo.metric_prefix,
            "api_key_configured": settings.klaviyo.api_key is not None,
        },
        "developer": {
            "email": settings.developer.email,
            "name": settings.developer.name,
        },
        "repository": {"path": settings.repository.path},
        "tracker": {
            "data_dir": settings.tracker.data_dir,
            "data_file": settings.tracker.data_file,
            "poll_interval_seconds": settings.tracker.poll_interval_seconds,
            "summary_hour": settings.tracker.summary_hour,
            "uncommitted_threshold": settings.tracker.uncommitted_threshold,
            "achievement_mode": settings.tracker.achievement_mode,
        },
        "monitoring": {"log_level": settings.monitoring.log_level},
    }
