"""
Oracle Gas Tools Configuration Management

Reads settings from environment variables, with optional `.env` file support.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Oracle Gas Tools settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    # Tenderly
    tenderly_user: str = Field(default="", alias="TENDERLY_USER")
    tenderly_project: str = Field(default="", alias="TENDERLY_PROJECT")
    tenderly_access_key: str = Field(default="", alias="TENDERLY_ACCESS_KEY")
    tenderly_api_url: str = Field(
        default="https://api.tenderly.co/api/v1",
        alias="TENDERLY_API_URL"
    )
    tenderly_dashboard_url: str = Field(
        default="https://dashboard.tenderly.co",
        alias="TENDERLY_DASHBOARD_URL"
    )
    tenderly_http_timeout: float = Field(default=30.0, alias="TENDERLY_HTTP_TIMEOUT")

    # Coinbase oracle
    coinbase_api_key: str = Field(default="", alias="COINBASE_API_KEY")
    coinbase_api_secret: str = Field(default="", alias="COINBASE_API_SECRET")
    coinbase_api_passphrase: str = Field(default="", alias="COINBASE_API_PASSPHRASE")
    coinbase_api_url: str = Field(
        default="https://api.exchange.coinbase.com",
        alias="COINBASE_API_URL"
    )
    coinbase_cache_path: Path = Field(default=Path("data.json"), alias="COINBASE_CACHE_PATH")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def http_timeout(self) -> Optional[float]:
        """HTTP timeout in seconds, None when disabled"""
        return self.tenderly_http_timeout or None


class TenderlyEnvironment(BaseModel):
    """Resolved Tenderly account scope and credentials"""
    model_config = ConfigDict(frozen=True)

    user: str
    project: str
    api_key: str


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the cached settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Re-read settings from the environment"""
    global _settings
    _settings = Settings()
    return _settings


def resolve_environment(settings: Optional[Settings] = None) -> TenderlyEnvironment:
    """
    Resolve the Tenderly environment.

    Args:
        settings: settings to read from (defaults to the cached instance)

    Returns:
        TenderlyEnvironment: user, project and access key

    Raises:
        ConfigurationError: if any of the three values is unset or empty
    """
    settings = settings or get_settings()

    required = (
        ("TENDERLY_USER", settings.tenderly_user),
        ("TENDERLY_PROJECT", settings.tenderly_project),
        ("TENDERLY_ACCESS_KEY", settings.tenderly_access_key),
    )
    for name, value in required:
        if not value:
            raise ConfigurationError(f"{name} not set")

    return TenderlyEnvironment(
        user=settings.tenderly_user,
        project=settings.tenderly_project,
        api_key=settings.tenderly_access_key,
    )
