"""Configuration management."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file if it exists
load_dotenv()

# Environment variables holding provider credentials, keyed by provider name
API_KEY_ENV_VARS: dict[str, str] = {
    "alphavantage": "ALPHAVANTAGE_API_KEY",
    "finnhub": "FINNHUB_API_KEY",
}


class ProviderConfig(BaseModel):
    """Configuration for the upstream quote/series providers."""

    timeout: float = Field(default=10.0, description="Per-call timeout in seconds")
    alphavantage_base_url: str = Field(default="https://www.alphavantage.co/query")
    finnhub_base_url: str = Field(default="https://finnhub.io/api/v1")
    rate_limit_cooldown_seconds: int = Field(
        default=60, description="Cooldown applied when a provider signals a limit without a reset time"
    )
    top_movers_limit: int = Field(default=10, description="Max entries returned by top movers")
    series_limit: int = Field(default=100, description="Max points returned by series queries")


class StorageConfig(BaseModel):
    """Configuration for dashboard persistence."""

    path: str = Field(default="data/finboard.db", description="SQLite file backing the key-value store")
    key: str = Field(default="finboard-dashboard", description="Key the dashboard snapshot is stored under")


class SchedulerConfig(BaseModel):
    """Configuration for widget polling."""

    min_refresh_interval: int = Field(default=5, ge=5, description="Smallest refresh interval accepted on edit (at least 5)")
    default_refresh_interval: int = Field(default=30)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO")


class Settings(BaseModel):
    """Main settings container."""

    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    default_provider: str = Field(default="alphavantage", description="Provider used for new widgets")

    def env_api_keys(self) -> dict[str, str]:
        """Return provider credentials found in the environment."""
        keys = {}
        for provider, env_var in API_KEY_ENV_VARS.items():
            value = os.environ.get(env_var, "").strip()
            if value:
                keys[provider] = value
        return keys


def load_settings(config_path: Path | str | None = None) -> Settings:
    """
    Load settings from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config/settings.yaml

    Returns:
        Settings object with validated configuration
    """
    if config_path is None:
        config_path = Path.cwd() / "config" / "settings.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        # Return defaults if no config file
        return Settings()

    with open(config_path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(**data)


# Global settings instance (lazy loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
