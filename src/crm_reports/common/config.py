"""Application configuration loading and models."""

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from crm_reports.reporting.config import ReportingConfig


class DataStoreConfig(BaseModel):
    """Data store configuration.

    ``sqlite`` reads from a local database file; ``rest`` talks to the hosted
    PostgREST-style backend.
    """

    backend: Literal["sqlite", "rest"] = "sqlite"

    # Local store
    path: str = "data/crm.db"

    # Hosted backend
    base_url: str = ""
    api_key: str = ""
    timeout_seconds: float = 30.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"  # "json" or "console"
    log_file: str | None = None


class AppConfig(BaseModel):
    """Root application configuration."""

    environment: str = Field(default="dev", description="Environment name (dev/prod)")
    data_store: DataStoreConfig = Field(default_factory=DataStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    reporting: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw reporting section, see ReportingConfig",
    )

    def reporting_config(self) -> "ReportingConfig":
        """Build the reporting configuration from the raw section."""
        from crm_reports.reporting.config import ReportingConfig

        return ReportingConfig.from_dict(self.reporting)


def load_config(config_path: str | Path) -> AppConfig:
    """Load configuration from a YAML file with environment variable overrides.

    The following env vars are checked (a ``.env`` file is loaded first):
    - CRM_REPORTS_DATA_STORE_URL: hosted backend base URL (switches backend to rest)
    - CRM_REPORTS_DATA_STORE_KEY: hosted backend API key
    - CRM_REPORTS_DB_PATH: local SQLite database path
    - CRM_REPORTS_LOG_LEVEL: log level

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Parsed AppConfig instance.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        pydantic.ValidationError: If the config file is invalid.
    """
    load_dotenv()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    _apply_env_overrides(raw_config)

    return AppConfig(**raw_config)


def _apply_env_overrides(config: dict[str, Any]) -> None:
    """Apply environment variable overrides to config dict.

    Args:
        config: Configuration dictionary to modify in place.
    """
    if "data_store" not in config:
        config["data_store"] = {}
    if "logging" not in config:
        config["logging"] = {}

    if base_url := os.environ.get("CRM_REPORTS_DATA_STORE_URL"):
        config["data_store"]["base_url"] = base_url
        config["data_store"]["backend"] = "rest"

    if api_key := os.environ.get("CRM_REPORTS_DATA_STORE_KEY"):
        config["data_store"]["api_key"] = api_key

    if db_path := os.environ.get("CRM_REPORTS_DB_PATH"):
        config["data_store"]["path"] = db_path

    if level := os.environ.get("CRM_REPORTS_LOG_LEVEL"):
        config["logging"]["level"] = level
