"""Common utilities: config, logging, time."""

from crm_reports.common.config import (
    AppConfig,
    DataStoreConfig,
    LoggingConfig,
    load_config,
)
from crm_reports.common.logging import get_logger, log_context, setup_logging
from crm_reports.common.time_utils import coerce_datetime, parse_iso, utc_now

__all__ = [
    "AppConfig",
    "DataStoreConfig",
    "LoggingConfig",
    "load_config",
    "setup_logging",
    "get_logger",
    "log_context",
    "utc_now",
    "parse_iso",
    "coerce_datetime",
]
