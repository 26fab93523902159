"""Data store construction from configuration."""

from crm_reports.common.config import DataStoreConfig
from crm_reports.common.logging import get_logger
from crm_reports.storage.interfaces import DataStore
from crm_reports.storage.rest_store import RestDataStore
from crm_reports.storage.sqlite_store import SQLiteDataStore

logger = get_logger(__name__)


def create_data_store(config: DataStoreConfig) -> DataStore:
    """Create the data store selected by ``config.backend``.

    A SQLite store is returned connected and migrated. A REST store must be
    entered with ``async with`` before use.

    Args:
        config: Data store configuration.

    Returns:
        Data store instance.

    Raises:
        ValueError: If the backend is unknown or misconfigured.
    """
    store: DataStore
    if config.backend == "sqlite":
        sqlite_store = SQLiteDataStore(config.path)
        sqlite_store.connect()
        sqlite_store.migrate()
        store = sqlite_store
    elif config.backend == "rest":
        store = RestDataStore(config)
    else:
        raise ValueError(f"Unknown data store backend: {config.backend}")

    logger.info("data_store_created", backend=store.backend_type)
    return store
