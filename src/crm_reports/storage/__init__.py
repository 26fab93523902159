"""Read-only data stores for report queries."""

from crm_reports.storage.factory import create_data_store
from crm_reports.storage.interfaces import DataStore, DataStoreError, DataStoreQuery
from crm_reports.storage.rest_store import RestDataStore
from crm_reports.storage.sqlite_store import SQLiteDataStore

__all__ = [
    "DataStore",
    "DataStoreError",
    "DataStoreQuery",
    "RestDataStore",
    "SQLiteDataStore",
    "create_data_store",
]
