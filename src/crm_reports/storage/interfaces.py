"""Data store interface used by the report executor.

The executor never builds backend-specific queries. It describes what it wants
as a DataStoreQuery and hands it to whichever DataStore is configured:
- SQLiteDataStore: local database file
- RestDataStore: PostgREST-style hosted backend
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from crm_reports.query.model import FilterPredicate, SortKey


class DataStoreError(Exception):
    """Error raised when a data store cannot answer a query."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message


@dataclass
class DataStoreQuery:
    """A read-only, bounded query against one relation.

    Attributes:
        table: Table or view to read.
        columns: Columns to return, in order.
        filters: Predicates that must all hold. Fields are already validated.
        order_by: Sort keys, primary first.
        limit: Maximum number of rows.
        tenant_id: Tenant whose rows are visible (None for unscoped reads).
        tenant_column: Column holding the tenant id.
    """

    table: str
    columns: list[str]
    filters: list[FilterPredicate] = field(default_factory=list)
    order_by: list[SortKey] = field(default_factory=list)
    limit: int = 100
    tenant_id: str | None = None
    tenant_column: str = "tenant_id"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "table": self.table,
            "columns": list(self.columns),
            "filters": [f.to_dict() for f in self.filters],
            "order_by": [s.to_dict() for s in self.order_by],
            "limit": self.limit,
            "tenant_id": self.tenant_id,
        }


class DataStore(ABC):
    """Abstract read-only data store."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Short name of the backend (e.g. "sqlite", "rest")."""
        pass

    @abstractmethod
    async def select(self, query: DataStoreQuery) -> list[dict[str, Any]]:
        """Run a query.

        Args:
            query: Query to run.

        Returns:
            Result rows as column → value mappings, at most ``query.limit``.

        Raises:
            DataStoreError: If the backend rejects the query or is unreachable.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        pass

    async def __aenter__(self) -> "DataStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
