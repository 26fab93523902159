"""Local SQLite data store."""

import asyncio
import re
import sqlite3
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from crm_reports.common.logging import get_logger
from crm_reports.query.model import (
    FilterOperator,
    FilterPredicate,
    SortDirection,
    ValueKind,
)
from crm_reports.storage.interfaces import DataStore, DataStoreError, DataStoreQuery
from crm_reports.storage.schema import MIGRATIONS, SCHEMA_VERSION

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Quote a table or column name, rejecting anything that isn't a plain identifier.

    Raises:
        DataStoreError: If the name is not a valid identifier.
    """
    if not _IDENTIFIER.match(name):
        raise DataStoreError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: Any) -> str | None:
    return None if value is None else str(value).casefold()


def build_predicate(predicate: FilterPredicate) -> tuple[str, list[Any]]:
    """Translate a filter predicate into a parameterized SQL condition.

    Args:
        predicate: Predicate with a validated field.

    Returns:
        Tuple of (SQL fragment, parameters).
    """
    column = quote_identifier(predicate.field)
    value = predicate.value
    number = value.as_number() if value.kind is ValueKind.NUMBER else None

    if predicate.operator is FilterOperator.CONTAINS:
        pattern = f"%{_escape_like(value.raw.casefold())}%"
        return f"casefold(CAST({column} AS TEXT)) LIKE ? ESCAPE '\\'", [pattern]

    if predicate.operator in (FilterOperator.GREATER_THAN, FilterOperator.LESS_THAN):
        symbol = ">" if predicate.operator is FilterOperator.GREATER_THAN else "<"
        if number is not None:
            return f"CAST({column} AS REAL) {symbol} ?", [number]
        # ISO 8601 dates order correctly as text
        return f"{column} {symbol} ?", [value.raw.strip()]

    symbol = "!=" if predicate.operator is FilterOperator.NOT_EQUALS else "="
    param: Any = number if number is not None else value.raw
    return f"{column} {symbol} ?", [param]


def build_select(query: DataStoreQuery) -> tuple[str, list[Any]]:
    """Translate a data store query into a parameterized SELECT statement.

    Args:
        query: Query to translate.

    Returns:
        Tuple of (SQL, parameters).
    """
    columns = ", ".join(quote_identifier(c) for c in query.columns) or "*"
    sql = f"SELECT {columns} FROM {quote_identifier(query.table)}"
    conditions: list[str] = []
    params: list[Any] = []

    if query.tenant_id is not None:
        conditions.append(f"{quote_identifier(query.tenant_column)} = ?")
        params.append(query.tenant_id)

    for predicate in query.filters:
        condition, condition_params = build_predicate(predicate)
        conditions.append(condition)
        params.extend(condition_params)

    if conditions:
        sql += " WHERE " + " AND ".join(conditions)

    if query.order_by:
        sql += " ORDER BY " + ", ".join(
            f"{quote_identifier(key.field)} "
            f"{'DESC' if key.direction is SortDirection.DESC else 'ASC'}"
            for key in query.order_by
        )

    sql += " LIMIT ?"
    params.append(query.limit)
    return sql, params


class SQLiteDataStore(DataStore):
    """Data store backed by a local SQLite database.

    Queries run on a worker thread so the event loop is never blocked.
    """

    def __init__(self, db_path: str | Path):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def backend_type(self) -> str:
        return "sqlite"

    def connect(self) -> None:
        """Open the database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._connection.create_function("casefold", 1, _casefold, deterministic=True)
        self._connection.execute("PRAGMA foreign_keys = ON")
        self._connection.execute("PRAGMA journal_mode = WAL")

        logger.info("data_store_connected", backend="sqlite", path=str(self.db_path))

    @property
    def connection(self) -> sqlite3.Connection:
        """Get active connection, raising if not connected."""
        if self._connection is None:
            raise RuntimeError("Data store not connected. Call connect() first.")
        return self._connection

    def migrate(self) -> None:
        """Apply pending schema migrations."""
        with self._lock:
            conn = self.connection
            current_version = self._schema_version(conn)
            for version in sorted(MIGRATIONS):
                if version > current_version:
                    logger.info("applying_migration", version=version)
                    conn.executescript(MIGRATIONS[version])
                    conn.execute(
                        "INSERT INTO schema_version (version) VALUES (?)", (version,)
                    )
                    conn.commit()
        logger.info(
            "migrations_complete",
            from_version=current_version,
            to_version=SCHEMA_VERSION,
        )

    def get_schema_version(self) -> int:
        """Get current schema version."""
        return self._schema_version(self.connection)

    @staticmethod
    def _schema_version(conn: sqlite3.Connection) -> int:
        row = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        ).fetchone()
        if row is None:
            return 0
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    # --- Seeding ---

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        """Insert one row.

        Args:
            table: Target table.
            values: Column → value mapping.

        Returns:
            Row id of the inserted row.
        """
        columns = list(values)
        sql = (
            f"INSERT INTO {quote_identifier(table)} "
            f"({', '.join(quote_identifier(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        with self._lock:
            cursor = self.connection.execute(sql, [values[c] for c in columns])
            self.connection.commit()
        row_id = cursor.lastrowid
        assert row_id is not None
        return row_id

    def insert_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> list[int]:
        """Insert several rows, returning their row ids."""
        return [self.insert(table, row) for row in rows]

    # --- Reads ---

    def _select_sync(self, query: DataStoreQuery) -> list[dict[str, Any]]:
        sql, params = build_select(query)
        with self._lock:
            try:
                rows = self.connection.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise DataStoreError(
                    "Query failed", details={"table": query.table, "error": str(e)}
                ) from e
        return [dict(row) for row in rows]

    async def select(self, query: DataStoreQuery) -> list[dict[str, Any]]:
        """Run a query on a worker thread."""
        rows = await asyncio.to_thread(self._select_sync, query)
        logger.debug(
            "data_store_select", backend="sqlite", table=query.table, rows=len(rows)
        )
        return rows

    def disconnect(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info(
                    "data_store_closed", backend="sqlite", path=str(self.db_path)
                )

    async def close(self) -> None:
        """Close the database connection."""
        self.disconnect()
