"""Data store client for a PostgREST-style hosted backend."""

from typing import Any

import httpx

from crm_reports.common.config import DataStoreConfig
from crm_reports.common.logging import get_logger
from crm_reports.query.model import FilterOperator, FilterPredicate, SortDirection
from crm_reports.storage.interfaces import DataStore, DataStoreError, DataStoreQuery

logger = get_logger(__name__)

_OPERATOR_PREFIXES = {
    FilterOperator.EQUALS: "eq",
    FilterOperator.NOT_EQUALS: "neq",
    FilterOperator.GREATER_THAN: "gt",
    FilterOperator.LESS_THAN: "lt",
}


def _escape_ilike(text: str) -> str:
    # PostgREST turns every `*` into `%`, so a literal `*` can only match one character
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "_")


def filter_param(predicate: FilterPredicate) -> tuple[str, str]:
    """Translate a filter predicate into a ``column=op.value`` query parameter.

    ``contains`` becomes a case-insensitive ``ilike.*value*`` match, with ``%``
    and ``_`` in the value escaped so they match literally.
    """
    raw = predicate.value.raw
    if predicate.operator is FilterOperator.CONTAINS:
        return predicate.field, f"ilike.*{_escape_ilike(raw)}*"
    if predicate.operator in (FilterOperator.GREATER_THAN, FilterOperator.LESS_THAN):
        raw = raw.strip()
    return predicate.field, f"{_OPERATOR_PREFIXES[predicate.operator]}.{raw}"


def _direction(direction: SortDirection) -> str:
    return "desc" if direction is SortDirection.DESC else "asc"


def build_params(query: DataStoreQuery) -> list[tuple[str, str]]:
    """Build the query string for a select request.

    Filters on the same column repeat the column parameter, which the backend
    combines with AND.
    """
    params: list[tuple[str, str]] = [("select", ",".join(query.columns) or "*")]
    if query.tenant_id is not None:
        params.append((query.tenant_column, f"eq.{query.tenant_id}"))
    params.extend(filter_param(p) for p in query.filters)
    if query.order_by:
        params.append(
            (
                "order",
                ",".join(
                    f"{key.field}.{_direction(key.direction)}" for key in query.order_by
                ),
            )
        )
    params.append(("limit", str(query.limit)))
    return params


class RestDataStore(DataStore):
    """Read-only client for the hosted CRM backend.

    Usage:
        async with RestDataStore(config.data_store) as store:
            rows = await store.select(query)
    """

    def __init__(
        self,
        config: DataStoreConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            config: Data store configuration (base_url, api_key, timeout).
            transport: Optional transport, mainly for tests.
        """
        if not config.base_url:
            raise ValueError("REST data store requires data_store.base_url")
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def backend_type(self) -> str:
        return "rest"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def __aenter__(self) -> "RestDataStore":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            timeout=self.config.timeout_seconds,
            headers=self._headers(),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")
        return self._client

    async def select(self, query: DataStoreQuery) -> list[dict[str, Any]]:
        """Run a query against ``GET /<table>``.

        Raises:
            DataStoreError: On HTTP errors, transport errors or a non-list body.
        """
        path = f"/{query.table}"
        try:
            response = await self.client.get(path, params=build_params(query))
        except httpx.RequestError as e:
            logger.warning("data_store_request_failed", path=path, error=str(e))
            raise DataStoreError(f"Request to {path} failed") from e

        if response.status_code != 200:
            body = self._safe_json(response)
            raise DataStoreError(
                f"HTTP {response.status_code} from {path}",
                status_code=response.status_code,
                details=body,
            )

        body = self._safe_json(response)
        if not isinstance(body, list):
            raise DataStoreError(
                f"Unexpected response body from {path}",
                status_code=response.status_code,
                details=body,
            )
        logger.debug(
            "data_store_select", backend="rest", table=query.table, rows=len(body)
        )
        return body

    def _safe_json(self, response: httpx.Response) -> Any:
        """Safely parse JSON response."""
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
