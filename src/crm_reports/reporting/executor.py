"""Report execution against the configured data store.

Every call to ``execute`` is tagged with a request id taken from a
monotonically increasing counter. Callers may fire a new request whenever the
configuration changes, without waiting for earlier ones. A result whose id is
not the most recently issued one comes back with ``stale=True`` and must not
replace newer results.
"""

from dataclasses import dataclass, field
from typing import Any

from crm_reports.catalog.data_sources import DataSource, get_field, valid_fields
from crm_reports.catalog.registry import get_definition
from crm_reports.common.logging import get_logger
from crm_reports.notifications.notifier import (
    Notification,
    Notifier,
    destructive,
    info,
)
from crm_reports.query.model import (
    FilterPredicate,
    QueryConfiguration,
    SortKey,
)
from crm_reports.reporting.config import ReportingConfig
from crm_reports.storage.interfaces import DataStore, DataStoreQuery

logger = get_logger(__name__)

NOT_RUNNABLE_MESSAGE = "Please select a data source and at least one field"
FAILURE_MESSAGE = "Failed to run report"


@dataclass
class ExecutionResult:
    """Outcome of one report execution.

    Attributes:
        rows: Result rows, at most the preview limit.
        request_id: Id of the request that produced this result.
        stale: True when a newer request was issued while this one ran.
        error: Short error description when the query failed.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    request_id: int = 0
    stale: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_query(
    configuration: QueryConfiguration,
    tenant_id: str | None,
    limit: int,
) -> DataStoreQuery:
    """Translate a runnable configuration into a data store query.

    Only catalog-valid fields reach the data store. Filters and sort keys with
    a blank or unknown field are skipped.

    Args:
        configuration: Configuration with a data source and at least one
            valid field.
        tenant_id: Tenant whose rows are visible.
        limit: Maximum number of rows.

    Returns:
        The data store query.
    """
    source = configuration.data_source
    assert source is not None
    definition = get_definition(source)

    filters: list[FilterPredicate] = []
    for predicate in configuration.filters:
        if get_field(source, predicate.field) is None:
            logger.debug(
                "filter_skipped",
                data_source=source.value,
                field=predicate.field,
            )
            continue
        filters.append(predicate)

    order_by: list[SortKey] = []
    for key in configuration.sorting:
        if get_field(source, key.field) is None:
            logger.debug("sort_skipped", data_source=source.value, field=key.field)
            continue
        order_by.append(key)

    return DataStoreQuery(
        table=definition.table,
        columns=valid_fields(source, configuration.fields),
        filters=filters,
        order_by=order_by,
        limit=limit,
        tenant_id=tenant_id if definition.tenant_scoped else None,
    )


class ReportExecutor:
    """Runs query configurations against a data store.

    The executor only reads. Failures never propagate: they are logged,
    reported once through the notifier, and turned into an empty result.
    """

    def __init__(
        self,
        store: DataStore,
        notifier: Notifier,
        config: ReportingConfig | None = None,
    ):
        """Initialize executor.

        Args:
            store: Data store to read from.
            notifier: Receives user-facing messages.
            config: Reporting configuration (preview limit).
        """
        self.store = store
        self.notifier = notifier
        self.config = config or ReportingConfig()
        self._latest_request_id = 0
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        """Whether at least one request is in flight."""
        return self._in_flight > 0

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    def is_latest(self, request_id: int) -> bool:
        return request_id == self._latest_request_id

    def _notify(self, notification: Notification) -> None:
        try:
            self.notifier.notify(notification)
        except Exception as e:
            logger.error("notifier_failed", title=notification.title, error=str(e))

    async def execute(
        self,
        configuration: QueryConfiguration,
        tenant_id: str | None,
    ) -> ExecutionResult:
        """Run a configuration.

        Args:
            configuration: Configuration to run. It is copied before the
                first suspension point, so later edits don't affect this run.
            tenant_id: Tenant whose rows are visible.

        Returns:
            Execution result. Empty when the configuration is not runnable or
            the query failed. A configuration that is not runnable still takes
            a request id, so results of earlier requests come back stale.
        """
        self._latest_request_id += 1
        request_id = self._latest_request_id

        if not configuration.is_runnable:
            self._notify(info("Nothing to run", NOT_RUNNABLE_MESSAGE))
            return ExecutionResult(request_id=request_id)

        query = build_query(configuration.copy(), tenant_id, self.config.preview_limit)
        source: DataSource | None = configuration.data_source

        logger.info(
            "report_query_started",
            request_id=request_id,
            data_source=source.value if source else None,
            table=query.table,
            fields=len(query.columns),
            filters=len(query.filters),
        )

        self._in_flight += 1
        try:
            rows = await self.store.select(query)
        except Exception as e:
            stale = not self.is_latest(request_id)
            logger.error(
                "report_query_failed",
                request_id=request_id,
                table=query.table,
                error=str(e),
                stale=stale,
            )
            self._notify(destructive("Error", FAILURE_MESSAGE, request_id=request_id))
            return ExecutionResult(
                request_id=request_id,
                stale=stale,
                error=type(e).__name__,
            )
        finally:
            self._in_flight -= 1

        rows = rows[: self.config.preview_limit]
        stale = not self.is_latest(request_id)
        if stale:
            logger.info(
                "report_query_stale",
                request_id=request_id,
                latest_request_id=self._latest_request_id,
            )
        else:
            logger.info(
                "report_query_completed",
                request_id=request_id,
                rows=len(rows),
            )
        return ExecutionResult(rows=rows, request_id=request_id, stale=stale)
