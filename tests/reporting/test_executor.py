"""Tests for the report executor."""

import asyncio
from typing import Any

import pytest

from crm_reports.catalog.data_sources import DataSource
from crm_reports.notifications.notifier import (
    CollectingNotifier,
    Notification,
    NotificationLevel,
)
from crm_reports.query.model import (
    FilterOperator,
    FilterPredicate,
    FilterValue,
    QueryConfiguration,
    SortDirection,
    SortKey,
)
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.executor import (
    FAILURE_MESSAGE,
    NOT_RUNNABLE_MESSAGE,
    ReportExecutor,
    build_query,
)
from crm_reports.storage.interfaces import DataStore, DataStoreError, DataStoreQuery
from crm_reports.storage.sqlite_store import SQLiteDataStore
from conftest import TENANT


class GatedDataStore(DataStore):
    """In-memory store whose selects wait until released."""

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self.rows = rows or []
        self.queries: list[DataStoreQuery] = []
        self.gates: list[asyncio.Event] = []
        self.failures: dict[int, Exception] = {}
        self.gated = False

    @property
    def backend_type(self) -> str:
        return "memory"

    async def select(self, query: DataStoreQuery) -> list[dict[str, Any]]:
        call = len(self.queries)
        self.queries.append(query)
        if self.gated:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        if call in self.failures:
            raise self.failures[call]
        return list(self.rows)

    async def close(self) -> None:
        pass


class BrokenNotifier:
    """Notifier that always raises."""

    def notify(self, notification: Notification) -> None:
        raise RuntimeError("toast surface gone")


def deals_config(*fields: str) -> QueryConfiguration:
    return QueryConfiguration(data_source=DataSource.DEALS, fields=list(fields) or ["name"])


async def wait_for_gates(store: GatedDataStore, count: int) -> None:
    while len(store.gates) < count:
        await asyncio.sleep(0)


class TestBuildQuery:
    """Tests for configuration to query translation."""

    def test_basic_translation(self):
        cfg = QueryConfiguration(
            data_source=DataSource.DEALS,
            fields=["name", "bogus", "value"],
            filters=[
                FilterPredicate("status", FilterOperator.EQUALS, FilterValue.text("won")),
                FilterPredicate(),
                FilterPredicate("email", FilterOperator.EQUALS, FilterValue.text("x")),
            ],
            sorting=[SortKey("value", SortDirection.DESC), SortKey()],
        )

        query = build_query(cfg, TENANT, 25)

        assert query.table == "deals_report"
        assert query.columns == ["name", "value"]
        assert [p.field for p in query.filters] == ["status"]
        assert query.order_by == [SortKey("value", SortDirection.DESC)]
        assert query.limit == 25
        assert query.tenant_id == TENANT

    def test_simple_source_reads_table(self):
        cfg = QueryConfiguration(data_source=DataSource.CONTACTS, fields=["email"])

        assert build_query(cfg, TENANT, 10).table == "contacts"


class TestReportExecutor:
    """Tests for ReportExecutor."""

    @pytest.mark.asyncio
    async def test_runs_against_sqlite(self, store, notifier):
        """Test a full run through the SQLite report view."""
        executor = ReportExecutor(store, notifier)
        cfg = deals_config("name", "value")
        cfg.sorting = [SortKey("value", SortDirection.DESC)]

        result = await executor.execute(cfg, TENANT)

        assert result.ok
        assert not result.stale
        assert result.request_id == 1
        assert [r["name"] for r in result.rows] == [
            "Globex Expansion",
            "Acme Renewal",
            "Acme Upsell",
        ]
        assert notifier.history == []

    @pytest.mark.asyncio
    async def test_preview_limit(self, store, notifier):
        executor = ReportExecutor(store, notifier, ReportingConfig(preview_limit=2))

        result = await executor.execute(deals_config(), TENANT)

        assert len(result.rows) == 2

    @pytest.mark.asyncio
    async def test_preview_limit_applied_to_oversized_answers(self, notifier):
        """Test that rows beyond the limit are dropped even if the store returns them."""
        fake = GatedDataStore([{"name": str(i)} for i in range(10)])
        executor = ReportExecutor(fake, notifier, ReportingConfig(preview_limit=3))

        result = await executor.execute(deals_config(), TENANT)

        assert fake.queries[0].limit == 3
        assert len(result.rows) == 3

    @pytest.mark.asyncio
    async def test_not_runnable(self, notifier):
        """Test that an incomplete configuration never reaches the store."""
        fake = GatedDataStore()
        executor = ReportExecutor(fake, notifier)

        result = await executor.execute(QueryConfiguration(), TENANT)

        assert result.rows == []
        assert result.ok
        assert fake.queries == []
        assert len(notifier.history) == 1
        notification = notifier.history[0]
        assert notification.level is NotificationLevel.INFO
        assert notification.message == NOT_RUNNABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_source_without_valid_fields_not_runnable(self, notifier):
        fake = GatedDataStore()
        executor = ReportExecutor(fake, notifier)

        await executor.execute(deals_config("first_name"), TENANT)

        assert fake.queries == []

    @pytest.mark.asyncio
    async def test_failure_notifies_once(self, notifier):
        """Test that a failed query yields an empty result and one notification."""
        fake = GatedDataStore([{"name": "x"}])
        fake.failures[0] = DataStoreError("Query failed", status_code=500)
        executor = ReportExecutor(fake, notifier)

        result = await executor.execute(deals_config(), TENANT)

        assert result.rows == []
        assert result.error == "DataStoreError"
        assert not result.ok
        destructive = notifier.by_level(NotificationLevel.DESTRUCTIVE)
        assert len(destructive) == 1
        assert destructive[0].title == "Error"
        assert destructive[0].message == FAILURE_MESSAGE
        assert destructive[0].data == {"request_id": 1}
        assert not executor.loading

    @pytest.mark.asyncio
    async def test_failed_store_on_sqlite(self, temp_dir, notifier):
        """Test that an unmigrated database is reported, not raised."""
        empty = SQLiteDataStore(temp_dir / "empty.db")
        empty.connect()
        try:
            result = await ReportExecutor(empty, notifier).execute(deals_config(), TENANT)
        finally:
            empty.disconnect()

        assert result.error == "DataStoreError"
        assert len(notifier.history) == 1

    @pytest.mark.asyncio
    async def test_broken_notifier_does_not_propagate(self):
        executor = ReportExecutor(GatedDataStore(), BrokenNotifier())

        result = await executor.execute(QueryConfiguration(), TENANT)

        assert result.rows == []

    @pytest.mark.asyncio
    async def test_configuration_copied_before_run(self, notifier):
        """Test that edits made while a run is in flight don't affect it."""
        fake = GatedDataStore([{"name": "x"}])
        fake.gated = True
        executor = ReportExecutor(fake, notifier)
        cfg = deals_config("name")

        task = asyncio.create_task(executor.execute(cfg, TENANT))
        await wait_for_gates(fake, 1)
        cfg.fields.append("value")
        fake.gates[0].set()
        await task

        assert fake.queries[0].columns == ["name"]


class TestStaleResults:
    """Tests for out-of-order completion."""

    @pytest.mark.asyncio
    async def test_older_result_is_stale(self, notifier):
        """Test that an earlier request finishing last is marked stale."""
        fake = GatedDataStore([{"name": "row"}])
        fake.gated = True
        executor = ReportExecutor(fake, notifier)

        first = asyncio.create_task(executor.execute(deals_config(), TENANT))
        second = asyncio.create_task(executor.execute(deals_config("value"), TENANT))
        await wait_for_gates(fake, 2)

        assert executor.loading
        fake.gates[1].set()
        newer = await second
        assert executor.loading
        fake.gates[0].set()
        older = await first

        assert newer.request_id == 2
        assert not newer.stale
        assert older.request_id == 1
        assert older.stale
        assert not executor.loading

    @pytest.mark.asyncio
    async def test_not_runnable_call_makes_inflight_result_stale(self, notifier):
        fake = GatedDataStore([{"name": "row"}])
        fake.gated = True
        executor = ReportExecutor(fake, notifier)

        first = asyncio.create_task(executor.execute(deals_config(), TENANT))
        await wait_for_gates(fake, 1)
        cleared = await executor.execute(QueryConfiguration(), TENANT)
        fake.gates[0].set()
        result = await first

        assert cleared.request_id == 2
        assert result.stale

    @pytest.mark.asyncio
    async def test_stale_failure_still_notified_once(self, notifier):
        """Test that a failure is reported even when a newer request exists."""
        fake = GatedDataStore([{"name": "row"}])
        fake.gated = True
        fake.failures[0] = DataStoreError("boom")
        executor = ReportExecutor(fake, notifier)

        first = asyncio.create_task(executor.execute(deals_config(), TENANT))
        second = asyncio.create_task(executor.execute(deals_config(), TENANT))
        await wait_for_gates(fake, 2)
        fake.gates[1].set()
        await second
        fake.gates[0].set()
        failed = await first

        assert failed.stale
        assert failed.error == "DataStoreError"
        assert len(notifier.by_level(NotificationLevel.DESTRUCTIVE)) == 1

    @pytest.mark.asyncio
    async def test_request_ids_increase(self, store):
        executor = ReportExecutor(store, CollectingNotifier())

        ids = [(await executor.execute(deals_config(), TENANT)).request_id for _ in range(3)]

        assert ids == [1, 2, 3]
        assert executor.latest_request_id == 3
        assert executor.is_latest(3)
        assert not executor.is_latest(2)
