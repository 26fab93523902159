"""Report session: builder, executor and visualizer wired together.

A session lives as long as one report screen. It owns a fresh query
configuration, the rows of the latest applied result and the loading flag.
Nothing is persisted.
"""

import asyncio
from typing import Any

from crm_reports.common.logging import get_logger, log_context
from crm_reports.query.builder import QueryBuilder
from crm_reports.query.model import QueryConfiguration
from crm_reports.reporting.executor import ExecutionResult, ReportExecutor
from crm_reports.reporting.visualizer import ReportView, Visualizer

logger = get_logger(__name__)


class ReportSession:
    """Interactive report state for one tenant.

    Usage:
        session = ReportSession("tenant-1", executor, Visualizer())
        session.builder.set_data_source("deals")
        session.builder.toggle_field("name", True)
        await session.refresh()
        view = session.view()
    """

    def __init__(
        self,
        tenant_id: str,
        executor: ReportExecutor,
        visualizer: Visualizer,
        builder: QueryBuilder | None = None,
        auto_refresh: bool = False,
    ):
        """Initialize session.

        Args:
            tenant_id: Tenant whose rows are visible.
            executor: Runs configurations.
            visualizer: Renders rows.
            builder: Builder to use; a fresh one over an empty configuration
                if omitted.
            auto_refresh: Schedule a refresh after every builder change. Needs
                a running event loop.
        """
        self.tenant_id = tenant_id
        self.executor = executor
        self.visualizer = visualizer
        self.builder = builder or QueryBuilder()
        self.rows: list[dict[str, Any]] = []
        self.last_result: ExecutionResult | None = None
        self._tasks: set[asyncio.Task[ExecutionResult]] = set()
        if auto_refresh:
            self.builder.subscribe(self._on_change)

    @property
    def configuration(self) -> QueryConfiguration:
        return self.builder.configuration

    @property
    def loading(self) -> bool:
        return self.executor.loading

    async def refresh(self) -> ExecutionResult:
        """Run the current configuration and apply the result unless stale."""
        with log_context(tenant_id=self.tenant_id):
            result = await self.executor.execute(self.configuration, self.tenant_id)
            if result.stale:
                logger.debug("stale_result_discarded", request_id=result.request_id)
                return result
        self.rows = result.rows
        self.last_result = result
        return result

    def _on_change(self, configuration: QueryConfiguration) -> None:
        self.schedule_refresh()

    def schedule_refresh(self) -> asyncio.Task[ExecutionResult]:
        """Start a refresh in the background.

        Raises:
            RuntimeError: If no event loop is running.
        """
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def view(self) -> ReportView:
        """Render the current state."""
        return self.visualizer.render_configuration(
            self.configuration, self.rows, loading=self.loading
        )
