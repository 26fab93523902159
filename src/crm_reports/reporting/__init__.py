"""Reporting subsystem for the CRM.

Turns a query configuration into something a user can look at:

1. Executor: runs the configuration against the data store, bounded to a
   preview limit, and reports failures through the notifier
2. Visualizer: turns rows into a table, KPI cards, bar, pie or comparison
   chart, or an informational placeholder
3. Charts: matplotlib drawings of the chart views
4. Renderer: Markdown and HTML output of a report view
5. Session: ties a query builder, the executor and the visualizer together
"""

from crm_reports.reporting.charts import ChartGenerator, ChartResult
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.executor import ExecutionResult, ReportExecutor, build_query
from crm_reports.reporting.formatting import (
    BadgeVariant,
    TableCell,
    format_cell,
    format_kpi,
    status_badge_variant,
)
from crm_reports.reporting.render import ReportRenderer
from crm_reports.reporting.session import ReportSession
from crm_reports.reporting.visualizer import (
    BarChartView,
    ComparisonChartView,
    KpiCard,
    KpiCardsView,
    PieChartView,
    Placeholder,
    PlaceholderKind,
    ReportView,
    TableView,
    Visualizer,
    bar_chart_data,
    comparison_chart_data,
    pie_chart_data,
)

__all__ = [
    "ChartGenerator",
    "ChartResult",
    "ReportingConfig",
    "ExecutionResult",
    "ReportExecutor",
    "build_query",
    "BadgeVariant",
    "TableCell",
    "format_cell",
    "format_kpi",
    "status_badge_variant",
    "ReportRenderer",
    "ReportSession",
    "BarChartView",
    "ComparisonChartView",
    "KpiCard",
    "KpiCardsView",
    "PieChartView",
    "Placeholder",
    "PlaceholderKind",
    "ReportView",
    "TableView",
    "Visualizer",
    "bar_chart_data",
    "comparison_chart_data",
    "pie_chart_data",
]
