"""Turns result rows into display-ready report views.

The visualizer is a pure function of its inputs: rows, selected fields,
visualization type and data source go in, a ReportView comes out. It never
raises for bad input. Anything it cannot draw becomes a Placeholder carrying a
short explanation instead.

Chart views carry chart-ready data only; drawing is done by ChartGenerator and
ReportRenderer.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from crm_reports.catalog.data_sources import (
    DataSource,
    format_field_name,
    parse_data_source,
    valid_fields,
)
from crm_reports.catalog.kpis import KpiIcon, KpiValue, compute_kpis, to_number
from crm_reports.catalog.registry import get_definition
from crm_reports.query.model import (
    QueryConfiguration,
    VisualizationType,
    parse_visualization,
)
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.formatting import TableCell, format_cell, format_kpi

Row = Mapping[str, Any]

UNKNOWN_LABEL = "Unknown"
OTHER_LABEL = "Other"


class PlaceholderKind(str, Enum):
    """Why a report shows a message instead of data."""

    LOADING = "loading"
    SELECT_FIELDS = "select_fields"
    NO_DATA = "no_data"
    UNSUPPORTED = "unsupported"


PLACEHOLDER_MESSAGES: dict[PlaceholderKind, str] = {
    PlaceholderKind.LOADING: "Loading...",
    PlaceholderKind.SELECT_FIELDS: "Select a data source and at least one field",
    PlaceholderKind.NO_DATA: "No data available for the selected criteria",
    PlaceholderKind.UNSUPPORTED: "This visualization is not supported",
}


@dataclass(frozen=True)
class Placeholder:
    """Informational message shown in place of a visualization."""

    kind: PlaceholderKind
    message: str = ""

    @classmethod
    def of(cls, kind: PlaceholderKind, message: str | None = None) -> "Placeholder":
        return cls(kind, message or PLACEHOLDER_MESSAGES[kind])


@dataclass(frozen=True)
class TableColumn:
    identifier: str
    label: str


@dataclass
class TableView:
    """One column per selected field, one row per result row."""

    columns: list[TableColumn]
    rows: list[list[TableCell]]


@dataclass(frozen=True)
class KpiCard:
    """A KPI card: label, formatted value, icon and the unformatted value."""

    label: str
    value: str
    icon: KpiIcon
    raw_value: Any = None


@dataclass
class KpiCardsView:
    cards: list[KpiCard]


@dataclass
class BarChartView:
    """Measure summed per dimension value.

    ``data`` holds ``{"label": str, "value": float}`` entries in first-seen order.
    """

    dimension: str
    measure: str
    measure_label: str
    data: list[dict[str, Any]]


@dataclass
class PieChartView:
    """Row counts per category; ``data`` holds ``{"name": str, "value": int}``."""

    category: str
    data: list[dict[str, Any]]


@dataclass
class ComparisonChartView:
    """Two numeric fields side by side per row.

    ``data`` holds ``{"name": str, <field_a>: float, <field_b>: float}`` entries.
    """

    fields: tuple[str, str]
    labels: tuple[str, str]
    data: list[dict[str, Any]]


ViewBody = (
    Placeholder
    | TableView
    | KpiCardsView
    | BarChartView
    | PieChartView
    | ComparisonChartView
)


@dataclass
class ReportView:
    """Output of the visualizer."""

    title: str
    body: ViewBody
    visualization_type: VisualizationType | None = None
    data_source: DataSource | None = None
    row_count: int = 0
    fields: list[str] = field(default_factory=list)

    @property
    def is_placeholder(self) -> bool:
        return isinstance(self.body, Placeholder)


def report_title(source: DataSource | None, row_count: int) -> str:
    """Title shown above a report, e.g. ``Deals Report - 12 records``."""
    label = format_field_name(source.value) if source else "Untitled"
    return f"{label} Report - {row_count} records"


def _first_matching(fields: Sequence[str], needles: Sequence[str]) -> str | None:
    for field_id in fields:
        if any(needle in field_id for needle in needles):
            return field_id
    return None


def _label(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN_LABEL
    return str(value)


def bar_measure(fields: Sequence[str]) -> str | None:
    """First field that looks numeric (``value``, ``amount`` or ``count``)."""
    return _first_matching(fields, ("value", "amount", "count"))


def bar_dimension(fields: Sequence[str]) -> str | None:
    """First ``name`` / ``status`` / ``stage`` field, else the first field."""
    return _first_matching(fields, ("name", "status", "stage")) or (
        fields[0] if fields else None
    )


def pie_category(fields: Sequence[str]) -> str | None:
    """First ``status`` / ``stage`` / ``type`` field, else the first field."""
    return _first_matching(fields, ("status", "stage", "type")) or (
        fields[0] if fields else None
    )


def bar_chart_data(
    rows: Sequence[Row], dimension: str, measure: str
) -> list[dict[str, Any]]:
    """Sum ``measure`` per distinct ``dimension`` value.

    Missing dimension values are grouped under ``Unknown``; non-numeric
    measures count as 0. Groups appear in first-seen order.
    """
    totals: dict[str, float] = {}
    for row in rows:
        label = _label(row.get(dimension))
        totals[label] = totals.get(label, 0.0) + to_number(row.get(measure))
    return [{"label": label, "value": value} for label, value in totals.items()]


def pie_chart_data(
    rows: Sequence[Row], category: str, max_slices: int | None = None
) -> list[dict[str, Any]]:
    """Count rows per distinct ``category`` value.

    Slices appear in first-seen order. With more than ``max_slices``
    categories, the ``max_slices - 1`` largest are kept (ties go to the one
    seen first) and the rest are folded into a trailing ``Other`` slice.
    A ``max_slices`` below 2 disables the cap.
    """
    counts: dict[str, int] = {}
    for row in rows:
        name = _label(row.get(category))
        counts[name] = counts.get(name, 0) + 1

    if max_slices is None or max_slices < 2 or len(counts) <= max_slices:
        return [{"name": name, "value": value} for name, value in counts.items()]

    order = list(counts)
    ranked = sorted(order, key=lambda name: (-counts[name], order.index(name)))
    kept = set(ranked[: max_slices - 1])
    folded = sum(counts[name] for name in order if name not in kept)

    data = [{"name": name, "value": counts[name]} for name in order if name in kept]
    for entry in data:
        if entry["name"] == OTHER_LABEL:
            entry["value"] += folded
            break
    else:
        data.append({"name": OTHER_LABEL, "value": folded})
    return data


def comparison_chart_data(
    rows: Sequence[Row], field_a: str, field_b: str
) -> list[dict[str, Any]]:
    """One entry per row with both fields as numbers (non-numeric → 0).

    Entries are named after the row's ``name``, else ``entity_name``, else
    ``Item <n>`` (1-based).
    """
    data = []
    for index, row in enumerate(rows, start=1):
        name = row.get("name") or row.get("entity_name") or f"Item {index}"
        data.append(
            {
                "name": str(name),
                field_a: to_number(row.get(field_a)),
                field_b: to_number(row.get(field_b)),
            }
        )
    return data


class Visualizer:
    """Builds ReportViews from result rows.

    Usage:
        view = Visualizer(config).render(rows, ["name", "value"], "bar_chart", "deals")
    """

    def __init__(self, config: ReportingConfig | None = None):
        self.config = config or ReportingConfig()

    def render(
        self,
        rows: Sequence[Row],
        fields: Sequence[str],
        visualization_type: VisualizationType | str,
        data_source: DataSource | str | None,
        comparison_fields: Sequence[str] | None = None,
        loading: bool = False,
    ) -> ReportView:
        """Render rows as a report view.

        Args:
            rows: Result rows.
            fields: Selected fields in column order. Fields outside the
                source's catalog are ignored.
            visualization_type: How to display the rows.
            data_source: Source the rows came from.
            comparison_fields: The two fields plotted by the comparison chart.
            loading: Whether a query is still in flight.

        Returns:
            The report view. Loading, missing fields and empty results take
            precedence over the visualization type, in that order.
        """
        source = parse_data_source(data_source)
        selected = valid_fields(source, list(fields))
        visualization = parse_visualization(visualization_type)

        def view(body: ViewBody) -> ReportView:
            return ReportView(
                title=report_title(source, len(rows)),
                body=body,
                visualization_type=visualization,
                data_source=source,
                row_count=len(rows),
                fields=selected,
            )

        if loading:
            return view(Placeholder.of(PlaceholderKind.LOADING))
        if source is None or not selected:
            return view(Placeholder.of(PlaceholderKind.SELECT_FIELDS))
        if not rows:
            return view(Placeholder.of(PlaceholderKind.NO_DATA))

        if visualization is VisualizationType.TABLE:
            return view(self.table(rows, selected))
        if visualization is VisualizationType.KPI_CARDS:
            return view(self.kpi_cards(rows, selected, source))
        if visualization is VisualizationType.BAR_CHART:
            return view(self.bar_chart(rows, selected))
        if visualization is VisualizationType.PIE_CHART:
            return view(self.pie_chart(rows, selected))
        if visualization is VisualizationType.COMPARISON_CHART:
            return view(
                self.comparison_chart(
                    rows, valid_fields(source, list(comparison_fields or []))
                )
            )
        return view(Placeholder.of(PlaceholderKind.UNSUPPORTED))

    def render_configuration(
        self,
        configuration: QueryConfiguration,
        rows: Sequence[Row],
        loading: bool = False,
    ) -> ReportView:
        """Render rows using the selections of a query configuration."""
        return self.render(
            rows,
            configuration.fields,
            configuration.visualization_type,
            configuration.data_source,
            comparison_fields=configuration.comparison_fields,
            loading=loading,
        )

    def table(self, rows: Sequence[Row], fields: Sequence[str]) -> TableView:
        columns = [TableColumn(f, format_field_name(f)) for f in fields]
        body = [
            [format_cell(row.get(f), f, self.config) for f in fields] for row in rows
        ]
        return TableView(columns=columns, rows=body)

    def kpi_cards(
        self, rows: Sequence[Row], fields: Sequence[str], source: DataSource
    ) -> KpiCardsView:
        values: list[KpiValue] = compute_kpis(
            get_definition(source).kpis, source, rows, fields
        )
        return KpiCardsView(
            cards=[
                KpiCard(
                    label=kpi.label,
                    value=format_kpi(kpi, self.config),
                    icon=kpi.icon,
                    raw_value=kpi.value,
                )
                for kpi in values
            ]
        )

    def bar_chart(
        self, rows: Sequence[Row], fields: Sequence[str]
    ) -> BarChartView | Placeholder:
        measure = bar_measure(fields)
        dimension = bar_dimension(fields)
        if measure is None or dimension is None:
            return Placeholder.of(
                PlaceholderKind.UNSUPPORTED, "No suitable fields for bar chart"
            )
        return BarChartView(
            dimension=dimension,
            measure=measure,
            measure_label=format_field_name(measure),
            data=bar_chart_data(rows, dimension, measure),
        )

    def pie_chart(
        self, rows: Sequence[Row], fields: Sequence[str]
    ) -> PieChartView | Placeholder:
        category = pie_category(fields)
        if category is None:
            return Placeholder.of(
                PlaceholderKind.UNSUPPORTED, "No suitable fields for pie chart"
            )
        return PieChartView(
            category=category,
            data=pie_chart_data(rows, category, self.config.pie_max_slices),
        )

    def comparison_chart(
        self, rows: Sequence[Row], comparison_fields: Sequence[str]
    ) -> ComparisonChartView | Placeholder:
        if len(comparison_fields) != 2:
            return Placeholder.of(
                PlaceholderKind.UNSUPPORTED, "Please select exactly 2 fields to compare"
            )
        field_a, field_b = comparison_fields
        return ComparisonChartView(
            fields=(field_a, field_b),
            labels=(format_field_name(field_a), format_field_name(field_b)),
            data=comparison_chart_data(rows, field_a, field_b),
        )
