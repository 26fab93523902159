"""KPI card definitions per data source.

KPI cards are a per-domain summary, not a generic aggregation engine: each data
source declares the cards it shows. Sources without a dedicated table fall back
to the generic pair (total records, data source name).
"""

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crm_reports.catalog.data_sources import DataSource, format_field_name

Row = Mapping[str, Any]


class KpiFormat(str, Enum):
    """How a KPI value is displayed."""

    CURRENCY = "currency"
    COUNT = "count"
    PERCENT = "percent"
    TEXT = "text"


class KpiIcon(str, Enum):
    """Icon shown on a KPI card."""

    DOLLAR = "dollar"
    TARGET = "target"
    TRENDING_UP = "trending_up"
    USERS = "users"


@dataclass(frozen=True)
class KpiDefinition:
    """A single KPI card.

    ``compute`` receives the result rows and the data source. When
    ``requires_field`` is set, the card is only shown if that field was
    selected for the report.
    """

    label: str
    compute: Callable[[Sequence[Row], DataSource], Any]
    value_format: KpiFormat = KpiFormat.COUNT
    icon: KpiIcon = KpiIcon.TARGET
    requires_field: str | None = None


@dataclass(frozen=True)
class KpiValue:
    """A computed KPI card, not yet formatted for display."""

    label: str
    value: Any
    value_format: KpiFormat
    icon: KpiIcon


def to_number(value: Any) -> float:
    """Parse a cell value as a number; anything non-numeric counts as 0.

    NaN and infinities (including strings like ``"NaN"`` or ``"1e400"``) also
    count as 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _sum(field: str) -> Callable[[Sequence[Row], DataSource], float]:
    def compute(rows: Sequence[Row], source: DataSource) -> float:
        return sum(to_number(row.get(field)) for row in rows)

    return compute


def _count_where(field: str, expected: str) -> Callable[[Sequence[Row], DataSource], int]:
    def compute(rows: Sequence[Row], source: DataSource) -> int:
        return sum(1 for row in rows if row.get(field) == expected)

    return compute


def _mean(field: str) -> Callable[[Sequence[Row], DataSource], float]:
    def compute(rows: Sequence[Row], source: DataSource) -> float:
        if not rows:
            return 0.0
        return sum(to_number(row.get(field)) for row in rows) / len(rows)

    return compute


def _row_count(rows: Sequence[Row], source: DataSource) -> int:
    return len(rows)


def _source_label(rows: Sequence[Row], source: DataSource) -> str:
    return format_field_name(source.value)


def _payment_amount(rows: Sequence[Row], source: DataSource) -> float:
    total = 0.0
    for row in rows:
        amount = to_number(row.get("calculated_amount"))
        if not amount:
            amount = to_number(row.get("amount_value"))
        total += amount
    return total


# -----------------------------------------------------------------------------
# Per-source KPI tables
# -----------------------------------------------------------------------------

DEAL_KPIS: tuple[KpiDefinition, ...] = (
    KpiDefinition("Total Deal Value", _sum("value"), KpiFormat.CURRENCY, KpiIcon.DOLLAR),
    KpiDefinition("Total Deals", _row_count, KpiFormat.COUNT, KpiIcon.TARGET),
    KpiDefinition(
        "Won Deals", _count_where("status", "won"), KpiFormat.COUNT, KpiIcon.TRENDING_UP
    ),
    KpiDefinition(
        "Avg Probability",
        _mean("probability"),
        KpiFormat.PERCENT,
        KpiIcon.USERS,
        requires_field="probability",
    ),
)

CONTRACT_KPIS: tuple[KpiDefinition, ...] = (
    KpiDefinition(
        "Total Contract Value", _sum("value"), KpiFormat.CURRENCY, KpiIcon.DOLLAR
    ),
    KpiDefinition("Total Contracts", _row_count, KpiFormat.COUNT, KpiIcon.TARGET),
    KpiDefinition(
        "Active Contracts",
        _count_where("status", "active"),
        KpiFormat.COUNT,
        KpiIcon.TRENDING_UP,
    ),
    KpiDefinition(
        "Completed Contracts",
        _count_where("status", "completed"),
        KpiFormat.COUNT,
        KpiIcon.USERS,
    ),
)

CONTRACT_PAYMENT_KPIS: tuple[KpiDefinition, ...] = (
    KpiDefinition(
        "Total Payment Amount", _payment_amount, KpiFormat.CURRENCY, KpiIcon.DOLLAR
    ),
    KpiDefinition("Total Payments", _row_count, KpiFormat.COUNT, KpiIcon.TARGET),
    KpiDefinition(
        "Due Payments",
        _count_where("stage_name", "Due"),
        KpiFormat.COUNT,
        KpiIcon.TRENDING_UP,
    ),
    KpiDefinition("Pending To-Dos", _sum("todos_count"), KpiFormat.COUNT, KpiIcon.USERS),
)

GENERIC_KPIS: tuple[KpiDefinition, ...] = (
    KpiDefinition("Total Records", _row_count, KpiFormat.COUNT, KpiIcon.TARGET),
    KpiDefinition("Data Source", _source_label, KpiFormat.TEXT, KpiIcon.USERS),
)


def compute_kpis(
    definitions: Sequence[KpiDefinition],
    source: DataSource,
    rows: Sequence[Row],
    fields: Sequence[str],
) -> list[KpiValue]:
    """Evaluate a KPI table against result rows.

    Args:
        definitions: KPI table of the data source.
        source: Data source the rows came from.
        rows: Result rows.
        fields: Fields selected for the report.

    Returns:
        Computed KPI values in table order; cards whose required field was not
        selected are omitted.
    """
    values = []
    for definition in definitions:
        if definition.requires_field and definition.requires_field not in fields:
            continue
        values.append(
            KpiValue(
                label=definition.label,
                value=definition.compute(rows, source),
                value_format=definition.value_format,
                icon=definition.icon,
            )
        )
    return values
