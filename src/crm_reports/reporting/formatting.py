"""Cell and KPI value formatting.

Table cells are formatted from the field identifier alone, since result rows
carry no type information:
- ``date`` / ``_at`` fields: localized date
- ``value`` / ``amount`` fields holding a number: currency
- ``status`` / ``stage`` fields: badge colored by status
- booleans: Yes/No badge
- null: ``-``
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crm_reports.catalog.kpis import KpiFormat, KpiValue
from crm_reports.common.time_utils import coerce_datetime
from crm_reports.reporting.config import ReportingConfig

EMPTY_CELL = "-"


class BadgeVariant(str, Enum):
    """Badge color class."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    OUTLINE = "outline"


_STATUS_VARIANTS: dict[str, BadgeVariant] = {
    "active": BadgeVariant.POSITIVE,
    "won": BadgeVariant.POSITIVE,
    "completed": BadgeVariant.POSITIVE,
    "paid": BadgeVariant.POSITIVE,
    "pending": BadgeVariant.NEUTRAL,
    "in_progress": BadgeVariant.NEUTRAL,
    "due": BadgeVariant.NEUTRAL,
    "cancelled": BadgeVariant.NEGATIVE,
    "lost": BadgeVariant.NEGATIVE,
    "overdue": BadgeVariant.NEGATIVE,
    "draft": BadgeVariant.OUTLINE,
    "proposal": BadgeVariant.OUTLINE,
}


@dataclass(frozen=True)
class TableCell:
    """A formatted table cell. ``badge`` is set when the cell renders as a badge."""

    text: str
    badge: BadgeVariant | None = None


def status_badge_variant(status: Any) -> BadgeVariant:
    """Map a status or stage value to its badge color (case-insensitive)."""
    if status is None:
        return BadgeVariant.OUTLINE
    return _STATUS_VARIANTS.get(str(status).lower(), BadgeVariant.OUTLINE)


def is_date_field(field_id: str) -> bool:
    return "date" in field_id or "_at" in field_id


def is_money_field(field_id: str) -> bool:
    return "value" in field_id or "amount" in field_id


def is_status_field(field_id: str) -> bool:
    return "status" in field_id or "stage" in field_id


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_date(value: Any, config: ReportingConfig) -> str:
    """Format a date-like value, falling back to its string form."""
    parsed = coerce_datetime(value)
    if parsed is None:
        return str(value)
    return parsed.strftime(config.date_format)


def format_value(value: Any, field_id: str, config: ReportingConfig) -> str:
    """Format a raw value for display, ignoring badges."""
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if is_date_field(field_id):
        return format_date(value, config)
    if is_money_field(field_id) and _is_number(value):
        return config.format_currency(value)
    return str(value)


def format_cell(
    value: Any, field_id: str, config: ReportingConfig | None = None
) -> TableCell:
    """Format one table cell.

    Args:
        value: Raw value from the result row.
        field_id: Field identifier of the column.
        config: Reporting configuration (date format, currency symbol).

    Returns:
        Formatted cell.
    """
    config = config or ReportingConfig()
    if value is None:
        return TableCell(EMPTY_CELL)
    if isinstance(value, bool):
        return TableCell(
            "Yes" if value else "No",
            BadgeVariant.POSITIVE if value else BadgeVariant.OUTLINE,
        )
    text = format_value(value, field_id, config)
    if is_status_field(field_id):
        return TableCell(text, status_badge_variant(value))
    return TableCell(text)


def format_kpi(kpi: KpiValue, config: ReportingConfig | None = None) -> str:
    """Format a computed KPI value for its card."""
    config = config or ReportingConfig()
    value = kpi.value
    if isinstance(value, float) and not math.isfinite(value):
        value = 0
    if kpi.value_format is KpiFormat.CURRENCY:
        return config.format_currency(value)
    if kpi.value_format is KpiFormat.PERCENT:
        return f"{math.floor(value + 0.5)}%"
    if kpi.value_format is KpiFormat.COUNT and _is_number(value):
        return f"{int(value):,}"
    return str(value)
