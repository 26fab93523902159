"""Query configuration model.

A QueryConfiguration is pure data: which data source to read, which fields to
show, how to filter, sort and group the rows, and which visualization to draw.
It is created empty when a report screen opens, mutated in place by the query
builder and thrown away afterwards.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from crm_reports.catalog.data_sources import (
    DataSource,
    FieldType,
    get_field,
    parse_data_source,
    valid_fields,
)
from crm_reports.common.time_utils import coerce_datetime


class FilterOperator(str, Enum):
    """Filter predicate operators."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class VisualizationType(str, Enum):
    """How a report's rows are displayed."""

    TABLE = "table"
    BAR_CHART = "bar_chart"
    PIE_CHART = "pie_chart"
    KPI_CARDS = "kpi_cards"
    COMPARISON_CHART = "comparison_chart"


class ValueKind(str, Enum):
    """How a filter value is interpreted by ordinal operators."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def parse_operator(value: Any) -> FilterOperator | None:
    """Resolve an operator identifier (None if unknown)."""
    return _enum_or_none(FilterOperator, value)


def parse_direction(value: Any) -> SortDirection | None:
    """Resolve a sort direction identifier (None if unknown)."""
    return _enum_or_none(SortDirection, value)


def parse_visualization(value: Any) -> VisualizationType | None:
    """Resolve a visualization identifier (None if unknown)."""
    return _enum_or_none(VisualizationType, value)


def kind_for_field(source: DataSource | str | None, field_id: str) -> ValueKind:
    """Value kind implied by a catalog field's type (TEXT when unknown)."""
    info = get_field(source, field_id)
    if info is None:
        return ValueKind.TEXT
    if info.field_type is FieldType.NUMBER:
        return ValueKind.NUMBER
    if info.field_type is FieldType.DATE:
        return ValueKind.DATE
    return ValueKind.TEXT


@dataclass(frozen=True)
class FilterValue:
    """A filter value as typed by the user, tagged with its kind."""

    kind: ValueKind = ValueKind.TEXT
    raw: str = ""

    @classmethod
    def text(cls, raw: str) -> "FilterValue":
        return cls(ValueKind.TEXT, raw)

    @classmethod
    def number(cls, raw: str) -> "FilterValue":
        return cls(ValueKind.NUMBER, raw)

    @classmethod
    def date(cls, raw: str) -> "FilterValue":
        return cls(ValueKind.DATE, raw)

    def as_number(self) -> float | None:
        """Numeric reading of the raw value, or None if it doesn't parse."""
        try:
            return float(self.raw.strip())
        except ValueError:
            return None

    def as_date(self) -> datetime | None:
        """Date reading of the raw value, or None if it doesn't parse."""
        return coerce_datetime(self.raw)

    def with_kind(self, kind: ValueKind) -> "FilterValue":
        return FilterValue(kind, self.raw)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "raw": self.raw}

    @classmethod
    def from_dict(cls, data: Any, default_kind: ValueKind = ValueKind.TEXT) -> "FilterValue":
        """Parse a stored value: a bare string or a ``{kind, raw}`` mapping."""
        if isinstance(data, FilterValue):
            return data
        if isinstance(data, dict):
            kind = _enum_or_none(ValueKind, data.get("kind")) or default_kind
            return cls(kind, str(data.get("raw", "")))
        if data is None:
            return cls(default_kind, "")
        return cls(default_kind, str(data))


@dataclass
class FilterPredicate:
    """A single ``field operator value`` filter."""

    field: str = ""
    operator: FilterOperator = FilterOperator.EQUALS
    value: FilterValue = FilterValue()

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value.to_dict(),
        }


@dataclass
class SortKey:
    """A single sort key; the first key in a list is the primary one."""

    field: str = ""
    direction: SortDirection = SortDirection.ASC

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "direction": self.direction.value}


@dataclass
class QueryConfiguration:
    """Declarative description of a report.

    Attributes:
        data_source: Source the report reads from (None until chosen).
        fields: Selected field identifiers, in column order.
        filters: Filter predicates, all of which must hold.
        sorting: Sort keys, primary first.
        grouping: Fields used by aggregating visualizations.
        visualization_type: How rows are displayed.
        comparison_fields: The two fields plotted by the comparison chart.
    """

    data_source: DataSource | None = None
    fields: list[str] = field(default_factory=list)
    filters: list[FilterPredicate] = field(default_factory=list)
    sorting: list[SortKey] = field(default_factory=list)
    grouping: list[str] = field(default_factory=list)
    visualization_type: VisualizationType = VisualizationType.TABLE
    comparison_fields: list[str] = field(default_factory=list)

    @property
    def is_runnable(self) -> bool:
        """Whether there is enough configuration to query the data store."""
        return self.data_source is not None and bool(
            valid_fields(self.data_source, self.fields)
        )

    def copy(self) -> "QueryConfiguration":
        """Deep copy, safe to hand to another owner."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored ``query_config`` shape."""
        return {
            "data_source": self.data_source.value if self.data_source else None,
            "fields": list(self.fields),
            "filters": [f.to_dict() for f in self.filters],
            "sorting": [s.to_dict() for s in self.sorting],
            "grouping": list(self.grouping),
            "visualization_type": self.visualization_type.value,
            "comparison_fields": list(self.comparison_fields),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        data_source: DataSource | str | None = None,
    ) -> "QueryConfiguration":
        """Create a configuration from a stored ``query_config`` mapping.

        Entries that can't be valid for the data source (unknown fields,
        operators or directions) are dropped rather than rejected.

        Args:
            data: Stored configuration.
            data_source: Overrides ``data["data_source"]`` when given.

        Returns:
            Parsed configuration.
        """
        source = parse_data_source(
            data_source if data_source is not None else data.get("data_source")
        )

        def known_or_blank(field_id: str) -> bool:
            return field_id == "" or get_field(source, field_id) is not None

        filters = []
        for raw in data.get("filters") or []:
            field_id = str(raw.get("field") or "")
            operator = parse_operator(raw.get("operator", FilterOperator.EQUALS.value))
            if operator is None or not known_or_blank(field_id):
                continue
            value = FilterValue.from_dict(
                raw.get("value"), default_kind=kind_for_field(source, field_id)
            )
            filters.append(FilterPredicate(field_id, operator, value))

        sorting = []
        for raw in data.get("sorting") or []:
            field_id = str(raw.get("field") or "")
            direction = parse_direction(raw.get("direction", SortDirection.ASC.value))
            if direction is None or not known_or_blank(field_id):
                continue
            sorting.append(SortKey(field_id, direction))

        return cls(
            data_source=source,
            fields=valid_fields(source, list(data.get("fields") or [])),
            filters=filters,
            sorting=sorting,
            grouping=valid_fields(source, list(data.get("grouping") or [])),
            visualization_type=(
                parse_visualization(data.get("visualization_type"))
                or VisualizationType.TABLE
            ),
            comparison_fields=valid_fields(
                source, list(data.get("comparison_fields") or [])
            ),
        )
