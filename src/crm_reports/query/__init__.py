"""Query configuration model and builder."""

from crm_reports.query.builder import QueryBuilder
from crm_reports.query.model import (
    FilterOperator,
    FilterPredicate,
    FilterValue,
    QueryConfiguration,
    SortDirection,
    SortKey,
    ValueKind,
    VisualizationType,
    kind_for_field,
)

__all__ = [
    "QueryBuilder",
    "FilterOperator",
    "FilterPredicate",
    "FilterValue",
    "QueryConfiguration",
    "SortDirection",
    "SortKey",
    "ValueKind",
    "VisualizationType",
    "kind_for_field",
]
