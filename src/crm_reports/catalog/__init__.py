"""Data sources, field catalogs and KPI tables."""

from crm_reports.catalog.data_sources import (
    FIELD_CATALOG,
    DataSource,
    FieldInfo,
    FieldType,
    format_field_name,
    get_field,
    get_fields,
    is_valid_field,
    parse_data_source,
    valid_fields,
)
from crm_reports.catalog.kpis import (
    KpiDefinition,
    KpiFormat,
    KpiIcon,
    KpiValue,
    compute_kpis,
    to_number,
)
from crm_reports.catalog.registry import (
    DATA_SOURCE_REGISTRY,
    DataSourceDefinition,
    get_definition,
    list_definitions,
)

__all__ = [
    "FIELD_CATALOG",
    "DataSource",
    "FieldInfo",
    "FieldType",
    "format_field_name",
    "get_field",
    "get_fields",
    "is_valid_field",
    "parse_data_source",
    "valid_fields",
    "KpiDefinition",
    "KpiFormat",
    "KpiIcon",
    "KpiValue",
    "compute_kpis",
    "to_number",
    "DATA_SOURCE_REGISTRY",
    "DataSourceDefinition",
    "get_definition",
    "list_definitions",
]
