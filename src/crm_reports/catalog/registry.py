"""Registry resolving every data source to its full definition."""

from dataclasses import dataclass

from crm_reports.catalog.data_sources import (
    FIELD_CATALOG,
    DataSource,
    FieldInfo,
    format_field_name,
    parse_data_source,
)
from crm_reports.catalog.kpis import (
    CONTRACT_KPIS,
    CONTRACT_PAYMENT_KPIS,
    DEAL_KPIS,
    GENERIC_KPIS,
    KpiDefinition,
)


@dataclass(frozen=True)
class DataSourceDefinition:
    """Everything the reporting subsystem knows about a data source.

    Attributes:
        source: The data source.
        label: Display label.
        table: Relation read from the data store. Sources whose rows join
            several tables read from a flattened report view.
        fields: Ordered field catalog.
        kpis: KPI card table.
        tenant_scoped: Whether rows are filtered by tenant.
    """

    source: DataSource
    label: str
    table: str
    fields: tuple[FieldInfo, ...]
    kpis: tuple[KpiDefinition, ...]
    tenant_scoped: bool = True


def _definition(
    source: DataSource,
    kpis: tuple[KpiDefinition, ...] = GENERIC_KPIS,
    table: str | None = None,
) -> DataSourceDefinition:
    return DataSourceDefinition(
        source=source,
        label=format_field_name(source.value),
        table=table or source.value,
        fields=FIELD_CATALOG[source],
        kpis=kpis,
    )


DATA_SOURCE_REGISTRY: dict[DataSource, DataSourceDefinition] = {
    DataSource.CONTACTS: _definition(DataSource.CONTACTS),
    DataSource.COMPANIES: _definition(DataSource.COMPANIES),
    DataSource.DEALS: _definition(DataSource.DEALS, DEAL_KPIS, table="deals_report"),
    DataSource.SITES: _definition(DataSource.SITES),
    DataSource.CUSTOMERS: _definition(DataSource.CUSTOMERS),
    DataSource.CONTRACTS: _definition(
        DataSource.CONTRACTS, CONTRACT_KPIS, table="contracts_report"
    ),
    DataSource.CONTRACT_PAYMENTS: _definition(
        DataSource.CONTRACT_PAYMENTS,
        CONTRACT_PAYMENT_KPIS,
        table="contract_payments_report",
    ),
}

_missing = set(DataSource) - set(DATA_SOURCE_REGISTRY)
if _missing:
    raise RuntimeError(f"Data sources without a definition: {sorted(_missing)}")


def get_definition(source: DataSource | str) -> DataSourceDefinition:
    """Resolve a data source to its definition.

    Args:
        source: Data source enum member or identifier.

    Returns:
        The data source definition.

    Raises:
        KeyError: If the identifier is not a known data source.
    """
    resolved = parse_data_source(source)
    if resolved is None:
        raise KeyError(f"Unknown data source: {source!r}")
    return DATA_SOURCE_REGISTRY[resolved]


def list_definitions() -> list[DataSourceDefinition]:
    """All data source definitions in enum order."""
    return [DATA_SOURCE_REGISTRY[source] for source in DataSource]
