"""Data sources and their field catalogs.

Every report is built against exactly one data source. Each source exposes a
fixed, ordered catalog of selectable fields; the catalog is the validation
boundary for the query builder and the report executor. A field identifier that
is not in the catalog of the active source is invalid and never reaches the
data store or the visualizer.

Field types drive how filter values are interpreted:
- TEXT: compared lexically
- NUMBER: compared numerically
- DATE: compared chronologically (ISO 8601)
- BOOLEAN: equality only
"""

from dataclasses import dataclass
from enum import Enum


class DataSource(str, Enum):
    """Backing collections a report can be built on."""

    CONTACTS = "contacts"
    COMPANIES = "companies"
    DEALS = "deals"
    SITES = "sites"
    CUSTOMERS = "customers"
    CONTRACTS = "contracts"
    CONTRACT_PAYMENTS = "contract_payments"


class FieldType(str, Enum):
    """Value type of a catalog field."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldInfo:
    """A selectable field of a data source."""

    identifier: str
    label: str
    field_type: FieldType = FieldType.TEXT


def _text(identifier: str, label: str) -> FieldInfo:
    return FieldInfo(identifier, label, FieldType.TEXT)


def _number(identifier: str, label: str) -> FieldInfo:
    return FieldInfo(identifier, label, FieldType.NUMBER)


def _date(identifier: str, label: str) -> FieldInfo:
    return FieldInfo(identifier, label, FieldType.DATE)


# =============================================================================
# FIELD CATALOG - selectable fields per data source, in display order
# =============================================================================

FIELD_CATALOG: dict[DataSource, tuple[FieldInfo, ...]] = {
    DataSource.CONTACTS: (
        _text("first_name", "First Name"),
        _text("last_name", "Last Name"),
        _text("email", "Email"),
        _text("phone", "Phone"),
        _text("position", "Position"),
        _date("created_at", "Created Date"),
    ),
    DataSource.COMPANIES: (
        _text("name", "Company Name"),
        _text("email", "Email"),
        _text("phone", "Phone"),
        _text("website", "Website"),
        _text("industry", "Industry"),
        _text("size", "Size"),
        _date("created_at", "Created Date"),
    ),
    DataSource.DEALS: (
        _text("name", "Deal Name"),
        _number("value", "Deal Value"),
        _text("status", "Status"),
        _number("probability", "Probability"),
        _date("expected_close_date", "Expected Close Date"),
        _date("created_at", "Created Date"),
        _text("customer_name", "Customer"),
        _text("stage_name", "Stage"),
        _text("currency_code", "Currency"),
        _text("assigned_salesperson", "Salesperson"),
    ),
    DataSource.SITES: (
        _text("name", "Site Name"),
        _text("address", "Address"),
        _text("city", "City"),
        _text("state", "State"),
        _text("country", "Country"),
        _date("created_at", "Created Date"),
    ),
    DataSource.CUSTOMERS: (
        _text("name", "Customer Name"),
        _text("type", "Type"),
        _text("email", "Email"),
        _text("phone", "Phone"),
        _text("city", "City"),
        _text("country", "Country"),
        _date("created_at", "Created Date"),
    ),
    DataSource.CONTRACTS: (
        _text("name", "Contract Name"),
        _text("status", "Status"),
        _number("value", "Contract Value"),
        _date("signed_date", "Signed Date"),
        _date("start_date", "Start Date"),
        _date("end_date", "End Date"),
        _text("customer_reference_number", "Customer Reference"),
        _date("created_at", "Created Date"),
        _text("customer_name", "Customer"),
        _text("site_name", "Site"),
        _text("currency_code", "Currency"),
        _text("assigned_salesperson", "Salesperson"),
    ),
    DataSource.CONTRACT_PAYMENTS: (
        _text("contract_name", "Contract"),
        _number("installment_number", "Installment"),
        _text("amount_type", "Amount Type"),
        _number("amount_value", "Amount Value"),
        _number("calculated_amount", "Calculated Amount"),
        _date("due_date", "Due Date"),
        _date("created_at", "Created Date"),
        _text("stage_name", "Stage"),
        _text("customer_name", "Customer"),
        _text("assigned_salesperson", "Salesperson"),
        _text("currency_code", "Currency"),
        _number("todos_count", "Open To-Dos"),
        _number("todos_completed_count", "Completed To-Dos"),
    ),
}


def parse_data_source(value: "DataSource | str | None") -> DataSource | None:
    """Resolve a data source from its identifier.

    Args:
        value: Enum member, identifier string, or None.

    Returns:
        The matching DataSource, or None for empty/unknown values.
    """
    if value is None or isinstance(value, DataSource):
        return value
    try:
        return DataSource(value)
    except ValueError:
        return None


def get_fields(source: DataSource | str | None) -> tuple[FieldInfo, ...]:
    """Get the ordered field catalog for a data source (empty if unknown)."""
    resolved = parse_data_source(source)
    if resolved is None:
        return ()
    return FIELD_CATALOG[resolved]


def get_field(source: DataSource | str | None, identifier: str) -> FieldInfo | None:
    """Look up a single catalog field."""
    for info in get_fields(source):
        if info.identifier == identifier:
            return info
    return None


def is_valid_field(source: DataSource | str | None, identifier: str) -> bool:
    """Check whether a field identifier belongs to the source's catalog."""
    return get_field(source, identifier) is not None


def valid_fields(source: DataSource | str | None, identifiers: list[str]) -> list[str]:
    """Keep the catalog-valid identifiers, preserving order and dropping repeats."""
    catalog = {info.identifier for info in get_fields(source)}
    result: list[str] = []
    for identifier in identifiers:
        if identifier in catalog and identifier not in result:
            result.append(identifier)
    return result


def format_field_name(identifier: str) -> str:
    """Turn a snake_case identifier into a display label.

    >>> format_field_name("expected_close_date")
    'Expected Close Date'
    """
    return " ".join(word[:1].upper() + word[1:] for word in identifier.split("_"))
