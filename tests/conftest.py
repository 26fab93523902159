"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path

import pytest
import yaml

from crm_reports.common.config import AppConfig, load_config
from crm_reports.notifications.notifier import CollectingNotifier
from crm_reports.storage.sqlite_store import SQLiteDataStore

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def dev_config_path(temp_dir: Path) -> Path:
    """Create a temporary dev config file."""
    config_data = {
        "environment": "test",
        "data_store": {
            "backend": "sqlite",
            "path": str(temp_dir / "crm.db"),
        },
        "logging": {
            "level": "DEBUG",
            "format": "console",
            "log_file": None,
        },
        "reporting": {
            "preview_limit": 50,
            "currency_symbol": "€",
            "pie_max_slices": 4,
            "reports_dir": str(temp_dir / "reports"),
        },
    }
    config_path = temp_dir / "test_config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def config(dev_config_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    """Load test configuration."""
    for name in (
        "CRM_REPORTS_DATA_STORE_URL",
        "CRM_REPORTS_DATA_STORE_KEY",
        "CRM_REPORTS_DB_PATH",
        "CRM_REPORTS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return load_config(dev_config_path)


@pytest.fixture
def notifier() -> CollectingNotifier:
    """Notifier that records everything it receives."""
    return CollectingNotifier()


def seed_crm(store: SQLiteDataStore) -> None:
    """Insert a small CRM data set for two tenants."""
    usd = store.insert("currencies", {"code": "USD", "name": "US Dollar", "symbol": "$"})
    rep = store.insert(
        "profiles", {"tenant_id": TENANT, "first_name": "Dana", "last_name": "Scully"}
    )

    store.insert_many(
        "contacts",
        [
            {
                "tenant_id": TENANT,
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "ada@example.com",
                "position": "CTO",
                "created_at": "2024-01-05T09:00:00",
            },
            {
                "tenant_id": TENANT,
                "first_name": "Alan",
                "last_name": "Turing",
                "email": "alan@example.com",
                "position": "Engineer",
                "created_at": "2024-02-10T09:00:00",
            },
            {
                "tenant_id": OTHER_TENANT,
                "first_name": "Grace",
                "last_name": "Hopper",
                "email": "grace@example.com",
                "position": "Admiral",
                "created_at": "2024-03-01T09:00:00",
            },
        ],
    )

    acme = store.insert(
        "customers",
        {"tenant_id": TENANT, "name": "Acme Corp", "type": "business", "city": "Austin"},
    )
    globex = store.insert(
        "customers",
        {"tenant_id": TENANT, "name": "Globex", "type": "business", "city": "Boston"},
    )
    store.insert(
        "customers",
        {"tenant_id": OTHER_TENANT, "name": "Initech", "type": "business"},
    )
    site = store.insert(
        "sites",
        {"tenant_id": TENANT, "customer_id": acme, "name": "Acme HQ", "city": "Austin"},
    )

    proposal = store.insert(
        "deal_stages", {"tenant_id": TENANT, "name": "Proposal", "position": 1}
    )
    closed = store.insert(
        "deal_stages", {"tenant_id": TENANT, "name": "Closed", "position": 2}
    )
    store.insert_many(
        "deals",
        [
            {
                "tenant_id": TENANT,
                "name": "Acme Renewal",
                "value": 5000.0,
                "status": "won",
                "probability": 100,
                "expected_close_date": "2024-03-01",
                "customer_id": acme,
                "stage_id": closed,
                "currency_id": usd,
                "assigned_to": rep,
                "created_at": "2024-01-10T10:00:00",
            },
            {
                "tenant_id": TENANT,
                "name": "Globex Expansion",
                "value": 12000.0,
                "status": "open",
                "probability": 40,
                "expected_close_date": "2024-06-30",
                "customer_id": globex,
                "stage_id": proposal,
                "currency_id": usd,
                "created_at": "2024-02-15T10:00:00",
            },
            {
                "tenant_id": TENANT,
                "name": "Acme Upsell",
                "value": 800.0,
                "status": "lost",
                "probability": 0,
                "customer_id": acme,
                "stage_id": proposal,
                "created_at": "2024-03-20T10:00:00",
            },
            {
                "tenant_id": OTHER_TENANT,
                "name": "Initech Deal",
                "value": 99999.0,
                "status": "won",
                "probability": 90,
                "created_at": "2024-01-01T10:00:00",
            },
        ],
    )

    contract = store.insert(
        "contracts",
        {
            "tenant_id": TENANT,
            "name": "Acme Service Agreement",
            "status": "active",
            "value": 24000.0,
            "signed_date": "2024-01-15",
            "customer_id": acme,
            "site_id": site,
            "currency_id": usd,
            "assigned_to": rep,
        },
    )
    store.insert(
        "contracts",
        {"tenant_id": TENANT, "name": "Globex Pilot", "status": "completed", "value": 3000.0},
    )

    due = store.insert("contract_payment_stages", {"tenant_id": TENANT, "name": "Due"})
    paid = store.insert("contract_payment_stages", {"tenant_id": TENANT, "name": "Paid"})
    first = store.insert(
        "contract_payment_terms",
        {
            "tenant_id": TENANT,
            "contract_id": contract,
            "installment_number": 1,
            "amount_type": "fixed",
            "amount_value": 12000.0,
            "calculated_amount": 12000.0,
            "due_date": "2024-02-01",
            "stage_id": paid,
        },
    )
    second = store.insert(
        "contract_payment_terms",
        {
            "tenant_id": TENANT,
            "contract_id": contract,
            "installment_number": 2,
            "amount_type": "percentage",
            "amount_value": 50,
            "calculated_amount": None,
            "due_date": "2024-08-01",
            "stage_id": due,
        },
    )
    store.insert_many(
        "contract_todos",
        [
            {"tenant_id": TENANT, "payment_term_id": first, "title": "Send invoice", "completed": 1},
            {"tenant_id": TENANT, "payment_term_id": second, "title": "Send invoice", "completed": 0},
            {"tenant_id": TENANT, "payment_term_id": second, "title": "Call customer", "completed": 0},
            {"tenant_id": TENANT, "payment_term_id": second, "title": "Confirm PO", "completed": 1},
        ],
    )


@pytest.fixture
def store(temp_dir: Path) -> SQLiteDataStore:
    """Create a migrated SQLite store seeded with CRM data."""
    data_store = SQLiteDataStore(temp_dir / "crm.db")
    data_store.connect()
    data_store.migrate()
    seed_crm(data_store)
    yield data_store
    data_store.disconnect()
