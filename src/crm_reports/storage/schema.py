"""SQLite schema for the local CRM data store.

Simple sources (contacts, companies, customers, sites) are read straight from
their tables. Deals, contracts and contract payments are read from report views
that flatten the related customer, site, stage, currency and salesperson rows
into plain columns, so every source can be queried the same way.
"""

SCHEMA_VERSION = 3

MIGRATION_V1 = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS currencies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT UNIQUE NOT NULL,
    name TEXT,
    symbol TEXT
);

CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    email TEXT
);

CREATE TABLE IF NOT EXISTS contacts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    phone TEXT,
    position TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_contacts_tenant ON contacts(tenant_id);

CREATE TABLE IF NOT EXISTS companies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    website TEXT,
    industry TEXT,
    size TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_companies_tenant ON companies(tenant_id);

CREATE TABLE IF NOT EXISTS customers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT,
    email TEXT,
    phone TEXT,
    city TEXT,
    country TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_customers_tenant ON customers(tenant_id);

CREATE TABLE IF NOT EXISTS sites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    customer_id INTEGER REFERENCES customers(id),
    name TEXT NOT NULL,
    address TEXT,
    city TEXT,
    state TEXT,
    country TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_sites_tenant ON sites(tenant_id);
"""

MIGRATION_V2 = """
CREATE TABLE IF NOT EXISTS deal_stages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS deals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    value REAL,
    status TEXT NOT NULL DEFAULT 'open',
    probability REAL,
    expected_close_date TEXT,
    customer_id INTEGER REFERENCES customers(id),
    stage_id INTEGER REFERENCES deal_stages(id),
    currency_id INTEGER REFERENCES currencies(id),
    assigned_to INTEGER REFERENCES profiles(id),
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_deals_tenant ON deals(tenant_id);
CREATE INDEX IF NOT EXISTS idx_deals_status ON deals(status);

CREATE VIEW IF NOT EXISTS deals_report AS
SELECT
    d.id,
    d.tenant_id,
    d.name,
    d.value,
    d.status,
    d.probability,
    d.expected_close_date,
    d.created_at,
    COALESCE(c.name, '') AS customer_name,
    COALESCE(s.name, '') AS stage_name,
    COALESCE(cur.code, '') AS currency_code,
    CASE WHEN p.id IS NULL THEN ''
         ELSE TRIM(COALESCE(p.first_name, '') || ' ' || COALESCE(p.last_name, ''))
    END AS assigned_salesperson
FROM deals d
LEFT JOIN customers c ON c.id = d.customer_id
LEFT JOIN deal_stages s ON s.id = d.stage_id
LEFT JOIN currencies cur ON cur.id = d.currency_id
LEFT JOIN profiles p ON p.id = d.assigned_to;
"""

MIGRATION_V3 = """
CREATE TABLE IF NOT EXISTS contracts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    value REAL,
    signed_date TEXT,
    start_date TEXT,
    end_date TEXT,
    customer_reference_number TEXT,
    customer_id INTEGER REFERENCES customers(id),
    site_id INTEGER REFERENCES sites(id),
    currency_id INTEGER REFERENCES currencies(id),
    assigned_to INTEGER REFERENCES profiles(id),
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_contracts_tenant ON contracts(tenant_id);
CREATE INDEX IF NOT EXISTS idx_contracts_status ON contracts(status);

CREATE TABLE IF NOT EXISTS contract_payment_stages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS contract_payment_terms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    contract_id INTEGER NOT NULL REFERENCES contracts(id),
    installment_number INTEGER NOT NULL,
    amount_type TEXT NOT NULL DEFAULT 'fixed',
    amount_value REAL,
    calculated_amount REAL,
    due_date TEXT,
    stage_id INTEGER REFERENCES contract_payment_stages(id),
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_payment_terms_tenant ON contract_payment_terms(tenant_id);
CREATE INDEX IF NOT EXISTS idx_payment_terms_contract ON contract_payment_terms(contract_id);

CREATE TABLE IF NOT EXISTS contract_todos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id TEXT NOT NULL,
    payment_term_id INTEGER NOT NULL REFERENCES contract_payment_terms(id),
    title TEXT NOT NULL,
    completed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_contract_todos_term ON contract_todos(payment_term_id);

CREATE VIEW IF NOT EXISTS contracts_report AS
SELECT
    k.id,
    k.tenant_id,
    k.name,
    k.status,
    k.value,
    k.signed_date,
    k.start_date,
    k.end_date,
    k.customer_reference_number,
    k.created_at,
    COALESCE(c.name, '') AS customer_name,
    COALESCE(s.name, '') AS site_name,
    COALESCE(cur.code, '') AS currency_code,
    CASE WHEN p.id IS NULL THEN ''
         ELSE TRIM(COALESCE(p.first_name, '') || ' ' || COALESCE(p.last_name, ''))
    END AS assigned_salesperson
FROM contracts k
LEFT JOIN customers c ON c.id = k.customer_id
LEFT JOIN sites s ON s.id = k.site_id
LEFT JOIN currencies cur ON cur.id = k.currency_id
LEFT JOIN profiles p ON p.id = k.assigned_to;

-- todos_count holds open to-dos; completed ones are counted separately
CREATE VIEW IF NOT EXISTS contract_payments_report AS
SELECT
    t.id,
    t.tenant_id,
    t.contract_id,
    k.name AS contract_name,
    t.installment_number,
    t.amount_type,
    t.amount_value,
    t.calculated_amount,
    t.due_date,
    t.created_at,
    COALESCE(st.name, '') AS stage_name,
    COALESCE(c.name, '') AS customer_name,
    CASE WHEN p.id IS NULL THEN ''
         ELSE TRIM(COALESCE(p.first_name, '') || ' ' || COALESCE(p.last_name, ''))
    END AS assigned_salesperson,
    COALESCE(cur.code, '') AS currency_code,
    (SELECT COUNT(*) FROM contract_todos td
      WHERE td.payment_term_id = t.id AND td.completed = 0) AS todos_count,
    (SELECT COUNT(*) FROM contract_todos td
      WHERE td.payment_term_id = t.id AND td.completed != 0) AS todos_completed_count
FROM contract_payment_terms t
JOIN contracts k ON k.id = t.contract_id
LEFT JOIN contract_payment_stages st ON st.id = t.stage_id
LEFT JOIN customers c ON c.id = k.customer_id
LEFT JOIN currencies cur ON cur.id = k.currency_id
LEFT JOIN profiles p ON p.id = k.assigned_to;
"""

MIGRATIONS: dict[int, str] = {
    1: MIGRATION_V1,
    2: MIGRATION_V2,
    3: MIGRATION_V3,
}
