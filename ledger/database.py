"""
SQLite persistence layer for the document ledger.

A single database file (output/ledger.db) holds clients, purchase orders,
invoices, their line items, the invoice <-> purchase link table, finance
records, the settings document and the document-number counters.

Every other component reaches the store through a ``Database`` handle that
is constructed once and passed in explicitly.  Connections are scoped:

  connection()   autocommit connection for reads and single statements
  transaction()  BEGIN IMMEDIATE ... COMMIT, ROLLBACK on any exception

``BEGIN IMMEDIATE`` takes the database write lock up front, so concurrent
writers queue on the busy timeout instead of interleaving.  Each scope also
carries a deadline; a statement still running past it is interrupted and
the enclosing transaction rolls back.
"""
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS clients (
    id                            TEXT PRIMARY KEY,
    company                       TEXT NOT NULL,
    contact_person                TEXT NOT NULL,
    email                         TEXT NOT NULL,
    phone                         TEXT NOT NULL,
    status                        TEXT NOT NULL DEFAULT 'active',

    -- Tax identifiers (free-form)
    gst_number                    TEXT NOT NULL DEFAULT '',
    msme_number                   TEXT NOT NULL DEFAULT '',
    pan_number                    TEXT NOT NULL DEFAULT '',

    billing_address_street        TEXT NOT NULL DEFAULT '',
    billing_address_city          TEXT NOT NULL DEFAULT '',
    billing_address_state         TEXT NOT NULL DEFAULT '',
    billing_address_postal_code   TEXT NOT NULL DEFAULT '',
    billing_address_country       TEXT NOT NULL DEFAULT '',
    shipping_address_street       TEXT NOT NULL DEFAULT '',
    shipping_address_city         TEXT NOT NULL DEFAULT '',
    shipping_address_state        TEXT NOT NULL DEFAULT '',
    shipping_address_postal_code  TEXT NOT NULL DEFAULT '',
    shipping_address_country      TEXT NOT NULL DEFAULT '',

    notes                         TEXT NOT NULL DEFAULT '',
    base_currency                 TEXT NOT NULL DEFAULT 'INR',
    created_at                    TEXT NOT NULL,
    updated_at                    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_clients_created_at ON clients (created_at DESC);

CREATE TABLE IF NOT EXISTS purchases (
    id             TEXT PRIMARY KEY,
    client_id      TEXT NOT NULL REFERENCES clients (id),
    po_number      TEXT NOT NULL DEFAULT '',   -- unique per year by convention only
    date           TEXT NOT NULL,              -- YYYY-MM-DD
    status         TEXT NOT NULL DEFAULT 'pending',
    subtotal       REAL NOT NULL DEFAULT 0,
    tax            REAL NOT NULL DEFAULT 0,
    total          REAL NOT NULL DEFAULT 0,
    base_currency  TEXT NOT NULL DEFAULT 'INR',
    notes          TEXT NOT NULL DEFAULT '',
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_purchases_status     ON purchases (status);
CREATE INDEX IF NOT EXISTS idx_purchases_client     ON purchases (client_id);
CREATE INDEX IF NOT EXISTS idx_purchases_po_number  ON purchases (po_number);
CREATE INDEX IF NOT EXISTS idx_purchases_created_at ON purchases (created_at DESC);

CREATE TABLE IF NOT EXISTS purchase_items (
    id           TEXT PRIMARY KEY,
    purchase_id  TEXT NOT NULL REFERENCES purchases (id) ON DELETE CASCADE,
    position     INTEGER NOT NULL,
    name         TEXT NOT NULL DEFAULT '',
    model        TEXT NOT NULL DEFAULT '',
    supplier     TEXT NOT NULL DEFAULT '',
    quantity     REAL NOT NULL DEFAULT 0,
    unit_price   REAL NOT NULL DEFAULT 0,
    uom          TEXT NOT NULL DEFAULT '',
    currency     TEXT NOT NULL,
    total        REAL NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_purchase_items_parent ON purchase_items (purchase_id, position);

CREATE TABLE IF NOT EXISTS invoices (
    id              TEXT PRIMARY KEY,
    client_id       TEXT NOT NULL REFERENCES clients (id),
    invoice_number  TEXT NOT NULL UNIQUE,
    date            TEXT NOT NULL,             -- YYYY-MM-DD
    due_date        TEXT NOT NULL,             -- YYYY-MM-DD
    status          TEXT NOT NULL DEFAULT 'draft',
    subtotal        REAL NOT NULL DEFAULT 0,
    tax             REAL NOT NULL DEFAULT 0,
    total           REAL NOT NULL DEFAULT 0,
    payment_terms   TEXT NOT NULL DEFAULT '30',
    notes           TEXT NOT NULL DEFAULT '',
    base_currency   TEXT NOT NULL DEFAULT 'INR',
    paid_at         TEXT,                      -- set once, on the first move to 'paid'
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_invoices_status     ON invoices (status);
CREATE INDEX IF NOT EXISTS idx_invoices_client     ON invoices (client_id);
CREATE INDEX IF NOT EXISTS idx_invoices_created_at ON invoices (created_at DESC);

CREATE TABLE IF NOT EXISTS invoice_items (
    id           TEXT PRIMARY KEY,
    invoice_id   TEXT NOT NULL REFERENCES invoices (id) ON DELETE CASCADE,
    purchase_id  TEXT REFERENCES purchases (id) ON DELETE SET NULL,
    po_number    TEXT NOT NULL DEFAULT '',
    position     INTEGER NOT NULL,
    name         TEXT NOT NULL DEFAULT '',
    model        TEXT NOT NULL DEFAULT '',
    supplier     TEXT NOT NULL DEFAULT '',
    quantity     REAL NOT NULL DEFAULT 0,
    unit_price   REAL NOT NULL DEFAULT 0,
    uom          TEXT NOT NULL DEFAULT '',
    currency     TEXT NOT NULL,
    total        REAL NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_invoice_items_parent ON invoice_items (invoice_id, position);

CREATE TABLE IF NOT EXISTS invoice_purchases (
    invoice_id   TEXT NOT NULL REFERENCES invoices (id)  ON DELETE CASCADE,
    purchase_id  TEXT NOT NULL REFERENCES purchases (id) ON DELETE CASCADE,
    created_at   TEXT NOT NULL,
    PRIMARY KEY (invoice_id, purchase_id)
);

CREATE INDEX IF NOT EXISTS idx_invoice_purchases_purchase ON invoice_purchases (purchase_id);

CREATE TABLE IF NOT EXISTS finance_records (
    id              TEXT PRIMARY KEY,
    type            TEXT NOT NULL,             -- invested | expense | tds | ...
    category        TEXT NOT NULL,
    amount          REAL NOT NULL DEFAULT 0,
    description     TEXT NOT NULL DEFAULT '',
    date            TEXT NOT NULL,
    payment_method  TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'completed',
    reference       TEXT,
    tax_year        TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_finance_type       ON finance_records (type);
CREATE INDEX IF NOT EXISTS idx_finance_status     ON finance_records (status);
CREATE INDEX IF NOT EXISTS idx_finance_created_at ON finance_records (created_at DESC);

CREATE TABLE IF NOT EXISTS settings (
    id          TEXT PRIMARY KEY,
    key         TEXT NOT NULL UNIQUE,
    value       TEXT NOT NULL,                 -- JSON document
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

-- One snapshot per settings write, newest has the highest seq
CREATE TABLE IF NOT EXISTS settings_history (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    id          TEXT NOT NULL,
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,                 -- JSON document as written
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS document_sequences (
    scheme  TEXT    NOT NULL,                  -- INV | PO
    year    INTEGER NOT NULL,
    value   INTEGER NOT NULL,
    PRIMARY KEY (scheme, year)
);
"""


def utcnow_iso() -> str:
    """Current UTC time as a fixed-width ISO-8601 string (sortable as text)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def new_id() -> str:
    return str(uuid.uuid4())


class Database:
    """Thin wrapper around an SQLite database file; the single gateway to the store."""

    def __init__(
        self,
        db_path: Path,
        timeout: float = 5.0,
        statement_timeout: float = 30.0,
    ) -> None:
        self.db_path = db_path
        self.timeout = timeout
        self.statement_timeout = statement_timeout
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: no implicit BEGIN, transactions are explicit
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA synchronous=NORMAL")
        self._arm_deadline(conn)
        return conn

    def _arm_deadline(self, conn: sqlite3.Connection) -> None:
        if self.statement_timeout <= 0:
            return
        deadline = time.monotonic() + self.statement_timeout
        # Non-zero return aborts the running statement with "interrupted"
        conn.set_progress_handler(lambda: int(time.monotonic() > deadline), 1000)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Scoped write transaction.  Commits when the block exits normally,
        rolls back and re-raises on any exception.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                # An interrupted statement may already have ended the transaction
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict]:
        with self.connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[dict]:
        with self.connection() as conn:
            row = conn.execute(sql, params).fetchone()
        return dict(row) if row else None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one write statement in its own transaction; returns rows changed."""
        with self.transaction() as conn:
            return conn.execute(sql, params).rowcount

    def ping(self) -> bool:
        """Round-trip a trivial statement.  Raises on failure."""
        with self.connection() as conn:
            conn.execute("SELECT 1").fetchone()
        return True
