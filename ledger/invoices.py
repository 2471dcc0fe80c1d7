"""
Invoice repository.

Creating an invoice is one transaction covering: number allocation (when
the caller sent none), the invoice row, its items in order, and the links
to the purchase orders it was built from.  Any failure leaves none of it
behind.

Status moves to ``paid`` stamp ``paid_at`` once; later moves keep the
original stamp.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Mapping, Optional

from models.invoice import Invoice, InvoiceInput, InvoiceItemInput

from .database import Database, new_id, utcnow_iso
from .documents import (
    column_values, fetch_items, fetch_purchase_ids, insert_items,
    link_purchases, replace_items, replace_purchase_links, today_iso,
)
from .listing import ListEngine, ListPage, ResourceSpec
from .patch import UpdateStatement
from .sequences import SequenceGenerator

logger = logging.getLogger(__name__)

STATUS_DRAFT   = "draft"
STATUS_SENT    = "sent"
STATUS_PAID    = "paid"
STATUS_OVERDUE = "overdue"

INVOICES = ResourceSpec(
    table="invoices",
    filters={"status": "status", "clientId": "client_id"},
    range_filters={
        "createdFrom": ("created_at", ">="),
        "createdTo":   ("created_at", "<="),
    },
    sort_columns={"createdAt": "created_at", "date": "date", "dueDate": "due_date"},
    default_limit=25,
    max_limit=500,
)


def _line_links(item: InvoiceItemInput) -> dict:
    # Empty strings from older clients mean "no purchase"
    return {
        "purchase_id": item.purchase_id or None,
        "po_number": item.po_number or "",
    }


class InvoiceRepository:
    """Reads and transactional writes for invoices."""

    def __init__(
        self,
        db: Database,
        sequences: Optional[SequenceGenerator] = None,
        default_currency: str = "INR",
        default_payment_terms: str = "30",
    ) -> None:
        self.db = db
        self.sequences = sequences or SequenceGenerator()
        self.default_currency = default_currency
        self.default_payment_terms = default_payment_terms
        self.engine = ListEngine(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _assemble(self, conn: sqlite3.Connection, row: Mapping[str, Any]) -> Invoice:
        items = fetch_items(conn, "invoice_items", "invoice_id", row["id"])
        return Invoice.from_row(dict(row), items, fetch_purchase_ids(conn, row["id"]))

    def _fetch(self, conn: sqlite3.Connection, invoice_id: str) -> Optional[Invoice]:
        row = conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
        return self._assemble(conn, row) if row else None

    def hydrate(self, rows: list[dict]) -> list[Invoice]:
        with self.db.connection() as conn:
            return [self._assemble(conn, r) for r in rows]

    def get(self, invoice_id: str) -> Optional[Invoice]:
        """Fully joined invoice (items and purchase links), or None."""
        with self.db.connection() as conn:
            return self._fetch(conn, invoice_id)

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order: Optional[str] = "desc",
        sort_by: Optional[str] = None,
        limit: Any = None,
        page_token: Optional[str] = None,
    ) -> tuple[list[Invoice], ListPage]:
        page = self.engine.fetch_page(
            INVOICES, filters, order=order, sort_by=sort_by,
            limit=limit, page_token=page_token,
        )
        return self.hydrate(page.rows), page

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: InvoiceInput) -> Invoice:
        now = utcnow_iso()
        invoice_id = new_id()
        base_currency = data.base_currency or self.default_currency
        invoice_date = today_iso(data.date)
        status = data.status or STATUS_DRAFT

        if data.purchase_ids is not None:
            purchase_ids = data.purchase_ids
        elif data.purchase_id:
            purchase_ids = [data.purchase_id]
        else:
            purchase_ids = []

        with self.db.transaction() as conn:
            number = (data.invoice_number or "").strip() or self.sequences.next_invoice_number(conn)
            conn.execute(
                """
                INSERT INTO invoices (
                    id, client_id, invoice_number, date, due_date, status,
                    subtotal, tax, total, payment_terms, notes, base_currency,
                    paid_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invoice_id,
                    data.client_id or "",
                    number,
                    invoice_date,
                    data.due_date.isoformat() if data.due_date else invoice_date,
                    status,
                    data.subtotal if data.subtotal is not None else 0,
                    data.tax if data.tax is not None else 0,
                    data.total if data.total is not None else 0,
                    data.payment_terms or self.default_payment_terms,
                    data.notes or "",
                    base_currency,
                    now if status == STATUS_PAID else None,
                    now,
                    now,
                ),
            )
            count = insert_items(
                conn, "invoice_items", "invoice_id", invoice_id,
                data.items or [], base_currency, now, extra=_line_links,
            )
            link_purchases(conn, invoice_id, purchase_ids, now)
            invoice = self._fetch(conn, invoice_id)

        logger.info(
            "Invoice created: %s  %s  items=%d  purchases=%d",
            invoice_id, number, count, len(invoice.purchase_ids),
        )
        return invoice

    def update(self, invoice_id: str, data: InvoiceInput) -> Optional[Invoice]:
        """
        Partial update.  ``items`` present replaces every line; ``purchase_ids``
        present replaces every link.  Returns None when the invoice does not
        exist.
        """
        now = utcnow_iso()
        changes = column_values(data.model_dump(
            exclude_unset=True, exclude={"items", "purchase_ids", "purchase_id"},
        ))
        stmt = UpdateStatement("invoices")
        if changes.get("status") == STATUS_PAID:
            stmt.set_raw("paid_at = COALESCE(paid_at, ?)", now)
        stmt.set_many(changes)

        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT id, base_currency FROM invoices WHERE id = ?", (invoice_id,)
            ).fetchone()
            if row is None:
                return None

            conn.execute(*stmt.build(invoice_id, now))

            if data.items is not None:
                currency = changes.get("base_currency") or row["base_currency"] or self.default_currency
                replace_items(
                    conn, "invoice_items", "invoice_id", invoice_id,
                    data.items, currency, now, extra=_line_links,
                )
            if data.purchase_ids is not None:
                replace_purchase_links(conn, invoice_id, data.purchase_ids, now)

        logger.info("Invoice updated: %s  fields=%s", invoice_id, sorted(changes))
        return self.get(invoice_id)

    def set_status(self, invoice_id: str, status: str) -> Optional[Invoice]:
        """Status-only change, with the same paid-at rule as ``update``."""
        return self.update(invoice_id, InvoiceInput(status=status))

    def delete(self, invoice_id: str) -> bool:
        """Delete an invoice; its items and purchase links go with it."""
        with self.db.transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM invoices WHERE id = ?", (invoice_id,)
            ).rowcount > 0
        if deleted:
            logger.info("Invoice deleted: %s", invoice_id)
        return deleted
