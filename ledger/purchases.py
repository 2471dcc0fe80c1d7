"""
Purchase order repository.

A purchase order and its items are written together in one transaction.
Amounts (subtotal / tax / total) are stored as the caller sent them; they
are not recomputed from the items.

When the caller sends no PO number one is allocated from the PO sequence;
a caller-supplied number is stored verbatim with no collision check.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Mapping, Optional

from models.purchase_order import Purchase, PurchaseInput

from .database import Database, new_id, utcnow_iso
from .documents import column_values, fetch_items, insert_items, replace_items, today_iso
from .listing import ListEngine, ListPage, ResourceSpec
from .patch import UpdateStatement
from .sequences import SequenceGenerator

logger = logging.getLogger(__name__)

STATUS_PENDING   = "pending"
STATUS_APPROVED  = "approved"
STATUS_REJECTED  = "rejected"
STATUS_COMPLETED = "completed"
ALL_STATUSES     = {STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED}

PURCHASES = ResourceSpec(
    table="purchases",
    filters={"status": "status", "clientId": "client_id"},
    prefix_filters={"poPrefix": "po_number"},
    sort_columns={"createdAt": "created_at", "date": "date"},
    default_limit=25,
    max_limit=500,
)

# Same protocol, larger default page
PURCHASES_BY_CLIENT = ResourceSpec(
    table="purchases",
    filters={"clientId": "client_id"},
    sort_columns={"createdAt": "created_at", "date": "date"},
    default_limit=50,
    max_limit=500,
)


class PurchaseRepository:
    """Reads and transactional writes for purchase orders."""

    def __init__(
        self,
        db: Database,
        sequences: Optional[SequenceGenerator] = None,
        default_currency: str = "INR",
    ) -> None:
        self.db = db
        self.sequences = sequences or SequenceGenerator()
        self.default_currency = default_currency
        self.engine = ListEngine(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _assemble(self, conn: sqlite3.Connection, row: Mapping[str, Any]) -> Purchase:
        items = fetch_items(conn, "purchase_items", "purchase_id", row["id"])
        return Purchase.from_row(dict(row), items)

    def hydrate(self, rows: list[dict]) -> list[Purchase]:
        with self.db.connection() as conn:
            return [self._assemble(conn, r) for r in rows]

    def get(self, purchase_id: str) -> Optional[Purchase]:
        """Return the purchase with its items, or None."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM purchases WHERE id = ?", (purchase_id,)
            ).fetchone()
            return self._assemble(conn, row) if row else None

    def get_many(self, ids: list[str]) -> list[Purchase]:
        """Purchases for *ids*; unknown ids are skipped."""
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = self.db.query(
            f"SELECT * FROM purchases WHERE id IN ({placeholders}) ORDER BY created_at DESC",
            ids,
        )
        return self.hydrate(rows)

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order: Optional[str] = "desc",
        sort_by: Optional[str] = None,
        limit: Any = None,
        page_token: Optional[str] = None,
    ) -> tuple[list[Purchase], ListPage]:
        page = self.engine.fetch_page(
            PURCHASES, filters, order=order, sort_by=sort_by,
            limit=limit, page_token=page_token,
        )
        return self.hydrate(page.rows), page

    def list_by_client(
        self,
        client_id: str,
        *,
        order: Optional[str] = "desc",
        limit: Any = None,
        page_token: Optional[str] = None,
    ) -> tuple[list[Purchase], ListPage]:
        page = self.engine.fetch_page(
            PURCHASES_BY_CLIENT, {"clientId": client_id},
            order=order, limit=limit, page_token=page_token,
        )
        return self.hydrate(page.rows), page

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: PurchaseInput) -> Purchase:
        """Insert a purchase and its items atomically."""
        now = utcnow_iso()
        purchase_id = new_id()
        base_currency = data.base_currency or self.default_currency

        with self.db.transaction() as conn:
            po_number = (data.po_number or "").strip() or self.sequences.next_purchase_number(conn)
            conn.execute(
                """
                INSERT INTO purchases (
                    id, client_id, po_number, date, status,
                    subtotal, tax, total, base_currency, notes,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    purchase_id,
                    data.client_id or "",
                    po_number,
                    today_iso(data.date),
                    data.status or STATUS_PENDING,
                    data.subtotal if data.subtotal is not None else 0,
                    data.tax if data.tax is not None else 0,
                    data.total if data.total is not None else 0,
                    base_currency,
                    data.notes or "",
                    now,
                    now,
                ),
            )
            count = insert_items(
                conn, "purchase_items", "purchase_id", purchase_id,
                data.items or [], base_currency, now,
            )
            purchase = self._assemble(
                conn, conn.execute("SELECT * FROM purchases WHERE id = ?", (purchase_id,)).fetchone()
            )

        logger.info("Purchase created: %s  %s  items=%d", purchase_id, po_number, count)
        return purchase

    def update(self, purchase_id: str, data: PurchaseInput) -> Optional[Purchase]:
        """
        Partial update.  Only fields present in *data* are written; an
        ``items`` list (even empty) replaces every item.  Returns None when
        the purchase does not exist.
        """
        now = utcnow_iso()
        changes = column_values(data.model_dump(exclude_unset=True, exclude={"items"}))

        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT id, base_currency FROM purchases WHERE id = ?", (purchase_id,)
            ).fetchone()
            if row is None:
                return None

            sql, params = UpdateStatement("purchases").set_many(changes).build(purchase_id, now)
            conn.execute(sql, params)

            if data.items is not None:
                currency = changes.get("base_currency") or row["base_currency"] or self.default_currency
                replace_items(
                    conn, "purchase_items", "purchase_id", purchase_id,
                    data.items, currency, now,
                )

        logger.info(
            "Purchase updated: %s  fields=%s  items=%s",
            purchase_id, sorted(changes), "replaced" if data.items is not None else "kept",
        )
        return self.get(purchase_id)

    def delete(self, purchase_id: str) -> bool:
        """Delete a purchase; items and invoice links go with it."""
        with self.db.transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM purchases WHERE id = ?", (purchase_id,)
            ).rowcount > 0
        if deleted:
            logger.info("Purchase deleted: %s", purchase_id)
        return deleted
