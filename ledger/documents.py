"""
Item collections owned by a parent document.

Items are never patched one by one: the parent's write path deletes the
whole collection and reinserts the supplied list in order, inside the
parent's transaction.  Link rows (invoice <-> purchase) follow the same rule.
"""
import datetime as dt
import sqlite3
from typing import Any, Callable, Iterable, Mapping, Optional

from models.purchase_order import ItemInput

from .database import new_id

ExtraColumns = Callable[[ItemInput], dict]


def column_values(changes: Mapping[str, Any]) -> dict:
    """Convert pydantic values to what sqlite stores (dates as YYYY-MM-DD)."""
    return {
        k: v.isoformat() if isinstance(v, (dt.date, dt.datetime)) else v
        for k, v in changes.items()
    }


def item_row(item: ItemInput, currency: str) -> dict:
    return {
        "name": item.name or "",
        "model": item.model or "",
        "supplier": item.supplier or "",
        "quantity": item.quantity or 0,
        "unit_price": item.unit_price or 0,
        "uom": item.uom or "",
        "currency": item.currency or currency,
        "total": item.line_total(),
    }


def insert_items(
    conn: sqlite3.Connection,
    table: str,
    parent_column: str,
    parent_id: str,
    items: Iterable[ItemInput],
    currency: str,
    created_at: str,
    extra: Optional[ExtraColumns] = None,
) -> int:
    """
    Insert *items* under *parent_id*, preserving order via ``position``.
    *extra* maps an item to additional table-specific columns
    (purchase_id / po_number on invoice lines).
    """
    count = 0
    for position, item in enumerate(items):
        values = {
            "id": new_id(),
            parent_column: parent_id,
            "position": position,
            **(extra(item) if extra else {}),
            **item_row(item, currency),
            "created_at": created_at,
        }
        conn.execute(
            f"INSERT INTO {table} ({', '.join(values)}) "
            f"VALUES ({', '.join('?' for _ in values)})",
            list(values.values()),
        )
        count += 1
    return count


def replace_items(
    conn: sqlite3.Connection,
    table: str,
    parent_column: str,
    parent_id: str,
    items: Iterable[ItemInput],
    currency: str,
    created_at: str,
    extra: Optional[ExtraColumns] = None,
) -> int:
    conn.execute(f"DELETE FROM {table} WHERE {parent_column} = ?", (parent_id,))
    return insert_items(conn, table, parent_column, parent_id, items, currency, created_at, extra)


def fetch_items(
    conn: sqlite3.Connection, table: str, parent_column: str, parent_id: str
) -> list[dict]:
    rows = conn.execute(
        f"SELECT * FROM {table} WHERE {parent_column} = ? ORDER BY created_at, position",
        (parent_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def link_purchases(
    conn: sqlite3.Connection, invoice_id: str, purchase_ids: Iterable[str], created_at: str
) -> None:
    """Add invoice -> purchase links; repeats are ignored, unknown purchases are not."""
    for purchase_id in purchase_ids:
        conn.execute(
            """INSERT INTO invoice_purchases (invoice_id, purchase_id, created_at)
               VALUES (?, ?, ?)
               ON CONFLICT (invoice_id, purchase_id) DO NOTHING""",
            (invoice_id, purchase_id, created_at),
        )


def replace_purchase_links(
    conn: sqlite3.Connection, invoice_id: str, purchase_ids: Iterable[str], created_at: str
) -> None:
    conn.execute("DELETE FROM invoice_purchases WHERE invoice_id = ?", (invoice_id,))
    link_purchases(conn, invoice_id, purchase_ids, created_at)


def fetch_purchase_ids(conn: sqlite3.Connection, invoice_id: str) -> list[str]:
    rows = conn.execute(
        "SELECT purchase_id FROM invoice_purchases WHERE invoice_id = ? "
        "ORDER BY created_at, rowid",
        (invoice_id,),
    ).fetchall()
    return [r["purchase_id"] for r in rows]


def today_iso(value: Optional[dt.date] = None) -> str:
    return (value or dt.date.today()).isoformat()
