"""
Document numbering.

Numbers look like ``<prefix>-<year>-<sequence>`` (INV-2026-0007, PO-2026-012).
Each (scheme, year) pair owns a counter row in ``document_sequences``.
Allocation must run inside the caller's write transaction: the database
write lock taken by ``BEGIN IMMEDIATE`` makes read-increment-store atomic,
and a rollback hands the number back.

The next value is one past the larger of the counter and the highest
number already present in the document table, so hand-entered numbers
never get reissued.  Suffixes longer than ``MAX_SEQUENCE_DIGITS`` are ignored
so an oversized hand-entered number cannot push the counter past SQLite's
64-bit integer range.
"""
import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import date
from typing import Optional

logger = logging.getLogger(__name__)

MAX_SEQUENCE_DIGITS = 18


@dataclass(frozen=True)
class NumberingScheme:
    prefix: str
    width: int
    table: str
    column: str

    def format(self, year: int, value: int) -> str:
        return f"{self.prefix}-{year}-{value:0{self.width}d}"

    def year_prefix(self, year: int) -> str:
        return f"{self.prefix}-{year}-"


INVOICE_NUMBERS  = NumberingScheme(prefix="INV", width=4, table="invoices",  column="invoice_number")
PURCHASE_NUMBERS = NumberingScheme(prefix="PO",  width=3, table="purchases", column="po_number")


class SequenceGenerator:
    """Allocates document numbers from counter rows."""

    def next_number(
        self,
        conn: sqlite3.Connection,
        scheme: NumberingScheme,
        year: Optional[int] = None,
    ) -> str:
        if not conn.in_transaction:
            raise RuntimeError("Document numbers must be allocated inside a transaction")
        year = year or date.today().year

        row = conn.execute(
            "SELECT value FROM document_sequences WHERE scheme = ? AND year = ?",
            (scheme.prefix, year),
        ).fetchone()
        counter = row["value"] if row else 0
        value = max(counter, self._highest_existing(conn, scheme, year)) + 1

        conn.execute(
            """INSERT INTO document_sequences (scheme, year, value) VALUES (?, ?, ?)
               ON CONFLICT (scheme, year) DO UPDATE SET value = excluded.value""",
            (scheme.prefix, year, value),
        )
        number = scheme.format(year, value)
        logger.debug("Allocated %s", number)
        return number

    def _highest_existing(
        self, conn: sqlite3.Connection, scheme: NumberingScheme, year: int
    ) -> int:
        prefix = scheme.year_prefix(year)
        pattern = re.compile(rf"^{re.escape(prefix)}(\d{{1,{MAX_SEQUENCE_DIGITS}}})$")
        rows = conn.execute(
            f"SELECT {scheme.column} AS number FROM {scheme.table} "
            f"WHERE substr({scheme.column}, 1, ?) = ?",
            (len(prefix), prefix),
        ).fetchall()
        highest = 0
        for r in rows:
            m = pattern.match(r["number"] or "")
            if m:
                highest = max(highest, int(m.group(1)))
        return highest

    def next_invoice_number(self, conn: sqlite3.Connection) -> str:
        """
        Allocate an invoice number, falling back to ``INV-<year>-0001`` when
        the counter cannot be reached.  A fallback collision surfaces as a
        unique-constraint error when the invoice row is inserted.
        """
        try:
            return self.next_number(conn, INVOICE_NUMBERS)
        except sqlite3.OperationalError as exc:
            if not conn.in_transaction:
                # The store already rolled back; nothing safe to continue with
                raise
            fallback = INVOICE_NUMBERS.format(date.today().year, 1)
            logger.warning("Invoice number sequence unavailable (%s); using %s", exc, fallback)
            return fallback

    def next_purchase_number(self, conn: sqlite3.Connection) -> str:
        return self.next_number(conn, PURCHASE_NUMBERS)
