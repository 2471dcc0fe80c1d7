"""Finance record repository (investments, expenses, TDS)."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from models.finance import FinanceRecord, FinanceRecordInput, FinanceRecordUpdate

from .database import Database, new_id, utcnow_iso
from .documents import column_values, today_iso
from .listing import ListEngine, ListPage, ResourceSpec
from .patch import UpdateStatement

logger = logging.getLogger(__name__)

FINANCE_RECORDS = ResourceSpec(
    table="finance_records",
    filters={
        "type": "type",
        "category": "category",
        "status": "status",
        "paymentMethod": "payment_method",
    },
    search_columns=("description", "category", "payment_method", "reference"),
    sort_columns={"createdAt": "created_at", "date": "date"},
    default_limit=100,
    max_limit=500,
)


class FinanceRepository:

    def __init__(self, db: Database) -> None:
        self.db = db
        self.engine = ListEngine(db)

    def get(self, record_id: str) -> Optional[FinanceRecord]:
        row = self.db.query_one("SELECT * FROM finance_records WHERE id = ?", (record_id,))
        return FinanceRecord.from_row(row) if row else None

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        search: Optional[str] = None,
        order: Optional[str] = "desc",
        limit: Any = None,
        page_token: Optional[str] = None,
    ) -> tuple[list[FinanceRecord], ListPage]:
        """
        One page of records.  ``search`` narrows the fetched page only, so
        a page may hold fewer than ``limit`` rows while more matches exist.
        """
        page = self.engine.fetch_page(
            FINANCE_RECORDS, filters, order=order,
            limit=limit, page_token=page_token, search=search,
        )
        return [FinanceRecord.from_row(r) for r in page.rows], page

    def create(self, data: FinanceRecordInput) -> FinanceRecord:
        now = utcnow_iso()
        values = {
            "id": new_id(),
            **column_values(data.model_dump()),
            "created_at": now,
            "updated_at": now,
        }
        values["date"] = today_iso(data.date)
        self.db.execute(
            f"INSERT INTO finance_records ({', '.join(values)}) "
            f"VALUES ({', '.join('?' for _ in values)})",
            list(values.values()),
        )
        logger.info("Finance record created: %s  %s %.2f", values["id"], data.type, data.amount)
        return self.get(values["id"])

    def update(self, record_id: str, data: FinanceRecordUpdate) -> Optional[FinanceRecord]:
        changes = column_values(data.model_dump(exclude_unset=True))
        with self.db.transaction() as conn:
            if conn.execute(
                "SELECT 1 FROM finance_records WHERE id = ?", (record_id,)
            ).fetchone() is None:
                return None
            conn.execute(*UpdateStatement("finance_records").set_many(changes).build(record_id, utcnow_iso()))
        logger.info("Finance record updated: %s  fields=%s", record_id, sorted(changes))
        return self.get(record_id)

    def delete(self, record_id: str) -> bool:
        deleted = self.db.execute("DELETE FROM finance_records WHERE id = ?", (record_id,)) > 0
        if deleted:
            logger.info("Finance record deleted: %s", record_id)
        return deleted
