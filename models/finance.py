import datetime as dt
from typing import Optional

from pydantic import Field

from .common import CamelModel, iso_day


class FinanceRecordInput(CamelModel):
    """A ledger entry: money invested, an expense, or TDS withheld."""
    type: str = Field(min_length=1)         # invested | expense | tds
    category: str = Field(min_length=1)
    amount: float = 0
    description: str = ""
    date: Optional[dt.date] = None
    payment_method: str = ""
    status: str = "completed"
    reference: Optional[str] = None
    tax_year: Optional[str] = None


class FinanceRecordUpdate(CamelModel):
    type: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None
    reference: Optional[str] = None
    tax_year: Optional[str] = None


class FinanceRecord(CamelModel):
    id: str
    type: str
    category: str
    amount: float = 0
    description: str = ""
    date: str
    payment_method: str = ""
    status: str
    reference: Optional[str] = None
    tax_year: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: dict) -> "FinanceRecord":
        return cls(
            id=row["id"],
            type=row["type"],
            category=row["category"],
            amount=float(row["amount"] or 0),
            description=row["description"] or "",
            date=iso_day(row["date"], row["created_at"]),
            payment_method=row["payment_method"] or "",
            status=row["status"],
            reference=row["reference"] or None,
            tax_year=row["tax_year"] or None,
            created_at=row["created_at"],
            updated_at=row["updated_at"] or row["created_at"],
        )
