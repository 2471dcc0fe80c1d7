import datetime as dt
from typing import List, Literal, Optional

from pydantic import Field

from .common import CamelModel, iso_day

PurchaseStatus = Literal["pending", "approved", "rejected", "completed"]


class ItemInput(CamelModel):
    """
    A line item as supplied by the caller.

    ``total`` is optional; when omitted the stored line total is
    quantity * unit_price.  ``currency`` falls back to the parent document's
    base currency.
    """
    name: Optional[str] = None
    model: Optional[str] = None
    supplier: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    uom: Optional[str] = None           # e.g. "nos", "kg", "hr"
    currency: Optional[str] = None
    total: Optional[float] = None

    def line_total(self) -> float:
        if self.total is not None:
            return self.total
        return (self.quantity or 0) * (self.unit_price or 0)


class PurchaseItemInput(ItemInput):
    pass


class PurchaseInput(CamelModel):
    """
    Body for creating or partially updating a purchase order.

    On update only the fields actually sent are written.  ``items`` present
    (even empty) replaces every item; ``items`` absent leaves them alone.
    subtotal / tax / total are stored exactly as sent.
    """
    client_id: Optional[str] = None
    po_number: Optional[str] = None
    date: Optional[dt.date] = None
    status: Optional[PurchaseStatus] = None
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    base_currency: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[PurchaseItemInput]] = None


class PurchaseItem(CamelModel):
    """A stored purchase order line."""
    id: str
    name: str = ""
    model: str = ""
    supplier: str = ""
    quantity: float = 0
    unit_price: float = 0
    uom: str = ""
    currency: str
    total: float = 0

    @classmethod
    def from_row(cls, row: dict, base_currency: str) -> "PurchaseItem":
        return cls(
            id=row["id"],
            name=row["name"] or "",
            model=row["model"] or "",
            supplier=row["supplier"] or "",
            quantity=float(row["quantity"] or 0),
            unit_price=float(row["unit_price"] or 0),
            uom=row["uom"] or "",
            currency=row["currency"] or base_currency,
            total=float(row["total"] or 0),
        )


class Purchase(CamelModel):
    """A purchase order with its items, as returned by the API."""
    id: str
    client_id: str
    po_number: str
    date: str                               # YYYY-MM-DD
    status: str
    items: List[PurchaseItem] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    total: float = 0
    created_at: str
    updated_at: str
    base_currency: str
    notes: str = ""

    @classmethod
    def from_row(cls, row: dict, item_rows: list[dict]) -> "Purchase":
        base_currency = row["base_currency"] or "INR"
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            po_number=row["po_number"] or "",
            date=iso_day(row["date"], row["created_at"]),
            status=row["status"],
            items=[PurchaseItem.from_row(r, base_currency) for r in item_rows],
            subtotal=float(row["subtotal"] or 0),
            tax=float(row["tax"] or 0),
            total=float(row["total"] or 0),
            created_at=row["created_at"],
            updated_at=row["updated_at"] or row["created_at"],
            base_currency=base_currency,
            notes=row["notes"] or "",
        )
