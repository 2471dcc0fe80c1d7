import datetime as dt
from typing import List, Literal, Optional, Union

from pydantic import Field, field_validator

from .common import CamelModel, iso_day
from .purchase_order import ItemInput

InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]


class InvoiceItemInput(ItemInput):
    """Invoice line; may point back at the purchase order it was billed from."""
    purchase_id: Optional[str] = None
    po_number: Optional[str] = None


class InvoiceInput(CamelModel):
    """
    Body for creating or partially updating an invoice.

    invoice_number is generated when absent on create.  ``purchase_ids``
    present (even empty) replaces every purchase link; absent leaves them.
    ``purchase_id`` is the older single-link form, honoured on create only.
    """
    client_id: Optional[str] = None
    invoice_number: Optional[str] = None
    date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    status: Optional[InvoiceStatus] = None
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    payment_terms: Optional[str] = None     # days, e.g. "30"
    notes: Optional[str] = None
    base_currency: Optional[str] = None
    items: Optional[List[InvoiceItemInput]] = None
    purchase_ids: Optional[List[str]] = None
    purchase_id: Optional[str] = None

    @field_validator("payment_terms", mode="before")
    @classmethod
    def _terms_as_text(cls, value: Union[str, int, float, None]):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value


class InvoiceStatusUpdate(CamelModel):
    status: InvoiceStatus


class InvoiceItem(CamelModel):
    """A stored invoice line."""
    id: str
    purchase_id: str = ""
    po_number: str = ""
    name: str = ""
    model: str = ""
    supplier: str = ""
    quantity: float = 0
    unit_price: float = 0
    uom: str = ""
    currency: str
    total: float = 0

    @classmethod
    def from_row(cls, row: dict, base_currency: str) -> "InvoiceItem":
        return cls(
            id=row["id"],
            purchase_id=row["purchase_id"] or "",
            po_number=row["po_number"] or "",
            name=row["name"] or "",
            model=row["model"] or "",
            supplier=row["supplier"] or "",
            quantity=float(row["quantity"] or 0),
            unit_price=float(row["unit_price"] or 0),
            uom=row["uom"] or "",
            currency=row["currency"] or base_currency,
            total=float(row["total"] or 0),
        )


class Invoice(CamelModel):
    """
    A fully joined invoice: the parent row, its items (creation order) and
    the ids of the purchase orders it was built from.
    """
    id: str
    invoice_number: str
    client_id: str
    purchase_id: str = ""                   # first linked purchase (older clients)
    purchase_ids: List[str] = Field(default_factory=list)
    po_number: str = ""                     # first item's PO number (older clients)
    date: str                               # YYYY-MM-DD
    due_date: str                           # YYYY-MM-DD
    status: str
    items: List[InvoiceItem] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    total: float = 0
    payment_terms: str = "30"
    created_at: str
    updated_at: str
    paid_at: Optional[str] = None
    notes: str = ""
    base_currency: str

    @classmethod
    def from_row(
        cls, row: dict, item_rows: list[dict], purchase_ids: list[str]
    ) -> "Invoice":
        base_currency = row["base_currency"] or "INR"
        items = [InvoiceItem.from_row(r, base_currency) for r in item_rows]
        return cls(
            id=row["id"],
            invoice_number=row["invoice_number"],
            client_id=row["client_id"],
            purchase_id=purchase_ids[0] if purchase_ids else "",
            purchase_ids=purchase_ids,
            po_number=items[0].po_number if items else "",
            date=iso_day(row["date"], row["created_at"]),
            due_date=iso_day(row["due_date"], row["created_at"]),
            status=row["status"],
            items=items,
            subtotal=float(row["subtotal"] or 0),
            tax=float(row["tax"] or 0),
            total=float(row["total"] or 0),
            payment_terms=row["payment_terms"] or "30",
            created_at=row["created_at"],
            updated_at=row["updated_at"] or row["created_at"],
            paid_at=row["paid_at"] or None,
            notes=row["notes"] or "",
            base_currency=base_currency,
        )
