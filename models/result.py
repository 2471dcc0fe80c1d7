from pydantic import Field

from .common import CamelModel


class FinanceStats(CamelModel):
    """Sums over completed finance records; profit = invested - expenses - tds."""
    total_invested: float = 0.0
    total_expenses: float = 0.0
    total_tds: float = Field(default=0.0, alias="totalTDS")
    profit: float = 0.0


class InvoiceStats(CamelModel):
    """Counts and revenue per status bucket over a created-at window."""
    total_invoices: int = 0
    total_revenue: float = 0.0
    paid_invoices: int = 0
    paid_revenue: float = 0.0
    pending_invoices: int = 0               # draft or sent
    pending_revenue: float = 0.0
    overdue_invoices: int = 0
    overdue_revenue: float = 0.0
    window_from: str = Field(alias="from")
    window_to: str = Field(alias="to")
