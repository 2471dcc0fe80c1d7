"""
Ledger aggregation.

Statistics are a fold over the same filtered fetch the list endpoints use
(``ListEngine.fetch_all`` with the resource's ``ResourceSpec``), so a
dashboard total always matches the rows a list with the same filters
would return.  The folds themselves are pure functions over row dicts.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional

from models.result import FinanceStats, InvoiceStats

from .finance import FINANCE_RECORDS
from .invoices import INVOICES
from .listing import ListEngine

logger = logging.getLogger(__name__)

STATS_WINDOW = timedelta(days=30)

_PENDING_STATUSES = ("draft", "sent")


def _sum(rows: Iterable[Mapping[str, Any]], column: str) -> float:
    total = 0.0
    for r in rows:
        try:
            total += float(r.get(column) or 0)
        except (TypeError, ValueError):
            continue
    return total


def summarize_finance(rows: list[Mapping[str, Any]]) -> FinanceStats:
    """Only ``completed`` records count toward any bucket."""
    completed = [r for r in rows if r.get("status") == "completed"]
    invested = _sum((r for r in completed if r.get("type") == "invested"), "amount")
    expenses = _sum((r for r in completed if r.get("type") == "expense"), "amount")
    tds = _sum((r for r in completed if r.get("type") == "tds"), "amount")
    return FinanceStats(
        total_invested=invested,
        total_expenses=expenses,
        total_tds=tds,
        profit=invested - expenses - tds,
    )


def summarize_invoices(
    rows: list[Mapping[str, Any]], window_from: str, window_to: str
) -> InvoiceStats:
    paid = [r for r in rows if r.get("status") == "paid"]
    pending = [r for r in rows if r.get("status") in _PENDING_STATUSES]
    overdue = [r for r in rows if r.get("status") == "overdue"]
    return InvoiceStats(
        total_invoices=len(rows),
        total_revenue=_sum(rows, "total"),
        paid_invoices=len(paid),
        paid_revenue=_sum(paid, "total"),
        pending_invoices=len(pending),
        pending_revenue=_sum(pending, "total"),
        overdue_invoices=len(overdue),
        overdue_revenue=_sum(overdue, "total"),
        window_from=window_from,
        window_to=window_to,
    )


def parse_instant(value: Optional[str], default: datetime) -> datetime:
    """
    Parse an ISO date or timestamp; naive values are taken as UTC.
    Raises ValueError for anything unparseable.
    """
    if not value:
        return default
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _stamp(moment: datetime) -> str:
    # Same text shape as stored created_at values, so comparisons are lexical
    return moment.isoformat(timespec="microseconds")


class LedgerAggregator:
    """Dashboard statistics over finance records and invoices."""

    def __init__(self, engine: ListEngine) -> None:
        self.engine = engine

    def finance_stats(
        self, filters: Optional[Mapping[str, Any]] = None, search: Optional[str] = None
    ) -> FinanceStats:
        rows = self.engine.fetch_all(FINANCE_RECORDS, filters, search=search)
        stats = summarize_finance(rows)
        logger.debug("Finance stats over %d records: profit=%.2f", len(rows), stats.profit)
        return stats

    def invoice_stats(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        client_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InvoiceStats:
        """
        Invoice counts and revenue by status for invoices created within
        [date_from, date_to].  The window defaults to the 30 days ending now.
        """
        window_to = parse_instant(date_to, now or datetime.now(timezone.utc))
        window_from = parse_instant(date_from, window_to - STATS_WINDOW)
        start, end = _stamp(window_from), _stamp(window_to)

        rows = self.engine.fetch_all(
            INVOICES,
            {"createdFrom": start, "createdTo": end, "clientId": client_id},
        )
        return summarize_invoices(rows, start, end)
