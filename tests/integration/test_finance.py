"""
Integration tests for finance records and ledger statistics.
"""
from datetime import datetime, timedelta, timezone

import pytest

from ledger.listing import ListEngine
from ledger.stats import LedgerAggregator
from models.finance import FinanceRecordInput, FinanceRecordUpdate
from models.invoice import InvoiceInput


@pytest.fixture
def aggregator(test_db) -> LedgerAggregator:
    return LedgerAggregator(ListEngine(test_db))


@pytest.mark.integration
class TestFinanceRepository:
    """CRUD for finance records."""

    def test_create_defaults(self, finance_repo):
        record = finance_repo.create(FinanceRecordInput(type="invested", category="capital", amount=500))
        assert record.status == "completed"
        assert record.reference is None
        assert len(record.date) == 10

    def test_partial_update(self, finance_repo):
        record = finance_repo.create(FinanceRecordInput(type="expense", category="rent", amount=10))
        updated = finance_repo.update(record.id, FinanceRecordUpdate(amount=25, reference="R-1"))
        assert updated.amount == 25
        assert updated.reference == "R-1"
        assert updated.category == "rent"

    def test_missing_record(self, finance_repo):
        assert finance_repo.update("ghost", FinanceRecordUpdate(amount=1)) is None
        assert finance_repo.delete("ghost") is False

    def test_list_order(self, finance_repo):
        ids = [
            finance_repo.create(FinanceRecordInput(type="expense", category=f"c{n}", amount=n)).id
            for n in range(3)
        ]
        newest_first, _ = finance_repo.list()
        assert [r.id for r in newest_first] == ids[::-1]
        oldest_first, page = finance_repo.list(order="asc")
        assert [r.id for r in oldest_first] == ids
        assert page.total == 3

    def test_delete(self, finance_repo):
        record = finance_repo.create(FinanceRecordInput(type="tds", category="q1", amount=5))
        assert finance_repo.delete(record.id) is True
        assert finance_repo.get(record.id) is None


@pytest.mark.integration
class TestLedgerAggregator:
    """Statistics reuse the list predicate."""

    def test_profit_scenario(self, finance_repo, aggregator):
        finance_repo.create(FinanceRecordInput(type="invested", category="capital", amount=1000))
        finance_repo.create(FinanceRecordInput(type="expense", category="rent", amount=300))
        finance_repo.create(FinanceRecordInput(type="tds", category="q1", amount=100))
        finance_repo.create(FinanceRecordInput(type="expense", category="rent", amount=999, status="pending"))

        stats = aggregator.finance_stats()
        assert stats.total_invested == 1000
        assert stats.total_expenses == 300
        assert stats.total_tds == 100
        assert stats.profit == 600

    def test_stats_follow_filters_and_search(self, finance_repo, aggregator):
        finance_repo.create(FinanceRecordInput(type="expense", category="rent", amount=300, description="March rent"))
        finance_repo.create(FinanceRecordInput(type="expense", category="travel", amount=50, description="Cab"))

        assert aggregator.finance_stats({"category": "travel"}).total_expenses == 50
        assert aggregator.finance_stats(search="march").total_expenses == 300

    def test_invoice_stats_window(self, invoice_repo, sample_client, aggregator):
        invoice_repo.create(InvoiceInput(client_id=sample_client.id, status="paid", total=100))
        invoice_repo.create(InvoiceInput(client_id=sample_client.id, status="sent", total=40))
        invoice_repo.create(InvoiceInput(client_id=sample_client.id, status="overdue", total=10))

        stats = aggregator.invoice_stats()
        assert stats.total_invoices == 3
        assert stats.total_revenue == 150
        assert stats.paid_revenue == 100
        assert stats.pending_invoices == 1
        assert stats.overdue_revenue == 10

    def test_invoice_stats_excludes_outside_window(self, invoice_repo, sample_client, aggregator):
        invoice_repo.create(InvoiceInput(client_id=sample_client.id, total=100))
        past = datetime.now(timezone.utc) - timedelta(days=90)
        stats = aggregator.invoice_stats(now=past)
        assert stats.total_invoices == 0

    def test_invoice_stats_client_filter(self, invoice_repo, sample_client, aggregator):
        invoice_repo.create(InvoiceInput(client_id=sample_client.id, total=100))
        assert aggregator.invoice_stats(client_id="someone-else").total_invoices == 0
        assert aggregator.invoice_stats(client_id=sample_client.id).total_invoices == 1

    def test_invalid_window_raises(self, aggregator):
        with pytest.raises(ValueError):
            aggregator.invoice_stats(date_from="yesterday-ish")
