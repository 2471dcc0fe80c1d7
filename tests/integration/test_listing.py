"""
Integration tests for filtered, ordered, paginated listing.
"""
import pytest

from ledger.database import new_id
from ledger.listing import ListEngine, ResourceSpec
from ledger.pagination import decode_page_token
from models.finance import FinanceRecordInput
from models.purchase_order import PurchaseInput


@pytest.fixture
def engine(test_db) -> ListEngine:
    return ListEngine(test_db)


@pytest.fixture
def seeded_purchases(purchase_repo, sample_client):
    """Five purchases created in order, alternating status."""
    created = []
    for i in range(5):
        created.append(purchase_repo.create(PurchaseInput(
            client_id=sample_client.id,
            po_number=f"PO-2026-{i + 1:03d}" if i < 3 else f"PX-{i}",
            status="approved" if i % 2 else "pending",
            date=f"2026-0{5 - i}-01",
        )))
    return created


@pytest.mark.integration
class TestListEngine:
    """Filters, ordering and page tokens."""

    def test_default_order_is_newest_first(self, purchase_repo, seeded_purchases):
        items, page = purchase_repo.list()
        assert [p.id for p in items] == [p.id for p in reversed(seeded_purchases)]
        assert page.total == 5
        assert page.next_page_token is None

    def test_ascending_order(self, purchase_repo, seeded_purchases):
        items, _ = purchase_repo.list(order="asc")
        assert [p.id for p in items] == [p.id for p in seeded_purchases]

    def test_sort_by_date(self, purchase_repo, seeded_purchases):
        items, _ = purchase_repo.list(order="asc", sort_by="date")
        assert [p.date for p in items] == sorted(p.date for p in seeded_purchases)

    def test_unknown_sort_key_falls_back_to_created_at(self, purchase_repo, seeded_purchases):
        items, _ = purchase_repo.list(sort_by="id; DROP TABLE purchases")
        assert len(items) == 5

    def test_equality_filter(self, purchase_repo, seeded_purchases):
        items, page = purchase_repo.list({"status": "approved"})
        assert {p.status for p in items} == {"approved"}
        assert page.total == 2

    def test_prefix_filter(self, purchase_repo, seeded_purchases):
        items, page = purchase_repo.list({"poPrefix": "PO-2026"})
        assert page.total == 3
        assert all(p.po_number.startswith("PO-2026") for p in items)

    def test_prefix_wildcards_are_literal(self, purchase_repo, seeded_purchases):
        _, page = purchase_repo.list({"poPrefix": "PO-%"})
        assert page.total == 0

    def test_empty_filters_are_ignored(self, purchase_repo, seeded_purchases):
        _, page = purchase_repo.list({"status": "", "clientId": None, "poPrefix": "  "})
        assert page.total == 5

    def test_pages_cover_all_rows(self, purchase_repo, seeded_purchases):
        seen, token = [], None
        while True:
            items, page = purchase_repo.list(limit="2", page_token=token)
            seen.extend(p.id for p in items)
            token = page.next_page_token
            if token is None:
                break
            assert decode_page_token(token) == page.offset + 2
        assert len(seen) == 5
        assert len(set(seen)) == 5

    def test_next_cursor_is_last_created_at(self, purchase_repo, seeded_purchases):
        items, page = purchase_repo.list(limit=2)
        assert page.next_cursor == items[-1].created_at

    def test_limit_is_clamped(self, purchase_repo, seeded_purchases):
        _, page = purchase_repo.list(limit="0")
        assert page.limit == 1
        _, page = purchase_repo.list(limit="99999")
        assert page.limit == 500

    def test_fetch_all_matches_page_predicate(self, engine, purchase_repo, seeded_purchases):
        from ledger.purchases import PURCHASES
        rows = engine.fetch_all(PURCHASES, {"status": "pending"})
        _, page = purchase_repo.list({"status": "pending"})
        assert len(rows) == page.total == 3


@pytest.mark.integration
class TestSearchAfterPagination:
    """Free-text search narrows the fetched page only."""

    def test_search_narrows_page_but_not_total(self, finance_repo):
        for i in range(4):
            finance_repo.create(FinanceRecordInput(
                type="expense", category="office",
                description="Printer toner" if i == 0 else f"Chairs {i}",
            ))
        # Newest first: the toner record is last, so a 2-row page misses it
        items, page = finance_repo.list(search="toner", limit=2)
        assert items == []
        assert page.total == 4
        assert page.next_page_token is not None

        items, _ = finance_repo.list(search="TONER", limit=2, page_token=page.next_page_token)
        assert [r.description for r in items] == ["Printer toner"]

    def test_search_matches_reference_and_method(self, finance_repo):
        finance_repo.create(FinanceRecordInput(type="expense", category="rent", payment_method="UPI"))
        finance_repo.create(FinanceRecordInput(type="expense", category="rent", reference="CHQ-991"))
        assert len(finance_repo.list(search="upi")[0]) == 1
        assert len(finance_repo.list(search="chq")[0]) == 1


@pytest.mark.integration
class TestResourceSpec:
    """Range filters through a custom resource definition."""

    def test_range_filter_bounds_are_inclusive(self, engine, test_db):
        for stamp in ("2026-01-01T00:00:00", "2026-01-15T00:00:00", "2026-02-01T00:00:00"):
            test_db.execute(
                "INSERT INTO finance_records (id, type, category, date, created_at, updated_at) "
                "VALUES (?, 'tds', 'q1', '2026-01-01', ?, ?)",
                (new_id(), stamp, stamp),
            )
        spec = ResourceSpec(
            table="finance_records",
            range_filters={"from": ("created_at", ">="), "to": ("created_at", "<=")},
        )
        rows = engine.fetch_all(spec, {"from": "2026-01-01T00:00:00", "to": "2026-01-15T00:00:00"})
        assert len(rows) == 2
