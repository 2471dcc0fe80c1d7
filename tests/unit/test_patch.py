"""
Unit tests for the partial-update statement builder.
"""
import pytest

from ledger.patch import UpdateStatement, build_update


@pytest.mark.unit
class TestUpdateStatement:
    """Tests for UpdateStatement."""

    def test_only_present_columns_are_assigned(self):
        sql, params = build_update("purchases", {"status": "approved"}, "p-1", "T1")
        assert sql == "UPDATE purchases SET status = ?, updated_at = ? WHERE id = ?"
        assert params == ["approved", "T1", "p-1"]

    def test_empty_changes_still_touch_updated_at(self):
        sql, params = build_update("invoices", {}, "i-1", "T2")
        assert sql == "UPDATE invoices SET updated_at = ? WHERE id = ?"
        assert params == ["T2", "i-1"]

    def test_none_is_written_when_explicitly_sent(self):
        _, params = build_update("finance_records", {"reference": None}, "f-1", "T3")
        assert params == [None, "T3", "f-1"]

    def test_raw_assignment_precedes_plain_columns(self):
        stmt = UpdateStatement("invoices")
        stmt.set_raw("paid_at = COALESCE(paid_at, ?)", "T4").set("status", "paid")
        sql, params = stmt.build("i-2", "T4")
        assert sql == (
            "UPDATE invoices SET paid_at = COALESCE(paid_at, ?), status = ?, "
            "updated_at = ? WHERE id = ?"
        )
        assert params == ["T4", "paid", "T4", "i-2"]

    def test_has_changes(self):
        stmt = UpdateStatement("clients")
        assert not stmt.has_changes
        stmt.set("notes", "x")
        assert stmt.has_changes

    def test_custom_key_column(self):
        sql, params = UpdateStatement("settings", key_column="key").set("value", "{}").build("current", "T5")
        assert sql.endswith("WHERE key = ?")
        assert params[-1] == "current"
