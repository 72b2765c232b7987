'''
Tests for reading balance directives out of report fragments.
'''
from src.tutor_billing_backend.core.reconciliation import (
    iter_detail_entries,
    is_directive,
    raw_enrollment_id,
    normalize_directive,
    RECONCILIATION_TIERS,
)
from src.tutor_billing_backend.database.db_enums import BalanceSource


def test_tiers_are_lowest_priority_first():
    assert RECONCILIATION_TIERS == (
        BalanceSource.REPORT,
        BalanceSource.SPECIAL_PROFESSOR_REPORT,
        BalanceSource.EXCEDENTS,
    )


class TestIterDetailEntries:

    def test_missing_fragment_yields_nothing(self):
        assert list(iter_detail_entries(None)) == []
        assert list(iter_detail_entries({})) == []
        assert list(iter_detail_entries([])) == []

    def test_single_object_fragment(self):
        fragment = {"details": [{"enrollmentId": "a"}, {"enrollmentId": "b"}]}
        assert [e["enrollmentId"] for e in iter_detail_entries(fragment)] == ["a", "b"]

    def test_list_fragment_keeps_document_order(self):
        fragment = [
            {"professor": "A", "details": [{"enrollmentId": "1"}, {"enrollmentId": "2"}]},
            {"professor": "B", "lines": [{"enrollment_id": "3"}]},
        ]
        assert [raw_enrollment_id(e) for e in iter_detail_entries(fragment)] == ["1", "2", "3"]

    def test_malformed_blocks_and_entries_are_skipped(self):
        fragment = [
            "not a block",
            {"details": "not a list"},
            {"details": [None, 5, {"enrollmentId": "ok"}]},
        ]
        assert list(iter_detail_entries(fragment)) == [{"enrollmentId": "ok"}]


class TestIsDirective:

    def test_needs_both_id_and_balance(self):
        assert is_directive({"enrollmentId": "x", "balancereamaining": 10})
        assert is_directive({"enrollment_id": "x", "balance_remaining": "0.00"})
        assert is_directive({"enrollmentId": "x", "newBalance": 0})
        assert not is_directive({"enrollmentId": "x"})
        assert not is_directive({"balancereamaining": 10})
        assert not is_directive({"enrollmentId": None, "balancereamaining": 10})
        assert not is_directive({"enrollmentId": "x", "balancereamaining": None})

    def test_raw_enrollment_id(self):
        assert raw_enrollment_id({"enrollmentId": 42}) == "42"
        assert raw_enrollment_id({}) is None

    def test_normalize_directive_skips_null_keys(self):
        entry = {"enrollmentId": None, "enrollment_id": "abc", "balanceRemaining": None, "newBalance": 7}
        assert normalize_directive(entry) == {"enrollment_id": "abc", "new_balance": 7}
