"""Tests for domain entities and content hashes."""

import hashlib
from datetime import date
from decimal import Decimal

import pytest

from bankrec.domain.entities import (
    BatchStatus,
    ColumnMapping,
    ImportResult,
    ParsedStatement,
    ParsedTransaction,
    RowWarning,
)
from bankrec.domain.hashing import file_hash, transaction_hash


class TestColumnMapping:
    """Tests for ColumnMapping."""

    def test_from_dict_ignores_unknown_keys(self):
        mapping = ColumnMapping.from_dict(
            {"txn_date": "Date", "deposit": "In", "colour": "blue", "header_row_index": "2"}
        )

        assert mapping.txn_date == "Date"
        assert mapping.deposit == "In"
        assert mapping.header_row_index == 2

    def test_from_dict_requires_date(self):
        with pytest.raises(ValueError):
            ColumnMapping.from_dict({"deposit": "In"})

    def test_to_dict_round_trip(self):
        mapping = ColumnMapping(txn_date="Date", withdrawal="Out", header_row_index=3)

        assert mapping.to_dict() == {"txn_date": "Date", "withdrawal": "Out", "header_row_index": 3}
        assert ColumnMapping.from_dict(mapping.to_dict()) == mapping


def _txn(day, withdrawal="0", deposit="0"):
    return ParsedTransaction(
        row_index=0,
        txn_date=day,
        description=None,
        withdrawal=Decimal(withdrawal),
        deposit=Decimal(deposit),
    )


def test_parsed_statement_totals():
    parsed = ParsedStatement(
        transactions=(
            _txn(date(2025, 2, 3), withdrawal="50"),
            _txn(date(2025, 2, 1), deposit="100"),
            _txn(date(2025, 2, 2), deposit="25.5"),
        ),
        warnings=(),
        format_type="kbiz",
        detected_columns=(),
        auto_mapping=None,
    )

    assert parsed.date_range.start == date(2025, 2, 1)
    assert parsed.date_range.end == date(2025, 2, 3)
    assert parsed.total_deposits == Decimal("125.5")
    assert parsed.total_withdrawals == Decimal("50")


def test_parsed_statement_without_rows_has_no_range():
    parsed = ParsedStatement((), (), "unknown", (), None, requires_manual_mapping=True)

    assert parsed.date_range is None


def test_row_warning_is_one_based():
    assert str(RowWarning(4, "Missing date value")) == "Row 5: Missing date value"


def test_import_result_success():
    result = ImportResult(1, BatchStatus.COMPLETED, 2, 1, 0, 0, "Imported 2 transactions")

    assert result.success
    assert not ImportResult(1, BatchStatus.FAILED, 0, 3, 0, 0, "").success


class TestHashing:
    """Transaction and file hashes."""

    def test_transaction_hash_format(self):
        expected = hashlib.sha256(b"7|2025-02-01|50.00|0.00|Coffee").hexdigest()

        assert transaction_hash(7, date(2025, 2, 1), Decimal("50"), Decimal("0"), "Coffee") == expected

    def test_equal_content_hashes_equal(self):
        first = transaction_hash(1, date(2025, 2, 1), Decimal("50.0"), Decimal("0.00"), "Coffee")
        second = transaction_hash(1, date(2025, 2, 1), Decimal("50.00"), Decimal("0"), "Coffee")

        assert first == second

    def test_missing_description_hashes_as_empty(self):
        assert transaction_hash(1, date(2025, 2, 1), Decimal("1"), Decimal("0"), None) == transaction_hash(
            1, date(2025, 2, 1), Decimal("1"), Decimal("0"), ""
        )

    @pytest.mark.parametrize(
        "changed",
        [
            (2, date(2025, 2, 1), Decimal("50"), Decimal("0"), "Coffee"),
            (1, date(2025, 2, 2), Decimal("50"), Decimal("0"), "Coffee"),
            (1, date(2025, 2, 1), Decimal("0"), Decimal("50"), "Coffee"),
            (1, date(2025, 2, 1), Decimal("50"), Decimal("0"), "Coffee "),
        ],
    )
    def test_any_field_changes_hash(self, changed):
        base = transaction_hash(1, date(2025, 2, 1), Decimal("50"), Decimal("0"), "Coffee")

        assert transaction_hash(*changed) != base

    def test_file_hash(self):
        assert file_hash(b"abc") == hashlib.sha256(b"abc").hexdigest()
