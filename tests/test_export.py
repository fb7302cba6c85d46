"""Tests for the CSV transaction export."""

import csv
import io
import re
from datetime import date
from decimal import Decimal

import pytest

from bankrec.domain.errors import AuthorizationError, NotFoundError
from bankrec.domain.export import EXPORT_HEADER

from conftest import OTHER_USER, USER

START, END = date(2026, 1, 1), date(2026, 1, 31)


def _rows(content):
    lines = content.splitlines()
    return lines[0], list(csv.reader(io.StringIO("\n".join(lines[1:]))))


def test_export_with_opening_balance(import_rows, balance_service, export_service, sample_account):
    balance_service.upsert_opening_balance(USER, sample_account.id, START, Decimal("1000"))
    import_rows([("2026-01-02", "Customer payment", None, "500", "1500"), ("2026-01-03", "Supplier", "200", None)])

    export = export_service.export_csv(USER, sample_account.id, START, END)

    comment, rows = _rows(export.content)
    assert comment == "# Opening Balance: 1000.00 THB (as of 2026-01-01)"
    assert tuple(rows[0]) == EXPORT_HEADER
    assert rows[1][:7] == ["2026-01-02", "Customer payment", "0.00", "500.00", "1500.00", "1500.00", ""]
    assert rows[2][:7] == ["2026-01-03", "Supplier", "200.00", "0.00", "", "1300.00", ""]
    assert rows[1][8]
    assert export.row_count == 2
    assert re.fullmatch(r"bank-kbank-123-4-56789-0-\d{8}-\d{6}\.csv", export.filename)


def test_running_balance_matches_cash_position(import_rows, balance_service, export_service, cash_service, sample_account):
    balance_service.upsert_opening_balance(USER, sample_account.id, START, Decimal("250.25"))
    rows = []
    for day in range(1, 11):
        if day % 2:
            rows.append((f"2026-01-{day:02d}", f"Row {day}", None, "7.45"))
        else:
            rows.append((f"2026-01-{day:02d}", f"Row {day}", "3.10", None))
    import_rows(rows)

    export = export_service.export_csv(USER, sample_account.id, START, END)
    position = cash_service.get_cash_position(USER, sample_account.id, START, END)

    _, rows = _rows(export.content)
    assert Decimal(rows[-1][5]) == position.ending_balance


def test_export_without_opening_balance(import_rows, export_service, sample_account):
    import_rows([("2026-01-02", "Customer payment", None, "500")])

    export = export_service.export_csv(USER, sample_account.id, START, END)

    comment, rows = _rows(export.content)
    assert comment == "# Opening Balance: 0.00 THB (default)"
    assert rows[1][5] == "500.00"


def test_formula_like_text_is_escaped(import_rows, export_service, sample_account):
    import_rows([("2026-01-02", "=HYPERLINK(x)", "1.00", None), ("2026-01-03", "@cmd", "1.00", None)])

    export = export_service.export_csv(USER, sample_account.id, START, END)

    _, rows = _rows(export.content)
    assert rows[1][1] == "'=HYPERLINK(x)"
    assert rows[2][1] == "'@cmd"


def test_empty_range(import_rows, export_service, sample_account):
    import_rows([("2026-02-02", "Later", "1.00", None)])

    with pytest.raises(NotFoundError):
        export_service.export_csv(USER, sample_account.id, START, END)


def test_export_requires_ownership(import_rows, export_service, sample_account):
    import_rows([("2026-01-02", "Customer payment", None, "500")])

    with pytest.raises(AuthorizationError):
        export_service.export_csv(OTHER_USER, sample_account.id, START, END)
