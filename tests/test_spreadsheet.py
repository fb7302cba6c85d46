"""Tests for reading CSV and XLSX statement files into cell grids."""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from bankrec.domain.errors import ValidationError
from bankrec.utils.spreadsheet import read_cell_grid, read_csv_grid


def _xlsx_bytes(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_csv_with_bom():
    data = "\ufeffDate,Description\n01/02/2025,Coffee\n".encode("utf-8")

    grid = read_csv_grid(data)

    assert grid[0] == ["Date", "Description"]
    assert grid[1] == ["01/02/2025", "Coffee"]


def test_csv_semicolon_delimiter():
    data = b"Date;Description;Withdrawal\n01/02/2025;Coffee;50.00\n02/02/2025;Tea;40.00\n"

    grid = read_csv_grid(data)

    assert grid[1] == ["01/02/2025", "Coffee", "50.00"]


def test_csv_thai_windows_encoding():
    data = "วันที่,รายการ\n01/02/2025,โอนเงิน\n".encode("cp874")

    grid = read_csv_grid(data)

    assert grid[0] == ["วันที่", "รายการ"]
    assert grid[1][1] == "โอนเงิน"


def test_quoted_amounts_keep_thousands_separator(fixtures_dir):
    data = (fixtures_dir / "kbiz_statement.csv").read_bytes()

    grid = read_cell_grid(data, "kbiz_statement.csv")

    assert grid[3] == ["Date", "Description", "Withdrawal", "Deposit", "Balance"]
    assert grid[4] == ["01/02/2025", "Opening transfer", "", "1,500.00", "1,500.00"]


def test_xlsx_first_sheet_values():
    data = _xlsx_bytes(
        [
            ["Statement"],
            ["Date", "Description", "Withdrawal", "Deposit"],
            [datetime(2025, 2, 1), "Coffee", 50, None],
        ]
    )

    grid = read_cell_grid(data, "statement.XLSX")

    assert grid[0][0] == "Statement"
    assert grid[1] == ["Date", "Description", "Withdrawal", "Deposit"]
    assert grid[2][0] == datetime(2025, 2, 1)
    assert grid[2][2] == 50
    assert grid[2][3] is None


def test_corrupt_xlsx():
    with pytest.raises(ValidationError) as excinfo:
        read_cell_grid(b"not a zip file", "statement.xlsx")

    assert "Could not read workbook" in str(excinfo.value)


def test_empty_file():
    with pytest.raises(ValidationError):
        read_cell_grid(b"", "statement.csv")


def test_unsupported_extension():
    with pytest.raises(ValidationError) as excinfo:
        read_cell_grid(b"%PDF-1.4", "statement.pdf")

    assert ".pdf" in str(excinfo.value)
