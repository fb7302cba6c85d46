"""Read statement files into a 2-D grid of cell values."""

import csv
import io
import logging
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from bankrec.domain.errors import ValidationError

logger = logging.getLogger(__name__)

Grid = list[list[Any]]

XLSX_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv", ".txt"}


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Thai bank exports that are not UTF-8 are TIS-620 / cp874
        return data.decode("cp874", errors="replace")


def read_csv_grid(data: bytes) -> Grid:
    """Parse CSV bytes into rows of strings, sniffing the delimiter."""
    text = _decode(data)
    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [list(row) for row in reader]


def read_xlsx_grid(data: bytes) -> Grid:
    """Read the first worksheet of an XLSX workbook.

    Raises:
        ValidationError: If the bytes are not a readable workbook
    """
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        raise ValidationError(f"Could not read workbook: {e}")
    try:
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_cell_grid(data: bytes, file_name: str) -> Grid:
    """Dispatch on the file extension and return the cell grid.

    Raises:
        ValidationError: For empty input or an unsupported extension
    """
    if not data:
        raise ValidationError("File is empty")
    suffix = Path(file_name).suffix.lower()
    if suffix in XLSX_SUFFIXES:
        grid = read_xlsx_grid(data)
    elif suffix in CSV_SUFFIXES:
        grid = read_csv_grid(data)
    else:
        raise ValidationError(
            f"Unsupported file type '{suffix or file_name}'. Use .csv or .xlsx"
        )
    logger.debug("Read %d rows from %s", len(grid), file_name)
    return grid
