"""Turn a statement cell grid into typed transactions.

Bank exports often carry a few metadata rows (account name, period, branch)
above the real header, so the header row is located by scanning for known
column tokens in English and Thai. The detected header is then matched
against a small library of layouts; when none fits, the caller has to supply
an explicit ColumnMapping.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Any, Optional, Sequence

from bankrec.domain.entities import (
    ColumnMapping,
    ParsedStatement,
    ParsedTransaction,
    RowWarning,
    ZERO,
)
from bankrec.domain.errors import ValidationError, unknown_mapping_columns
from bankrec.utils.amount_parser import parse_statement_amount
from bankrec.utils.date_parser import get_timezone, parse_statement_date

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 30
MIN_HEADER_MATCHES = 2
STRONG_HEADER_MATCHES = 4
FALLBACK_CONFIDENCE = 0.3

HEADER_TOKENS: dict[str, tuple[str, ...]] = {
    "date": ("transaction date", "date", "วันที่", "วันที่ทำรายการ"),
    "transaction": ("transaction", "description", "รายการ", "รายละเอียด"),
    "withdrawal": ("withdrawal", "withdraw", "debit", "ถอน", "เบิก"),
    "deposit": ("deposit", "credit", "ฝาก"),
    "channel": ("channel", "ช่องทาง", "ประเภท"),
    "balance": ("balance", "ยอดคงเหลือ"),
}


def normalize_header(cell: Any) -> str:
    """Lowercase, trim and strip brackets/colons from a header cell."""
    if cell is None:
        return ""
    text = str(cell).lower().strip()
    text = re.sub(r"[()\[\]:]", "", text)
    return re.sub(r"\s+", " ", text)


def _cell_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class HeaderDetection:
    """Where the header row was found and how sure we are."""

    row_index: int
    columns: tuple[str, ...]
    confidence: float
    matched: tuple[str, ...] = ()

    @property
    def detected(self) -> bool:
        return bool(self.matched)


def _score_row(row: Sequence[Any]) -> tuple[str, ...]:
    cells = [normalize_header(c) for c in row]
    matched = []
    for group, tokens in HEADER_TOKENS.items():
        if any(token in cell for cell in cells if cell for token in tokens):
            matched.append(group)
    return tuple(matched)


def detect_header_row(grid: Sequence[Sequence[Any]], max_scan_rows: int = HEADER_SCAN_ROWS) -> HeaderDetection:
    """Find the most header-like row among the first ``max_scan_rows``.

    A row qualifies when it matches at least two token groups; the best
    scoring row wins and a row matching four or more stops the scan. Without
    any qualifying row the first row is assumed with low confidence.
    """
    best_index: Optional[int] = None
    best_matched: tuple[str, ...] = ()

    for index, row in enumerate(grid[:max_scan_rows]):
        if not row:
            continue
        matched = _score_row(row)
        if len(matched) >= MIN_HEADER_MATCHES and len(matched) > len(best_matched):
            best_index = index
            best_matched = matched
            if len(matched) >= STRONG_HEADER_MATCHES:
                break

    if best_index is None:
        first = grid[0] if grid else []
        columns = tuple(_cell_text(c) or "" for c in first)
        return HeaderDetection(row_index=0, columns=columns, confidence=FALLBACK_CONFIDENCE)

    columns = tuple(_cell_text(c) or "" for c in grid[best_index])
    confidence = min(len(best_matched) / 5, 1.0)
    return HeaderDetection(best_index, columns, confidence, best_matched)


@dataclass(frozen=True)
class StatementLayout:
    """A known bank export layout.

    ``fields`` lists header tokens per ColumnMapping field in the order they
    are assigned; a column is claimed by the first field that matches it.
    """

    name: str
    fields: tuple[tuple[str, tuple[str, ...]], ...]
    required: tuple[str, ...] = ("txn_date",)
    any_of: tuple[str, ...] = ("withdrawal", "deposit")
    description_fallback: bool = False

    def match(self, columns: Sequence[str]) -> Optional[ColumnMapping]:
        normalized = [normalize_header(c) for c in columns]
        claimed: set[int] = set()
        found: dict[str, str] = {}

        for field_name, tokens in self.fields:
            for index, cell in enumerate(normalized):
                if index in claimed or not cell:
                    continue
                if any(token in cell for token in tokens):
                    found[field_name] = columns[index]
                    claimed.add(index)
                    break

        if any(name not in found for name in self.required):
            return None
        if not any(name in found for name in self.any_of):
            return None

        if "amount" in found and ("withdrawal" in found or "deposit" in found):
            del found["amount"]

        if "description" not in found and self.description_fallback:
            for index, cell in enumerate(columns):
                if index not in claimed and index >= 1 and cell:
                    found["description"] = cell
                    break

        return ColumnMapping(**found)


KBIZ = StatementLayout(
    name="kbiz",
    fields=(
        ("txn_date", ("date", "วันที่")),
        ("withdrawal", ("withdrawal", "จ่าย", "debit")),
        ("deposit", ("deposit", "รับ", "credit")),
        ("balance", ("balance", "คงเหลือ")),
        ("description", ("description", "รายละเอียด", "detail")),
    ),
    required=("txn_date", "description"),
)

KPLUS = StatementLayout(
    name="kplus",
    fields=(
        ("txn_date", ("วันที่", "date")),
        ("withdrawal", ("ถอน", "จ่าย", "withdrawal")),
        ("deposit", ("ฝาก", "รับ", "deposit")),
        ("balance", ("คงเหลือ", "balance")),
        ("channel", ("ช่องทาง", "channel")),
        ("description", ("รายการ", "description")),
    ),
    required=("txn_date", "description"),
)

GENERIC = StatementLayout(
    name="generic",
    fields=(
        ("txn_date", ("date", "วันที่")),
        ("withdrawal", ("withdrawal", "debit", "จ่าย", "money out", "paid out")),
        ("deposit", ("deposit", "credit", "รับ", "money in", "paid in")),
        ("amount", ("amount", "จำนวน")),
        ("balance", ("balance", "คงเหลือ")),
        ("reference_id", ("reference", "ref", "เลขที่อ้างอิง")),
        ("description", ("desc", "detail", "รายละเอียด", "remark", "transaction", "รายการ")),
    ),
    any_of=("withdrawal", "deposit", "amount"),
    description_fallback=True,
)

LAYOUTS: tuple[StatementLayout, ...] = (KBIZ, KPLUS, GENERIC)


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class StatementParser:
    """Parse cell grids into ParsedStatement objects."""

    def __init__(self, timezone: str = "Asia/Bangkok"):
        """Initialize parser.

        Args:
            timezone: Reporting timezone for timezone-aware date cells
        """
        self.timezone: tzinfo = get_timezone(timezone)

    def parse(self, grid: Sequence[Sequence[Any]], mapping: Optional[ColumnMapping] = None) -> ParsedStatement:
        """Parse a grid, auto-detecting the layout when no mapping is given.

        Raises:
            ValidationError: If an explicit mapping names columns that are not
                in the header row, or maps no amount column
        """
        if mapping is not None:
            return self._parse_manual(grid, mapping)
        return self._parse_auto(grid)

    def _parse_auto(self, grid: Sequence[Sequence[Any]]) -> ParsedStatement:
        detection = detect_header_row(grid)
        columns = detection.columns

        for layout in LAYOUTS:
            layout_mapping = layout.match(columns)
            if layout_mapping is None:
                continue
            logger.info(
                "Detected %s layout (header row %d, confidence %.1f)",
                layout.name,
                detection.row_index,
                detection.confidence,
            )
            return self._parse_rows(
                grid,
                layout_mapping,
                header_index=detection.row_index,
                data_start=detection.row_index + 1,
                format_type=layout.name,
                confidence=detection.confidence,
            )

        logger.info("No known layout matched header row %d", detection.row_index)
        return ParsedStatement(
            transactions=(),
            warnings=(),
            format_type="unknown",
            detected_columns=tuple(c for c in columns if c),
            auto_mapping=None,
            requires_manual_mapping=True,
            header_row_index=detection.row_index if detection.detected else None,
            header_confidence=detection.confidence,
            total_rows=len(grid),
        )

    def _parse_manual(self, grid: Sequence[Sequence[Any]], mapping: ColumnMapping) -> ParsedStatement:
        header_index = mapping.header_row_index or 0
        if header_index >= len(grid):
            raise ValidationError(f"Header row {header_index + 1} is beyond the end of the file")
        data_start = mapping.data_start_row_index
        if data_start is None:
            data_start = header_index + 1
        if data_start <= header_index:
            raise ValidationError("Data must start after the header row")
        return self._parse_rows(
            grid,
            mapping,
            header_index=header_index,
            data_start=data_start,
            format_type="manual",
            confidence=1.0,
        )

    def _resolve_columns(self, header: Sequence[str], mapping: ColumnMapping) -> dict[str, int]:
        exact: dict[str, int] = {}
        folded: dict[str, int] = {}
        for index, name in enumerate(header):
            if name:
                exact.setdefault(name, index)
                folded.setdefault(normalize_header(name), index)

        indexes = {}
        missing = []
        for field_name, column in mapping.columns().items():
            key = column.strip()
            if key in exact:
                indexes[field_name] = exact[key]
            elif normalize_header(key) in folded:
                indexes[field_name] = folded[normalize_header(key)]
            else:
                missing.append(column)
        if missing:
            raise ValidationError(unknown_mapping_columns(missing))
        if not {"withdrawal", "deposit", "amount"} & indexes.keys():
            raise ValidationError("Column mapping needs a withdrawal, deposit or amount column")
        return indexes

    def _parse_rows(
        self,
        grid: Sequence[Sequence[Any]],
        mapping: ColumnMapping,
        *,
        header_index: int,
        data_start: int,
        format_type: str,
        confidence: float,
    ) -> ParsedStatement:
        header = [_cell_text(c) or "" for c in grid[header_index]]
        indexes = self._resolve_columns(header, mapping)
        raw_keys = [name or f"column_{i + 1}" for i, name in enumerate(header)]

        transactions: list[ParsedTransaction] = []
        warnings: list[RowWarning] = []

        for row_index in range(data_start, len(grid)):
            row = grid[row_index]
            if not row or all(_cell_text(c) is None for c in row):
                continue
            parsed = self._parse_row(row_index, row, indexes, raw_keys, warnings)
            if parsed is not None:
                transactions.append(parsed)

        logger.info(
            "Parsed %d transactions from %d data rows (%d warnings)",
            len(transactions),
            max(len(grid) - data_start, 0),
            len(warnings),
        )
        return ParsedStatement(
            transactions=tuple(transactions),
            warnings=tuple(warnings),
            format_type=format_type,
            detected_columns=tuple(c for c in header if c),
            auto_mapping=mapping,
            requires_manual_mapping=False,
            header_row_index=header_index,
            header_confidence=confidence,
            total_rows=max(len(grid) - data_start, 0),
        )

    def _parse_row(
        self,
        row_index: int,
        row: Sequence[Any],
        indexes: dict[str, int],
        raw_keys: list[str],
        warnings: list[RowWarning],
    ) -> Optional[ParsedTransaction]:
        def cell(field_name: str) -> Any:
            index = indexes.get(field_name)
            if index is None or index >= len(row):
                return None
            return row[index]

        row_warnings: list[str] = []

        def amount(field_name: str, signed: bool = False) -> Decimal:
            value = cell(field_name)
            try:
                parsed = parse_statement_amount(value, signed=signed)
            except ValueError:
                row_warnings.append(f"Invalid {field_name} amount '{value}'")
                return ZERO
            return ZERO if parsed is None else parsed

        withdrawal = amount("withdrawal")
        deposit = amount("deposit")
        if "amount" in indexes:
            signed = amount("amount", signed=True)
            if signed < 0:
                withdrawal += -signed
            else:
                deposit += signed

        date_value = cell("txn_date")
        date_value_unparsed = False
        try:
            txn_date = parse_statement_date(date_value, self.timezone)
            date_error = None if txn_date is not None else "Missing date value"
        except ValueError:
            txn_date = None
            date_value_unparsed = True
            date_error = f"Invalid date format: {date_value}"

        has_amount = withdrawal != ZERO or deposit != ZERO
        if txn_date is None:
            # Only a row without a date and without amounts is silent
            if date_value_unparsed or has_amount or row_warnings:
                warnings.append(RowWarning(row_index, date_error))
            return None

        for message in row_warnings:
            warnings.append(RowWarning(row_index, message))
        if not has_amount:
            warnings.append(RowWarning(row_index, "Both withdrawal and deposit are 0"))
            return None

        balance_value = cell("balance")
        try:
            balance = parse_statement_amount(balance_value, signed=True)
        except ValueError:
            balance = None

        return ParsedTransaction(
            row_index=row_index,
            txn_date=txn_date,
            description=_cell_text(cell("description")),
            withdrawal=withdrawal,
            deposit=deposit,
            balance=balance,
            channel=_cell_text(cell("channel")),
            reference_id=_cell_text(cell("reference_id")),
            raw={key: _json_safe(value) for key, value in zip(raw_keys, row)},
        )
