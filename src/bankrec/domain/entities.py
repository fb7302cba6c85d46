"""Domain model entities for bankrec.

These are pure data classes representing business concepts, independent of
database schema. Services and the CLI only ever see these types; the ORM
models stay inside the database package.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ZERO = Decimal("0.00")


class ImportMode(str, Enum):
    """Policy for existing rows when a statement is imported."""

    APPEND = "append"
    REPLACE_RANGE = "replace_range"
    REPLACE_ALL = "replace_all"


class BatchStatus(str, Enum):
    """Import batch lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class AccountType(str, Enum):
    """Kind of bank account."""

    SAVINGS = "savings"
    CURRENT = "current"
    FIXED_DEPOSIT = "fixed_deposit"
    OTHER = "other"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range."""

    start: date
    end: date

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class BankAccount:
    """Bank account domain entity."""

    id: int
    created_by: str
    bank_name: str
    account_number: str
    account_type: AccountType
    currency: str
    is_active: bool
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.bank_name} {self.account_number}"


@dataclass(frozen=True)
class BankTransaction:
    """Stored bank transaction."""

    id: int
    bank_account_id: int
    import_batch_id: Optional[int]
    txn_date: date
    description: Optional[str]
    withdrawal: Decimal
    deposit: Decimal
    balance: Optional[Decimal]
    channel: Optional[str]
    reference_id: Optional[str]
    txn_hash: str
    raw: Optional[dict[str, Any]]
    created_by: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class NewTransaction:
    """Insert payload for a bank transaction."""

    bank_account_id: int
    import_batch_id: Optional[int]
    txn_date: date
    description: Optional[str]
    withdrawal: Decimal
    deposit: Decimal
    txn_hash: str
    created_by: Optional[str]
    balance: Optional[Decimal] = None
    channel: Optional[str] = None
    reference_id: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ImportBatch:
    """Audit record for one statement file ingestion."""

    id: int
    bank_account_id: int
    file_name: str
    file_hash: str
    imported_by: str
    imported_at: datetime
    import_mode: ImportMode
    row_count: int
    inserted_count: int
    status: BatchStatus
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OpeningBalance:
    """User-asserted balance of an account as of a date."""

    id: int
    user_id: str
    bank_account_id: int
    as_of_date: date
    amount: Decimal
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReportedBalance:
    """Balance observed in the bank's own channels as of a date."""

    id: int
    user_id: str
    bank_account_id: int
    reported_as_of_date: date
    amount: Decimal
    created_at: datetime


@dataclass(frozen=True)
class ColumnMapping:
    """Mapping from statement header names to transaction fields.

    Only txn_date is mandatory, plus at least one of withdrawal, deposit or
    amount. ``amount`` is a single signed column: negative values are
    withdrawals. header_row_index and data_start_row_index are zero-based
    positions in the cell grid; when omitted the header is the first row and
    data starts right after it.
    """

    txn_date: str
    description: Optional[str] = None
    withdrawal: Optional[str] = None
    deposit: Optional[str] = None
    amount: Optional[str] = None
    balance: Optional[str] = None
    channel: Optional[str] = None
    reference_id: Optional[str] = None
    header_row_index: Optional[int] = None
    data_start_row_index: Optional[int] = None

    FIELDS = (
        "txn_date",
        "description",
        "withdrawal",
        "deposit",
        "amount",
        "balance",
        "channel",
        "reference_id",
    )

    def columns(self) -> dict[str, str]:
        """Return {field: column name} for every mapped field."""
        result = {}
        for name in self.FIELDS:
            value = getattr(self, name)
            if value:
                result[name] = value
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = self.columns()
        if self.header_row_index is not None:
            data["header_row_index"] = self.header_row_index
        if self.data_start_row_index is not None:
            data["data_start_row_index"] = self.data_start_row_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ColumnMapping":
        """Build a mapping from a plain dict, ignoring unknown keys.

        Raises:
            ValueError: If txn_date is missing
        """
        if not data.get("txn_date"):
            raise ValueError("Column mapping must include 'txn_date'")
        kwargs = {name: data.get(name) or None for name in cls.FIELDS}
        for key in ("header_row_index", "data_start_row_index"):
            if data.get(key) is not None:
                kwargs[key] = int(data[key])
        return cls(**kwargs)


@dataclass(frozen=True)
class ParsedTransaction:
    """Normalized statement row, validated at the parser boundary."""

    row_index: int
    txn_date: date
    description: Optional[str]
    withdrawal: Decimal
    deposit: Decimal
    balance: Optional[Decimal] = None
    channel: Optional[str] = None
    reference_id: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def net(self) -> Decimal:
        return self.deposit - self.withdrawal


@dataclass(frozen=True)
class RowWarning:
    """Problem found on one grid row (zero-based index)."""

    row_index: int
    reason: str

    def __str__(self) -> str:
        return f"Row {self.row_index + 1}: {self.reason}"


@dataclass(frozen=True)
class ParsedStatement:
    """Result of parsing one statement grid."""

    transactions: tuple[ParsedTransaction, ...]
    warnings: tuple[RowWarning, ...]
    format_type: str
    detected_columns: tuple[str, ...]
    auto_mapping: Optional[ColumnMapping]
    requires_manual_mapping: bool = False
    header_row_index: Optional[int] = None
    header_confidence: float = 0.0
    total_rows: int = 0

    @property
    def date_range(self) -> Optional[DateRange]:
        if not self.transactions:
            return None
        dates = [t.txn_date for t in self.transactions]
        return DateRange(start=min(dates), end=max(dates))

    @property
    def total_deposits(self) -> Decimal:
        return sum((t.deposit for t in self.transactions), ZERO)

    @property
    def total_withdrawals(self) -> Decimal:
        return sum((t.withdrawal for t in self.transactions), ZERO)


@dataclass(frozen=True)
class DailyCashRow:
    """One day of movement in a cash position series."""

    date: date
    cash_in: Decimal
    cash_out: Decimal
    net: Decimal
    running_balance: Decimal
    txn_count: int


@dataclass(frozen=True)
class CashPositionResult:
    """Derived cash position for a date range; never persisted."""

    opening_balance: Decimal
    opening_date: Optional[date]
    cash_in_total: Decimal
    cash_out_total: Decimal
    net_total: Decimal
    ending_balance: Decimal
    daily: tuple[DailyCashRow, ...] = ()


@dataclass(frozen=True)
class BalanceSummary:
    """Expected closing balance compared with the latest reported balance."""

    bank_account_id: int
    start: date
    end: date
    opening_balance: Decimal
    net_movement: Decimal
    expected_closing: Decimal
    reported_balance: Optional[Decimal]
    reported_as_of: Optional[date]
    delta: Optional[Decimal]
    is_mismatch: bool


@dataclass(frozen=True)
class ImportPreview:
    """Dry-run view of a statement file."""

    file_name: str
    file_hash: str
    format_type: str
    date_range: DateRange
    total_deposits: Decimal
    total_withdrawals: Decimal
    net: Decimal
    row_count: int
    sample_rows: tuple[ParsedTransaction, ...]
    warnings: tuple[RowWarning, ...]


@dataclass(frozen=True)
class ImportOverlap:
    """Stored transactions already covering a file's date range."""

    existing_count: int
    date_range: DateRange
    file_count: int


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one import call."""

    batch_id: int
    status: BatchStatus
    inserted_count: int
    duplicate_count: int
    deleted_count: int
    failed_count: int
    message: str

    @property
    def success(self) -> bool:
        return self.status == BatchStatus.COMPLETED


@dataclass(frozen=True)
class RollbackResult:
    """Outcome of a batch rollback."""

    batch_id: int
    status: BatchStatus
    deleted_count: int


@dataclass(frozen=True)
class RepairResult:
    """Outcome of healing pending batches for one account."""

    repaired: int
    completed_ids: tuple[int, ...] = ()
    failed_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class CsvExport:
    """Rendered CSV export."""

    filename: str
    content: str
    row_count: int
