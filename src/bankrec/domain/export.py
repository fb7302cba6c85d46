"""CSV export of bank transactions with running balances."""

import csv
import io
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any, Optional

from bankrec.config import Settings
from bankrec.database.base import Database
from bankrec.domain.cash_position import CashPositionService
from bankrec.domain.entities import CsvExport
from bankrec.domain.errors import NotFoundError, ValidationError

EXPORT_HEADER = (
    "Date",
    "Description",
    "Withdrawal",
    "Deposit",
    "Balance",
    "Running Balance",
    "Channel",
    "Reference ID",
    "Created At",
)

# Leading characters spreadsheets evaluate as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@")


def _text_cell(value: Optional[str]) -> str:
    if not value:
        return ""
    if value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def _money(value: Optional[Decimal]) -> str:
    return "" if value is None else f"{value:.2f}"


def _slug(value: Any) -> str:
    return "".join(ch if ch.isalnum() else "-" for ch in str(value)).strip("-").lower()


class TransactionExportService:
    """Service for exporting an account's transactions as CSV."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize export service.

        Args:
            db: Database instance
            settings: Runtime settings (page size)
        """
        self.db = db
        self.settings = settings or Settings()
        self.cash_positions = CashPositionService(db, self.settings)

    def export_csv(self, user_id: str, account_id: int, start: date, end: date) -> CsvExport:
        """Render the transactions of [start, end] as CSV.

        The first line states the opening balance the running balance starts
        from, which is the same opening used for the cash position.

        Raises:
            AuthorizationError: If the caller does not own the account
            NotFoundError: If there are no transactions in the range
        """
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")
        account = self.cash_positions.account_service.require_owned_account(user_id, account_id)
        opening = self.cash_positions.opening_for_range(account, start)

        buffer = io.StringIO()
        if opening is not None:
            buffer.write(
                f"# Opening Balance: {opening.amount:.2f} {account.currency} "
                f"(as of {opening.as_of_date.isoformat()})\n"
            )
            running = opening.amount
        else:
            buffer.write(f"# Opening Balance: 0.00 {account.currency} (default)\n")
            running = Decimal("0.00")

        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_HEADER)

        count = 0
        for txn in self.db.iter_transactions(
            account.id, start_date=start, end_date=end, page_size=self.settings.page_size
        ):
            running = running + txn.deposit - txn.withdrawal
            writer.writerow(
                (
                    txn.txn_date.isoformat(),
                    _text_cell(txn.description),
                    _money(txn.withdrawal),
                    _money(txn.deposit),
                    _money(txn.balance),
                    _money(running),
                    _text_cell(txn.channel),
                    _text_cell(txn.reference_id),
                    txn.created_at.isoformat() if txn.created_at else "",
                )
            )
            count += 1

        if count == 0:
            raise NotFoundError(f"No transactions between {start} and {end}")

        timestamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
        filename = f"bank-{_slug(account.bank_name)}-{_slug(account.account_number)}-{timestamp}.csv"
        return CsvExport(filename=filename, content=buffer.getvalue(), row_count=count)
