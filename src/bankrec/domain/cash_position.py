"""Cash position calculation.

``compute_cash_position`` is the single place where running balances are
derived. The account and company views, the reconciliation summary and the
CSV export all call it (or walk transactions the same way) so their numbers
always agree.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence

from bankrec.config import Settings
from bankrec.database.base import Database
from bankrec.domain.account import AccountService, require_user
from bankrec.domain.entities import (
    BankAccount,
    CashPositionResult,
    DailyCashRow,
    OpeningBalance,
    ZERO,
)
from bankrec.domain.errors import ValidationError

logger = logging.getLogger(__name__)


class Movement(Protocol):
    """Anything with a date and non-negative deposit/withdrawal amounts."""

    txn_date: date
    deposit: Decimal
    withdrawal: Decimal


def empty_cash_position() -> CashPositionResult:
    return CashPositionResult(
        opening_balance=ZERO,
        opening_date=None,
        cash_in_total=ZERO,
        cash_out_total=ZERO,
        net_total=ZERO,
        ending_balance=ZERO,
        daily=(),
    )


def _build_result(
    days: dict[date, list],
    opening_balance: Decimal,
    opening_date: Optional[date],
) -> CashPositionResult:
    running = opening_balance
    cash_in_total = ZERO
    cash_out_total = ZERO
    daily = []
    for day in sorted(days):
        cash_in, cash_out, count = days[day]
        net = cash_in - cash_out
        running = running + net
        cash_in_total += cash_in
        cash_out_total += cash_out
        daily.append(
            DailyCashRow(
                date=day,
                cash_in=cash_in,
                cash_out=cash_out,
                net=net,
                running_balance=running,
                txn_count=count,
            )
        )
    net_total = cash_in_total - cash_out_total
    return CashPositionResult(
        opening_balance=opening_balance,
        opening_date=opening_date,
        cash_in_total=cash_in_total,
        cash_out_total=cash_out_total,
        net_total=net_total,
        ending_balance=opening_balance + net_total,
        daily=tuple(daily),
    )


def compute_cash_position(
    transactions: Iterable[Movement],
    opening_balance: Decimal = ZERO,
    opening_date: Optional[date] = None,
) -> CashPositionResult:
    """Group movements by day and walk them into a running balance.

    Days without movements are left out of the series. Input order does not
    matter.

    Args:
        transactions: Movements to aggregate
        opening_balance: Balance the running total starts from
        opening_date: As-of date of the opening balance, for display

    Returns:
        Immutable CashPositionResult
    """
    days: dict[date, list] = defaultdict(lambda: [ZERO, ZERO, 0])
    for txn in transactions:
        bucket = days[txn.txn_date]
        bucket[0] += txn.deposit
        bucket[1] += txn.withdrawal
        bucket[2] += 1
    return _build_result(days, Decimal(opening_balance), opening_date)


def aggregate_cash_positions(results: Sequence[CashPositionResult]) -> CashPositionResult:
    """Combine per-account positions into one company-level position.

    Openings are summed, daily rows on the same date are merged and the
    running balance is recomputed from the combined opening.
    """
    if not results:
        return empty_cash_position()

    opening_balance = sum((r.opening_balance for r in results), ZERO)
    opening_dates = [r.opening_date for r in results if r.opening_date is not None]
    days: dict[date, list] = defaultdict(lambda: [ZERO, ZERO, 0])
    for result in results:
        for row in result.daily:
            bucket = days[row.date]
            bucket[0] += row.cash_in
            bucket[1] += row.cash_out
            bucket[2] += row.txn_count
    return _build_result(days, opening_balance, min(opening_dates) if opening_dates else None)


class CashPositionService:
    """Service for account and company cash positions."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize cash position service.

        Args:
            db: Database instance
            settings: Runtime settings (page size)
        """
        self.db = db
        self.settings = settings or Settings()
        self.account_service = AccountService(db)

    def opening_for_range(self, account: BankAccount, start: date) -> Optional[OpeningBalance]:
        """Return the account's opening balance if it is effective by ``start``."""
        opening = self.db.get_opening_balance(account.created_by, account.id)
        if opening is None or opening.as_of_date > start:
            return None
        return opening

    def _position(self, account: BankAccount, start: date, end: date) -> CashPositionResult:
        opening = self.opening_for_range(account, start)
        transactions = self.db.iter_transactions(
            account.id, start_date=start, end_date=end, page_size=self.settings.page_size
        )
        return compute_cash_position(
            transactions,
            opening_balance=opening.amount if opening else ZERO,
            opening_date=opening.as_of_date if opening else None,
        )

    def get_cash_position(self, user_id: str, account_id: int, start: date, end: date) -> CashPositionResult:
        """Compute the cash position of one account over [start, end].

        Raises:
            AuthorizationError: If the caller does not own the account
            ValidationError: If start is after end
        """
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")
        account = self.account_service.require_owned_account(user_id, account_id)
        return self._position(account, start, end)

    def get_company_cash_position(self, user_id: str, start: date, end: date) -> CashPositionResult:
        """Aggregate the positions of all the user's active accounts.

        An account whose position cannot be computed is logged and left out;
        the others are still returned.
        """
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")
        user_id = require_user(user_id)
        results = []
        for account in self.db.list_bank_accounts(user_id):
            try:
                results.append(self._position(account, start, end))
            except Exception:
                logger.exception("Skipping account %d in company cash position", account.id)
        return aggregate_cash_positions(results)
