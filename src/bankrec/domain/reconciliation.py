"""Compare computed closing balances with bank-reported balances."""

from datetime import date
from decimal import Decimal
from typing import Optional

from bankrec.config import Settings
from bankrec.database.base import Database
from bankrec.domain.cash_position import CashPositionService
from bankrec.domain.entities import BalanceSummary, ReportedBalance

# Smallest difference that counts as a mismatch for two-decimal currencies
MISMATCH_TOLERANCE = Decimal("0.01")


def reconciliation_delta(expected: Decimal, reported: Optional[Decimal]) -> Optional[Decimal]:
    """Return reported minus expected, or None without a report."""
    if reported is None:
        return None
    return reported - expected


def is_mismatch(delta: Optional[Decimal]) -> bool:
    return delta is not None and abs(delta) >= MISMATCH_TOLERANCE


class ReconciliationService:
    """Service producing balance summaries for reconciliation."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            settings: Runtime settings passed to the cash position service
        """
        self.db = db
        self.cash_positions = CashPositionService(db, settings)

    def balance_summary(self, user_id: str, account_id: int, start: date, end: date) -> BalanceSummary:
        """Compute opening + net movement and compare it to the latest report.

        The expected closing balance is the ending balance of the cash
        position for the same range. The reported balance is the one with
        the latest as-of date, whatever the range.

        Raises:
            AuthorizationError: If the caller does not own the account
            ValidationError: If start is after end
        """
        position = self.cash_positions.get_cash_position(user_id, account_id, start, end)
        account = self.cash_positions.account_service.require_owned_account(user_id, account_id)

        reports = self.db.list_reported_balances(account.created_by, account.id, limit=1)
        latest: Optional[ReportedBalance] = reports[0] if reports else None
        reported = latest.amount if latest else None
        delta = reconciliation_delta(position.ending_balance, reported)

        return BalanceSummary(
            bank_account_id=account.id,
            start=start,
            end=end,
            opening_balance=position.opening_balance,
            net_movement=position.net_total,
            expected_closing=position.ending_balance,
            reported_balance=reported,
            reported_as_of=latest.reported_as_of_date if latest else None,
            delta=delta,
            is_mismatch=is_mismatch(delta),
        )
