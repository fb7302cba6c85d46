"""Opening and reported balance records."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.account import AccountService
from bankrec.domain.entities import OpeningBalance, ReportedBalance
from bankrec.domain.errors import ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _to_money(amount: Decimal | int | str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid amount '{amount}'")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount '{amount}'")
    return value.quantize(CENT)


class BalanceService:
    """Service for opening balances and bank-reported balances."""

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def upsert_opening_balance(
        self, user_id: str, account_id: int, as_of_date: date, amount: Decimal
    ) -> OpeningBalance:
        """Set the balance known to be correct at the start of as_of_date.

        Replaces any earlier opening balance of the same user and account.
        """
        account = self.account_service.require_owned_account(user_id, account_id)
        self.db.upsert_opening_balance(account.created_by, account.id, as_of_date, _to_money(amount))
        logger.info("Opening balance of account %d set as of %s", account.id, as_of_date)
        return self.db.get_opening_balance(account.created_by, account.id)

    def get_opening_balance(
        self, user_id: str, account_id: int, on_or_before: Optional[date] = None
    ) -> Optional[OpeningBalance]:
        """Return the opening balance, or None if unset.

        Args:
            user_id: Caller
            account_id: Account
            on_or_before: When given, the balance only counts if its as-of
                date is not later than this day
        """
        account = self.account_service.require_owned_account(user_id, account_id)
        balance = self.db.get_opening_balance(account.created_by, account.id)
        if balance is None:
            return None
        if on_or_before is not None and balance.as_of_date > on_or_before:
            return None
        return balance

    def save_reported_balance(
        self, user_id: str, account_id: int, as_of_date: date, amount: Decimal
    ) -> ReportedBalance:
        """Record what the bank shows as the balance on as_of_date."""
        account = self.account_service.require_owned_account(user_id, account_id)
        balance_id = self.db.add_reported_balance(account.created_by, account.id, as_of_date, _to_money(amount))
        reports = self.db.list_reported_balances(account.created_by, account.id)
        return next(r for r in reports if r.id == balance_id)

    def get_latest_reported_balance(self, user_id: str, account_id: int) -> Optional[ReportedBalance]:
        """Return the report with the latest as-of date, or None."""
        account = self.account_service.require_owned_account(user_id, account_id)
        latest = self.db.list_reported_balances(account.created_by, account.id, limit=1)
        return latest[0] if latest else None

    def list_reported_balances(self, user_id: str, account_id: int, limit: int = 20) -> list[ReportedBalance]:
        """List reported balances, latest as-of date first."""
        account = self.account_service.require_owned_account(user_id, account_id)
        return self.db.list_reported_balances(account.created_by, account.id, limit=limit)
