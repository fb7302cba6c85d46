"""Bank account domain service."""

import logging
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.entities import AccountType, BankAccount
from bankrec.domain.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
    account_not_found,
    account_not_owned,
    duplicate_account,
    missing_identity,
)

logger = logging.getLogger(__name__)


def require_user(user_id: Optional[str]) -> str:
    """Return the user id, or raise if no identity is present."""
    if user_id is None or not str(user_id).strip():
        raise AuthorizationError(missing_identity())
    return str(user_id).strip()


class AccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database, default_currency: str = "THB"):
        """Initialize account service.

        Args:
            db: Database instance
            default_currency: Currency for accounts created without one
        """
        self.db = db
        self.default_currency = default_currency

    def create_account(
        self,
        user_id: str,
        bank_name: str,
        account_number: str,
        account_type: str = AccountType.CURRENT.value,
        currency: Optional[str] = None,
    ) -> int:
        """Create a bank account owned by the user.

        Args:
            user_id: Owner
            bank_name: Bank name, e.g. "KBANK"
            account_number: Account number as printed on statements
            account_type: savings, current, fixed_deposit or other
            currency: ISO currency code (defaults to the service default)

        Returns:
            Account ID

        Raises:
            AuthorizationError: If user_id is empty
            ValidationError: If a field is empty or the type is unknown
            ConflictError: If the user already has this bank and number
        """
        user_id = require_user(user_id)
        bank_name = (bank_name or "").strip()
        account_number = (account_number or "").strip()
        if not bank_name or not account_number:
            raise ValidationError("Bank name and account number are required")
        try:
            kind = AccountType(account_type)
        except ValueError:
            choices = ", ".join(t.value for t in AccountType)
            raise ValidationError(f"Unknown account type '{account_type}'. Choose one of: {choices}")
        currency = (currency or self.default_currency).strip().upper()
        if len(currency) != 3:
            raise ValidationError(f"Currency must be a 3-letter code, got '{currency}'")

        try:
            account_id = self.db.create_bank_account(
                created_by=user_id,
                bank_name=bank_name,
                account_number=account_number,
                account_type=kind.value,
                currency=currency,
            )
        except DuplicateRecordError:
            raise ConflictError(duplicate_account(bank_name, account_number))
        logger.info("Created bank account %d for %s", account_id, user_id)
        return account_id

    def get_account(self, account_id: int) -> Optional[BankAccount]:
        """Get account by ID without an ownership check."""
        return self.db.get_bank_account(account_id)

    def require_owned_account(self, user_id: Optional[str], account_id: int) -> BankAccount:
        """Return the account if the caller owns it.

        Raises:
            AuthorizationError: If there is no identity, or the account is
                missing or owned by someone else
        """
        user_id = require_user(user_id)
        account = self.db.get_bank_account(account_id)
        if account is None or account.created_by != user_id:
            raise AuthorizationError(account_not_owned(account_id))
        return account

    def list_accounts(self, user_id: str, include_inactive: bool = False) -> list[BankAccount]:
        """List the user's accounts.

        Args:
            user_id: Owner
            include_inactive: Include deactivated accounts

        Returns:
            List of account entities
        """
        return self.db.list_bank_accounts(require_user(user_id), include_inactive=include_inactive)

    def deactivate_account(self, user_id: str, account_id: int) -> None:
        """Deactivate an account. Its transactions and batches are kept.

        Raises:
            AuthorizationError: If the caller does not own the account
        """
        account = self.require_owned_account(user_id, account_id)
        if not account.is_active:
            return
        self.db.set_bank_account_active(account.id, False)
        logger.info("Deactivated bank account %d", account.id)

    def resolve_account(self, user_id: str, account: str | int) -> BankAccount:
        """Resolve an account ID or account number to an owned account.

        Raises:
            NotFoundError: If nothing owned by the user matches
        """
        text = str(account).strip()
        if text.isdigit():
            try:
                return self.require_owned_account(user_id, int(text))
            except AuthorizationError:
                pass
        for acc in self.list_accounts(user_id, include_inactive=True):
            if acc.account_number == text:
                return acc
        raise NotFoundError(account_not_found(text))
