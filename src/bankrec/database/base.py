"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Iterator, Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from bankrec.domain.entities import (
    BankAccount,
    BankTransaction,
    BatchStatus,
    ImportBatch,
    ImportMode,
    NewTransaction,
    OpeningBalance,
    ReportedBalance,
)

DEFAULT_PAGE_SIZE = 1000


class Database(ABC):
    """Abstract database interface for bankrec.

    Implementations raise DuplicateRecordError when a write hits a unique
    constraint and PersistenceError for any other store failure. Every write
    method commits on its own; there is no transaction spanning calls.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self,
        created_by: str,
        bank_name: str,
        account_number: str,
        account_type: str = "current",
        currency: str = "THB",
    ) -> int:
        """Create a bank account. Returns account ID."""
        pass

    @abstractmethod
    def get_bank_account(self, account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def list_bank_accounts(self, created_by: str, include_inactive: bool = False) -> list[BankAccount]:
        """List bank accounts owned by a user."""
        pass

    @abstractmethod
    def set_bank_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate a bank account."""
        pass

    # Import batch operations
    @abstractmethod
    def create_import_batch(
        self,
        bank_account_id: int,
        file_name: str,
        file_hash: str,
        imported_by: str,
        import_mode: ImportMode,
        row_count: int,
        metadata: dict[str, Any],
    ) -> int:
        """Create a pending import batch. Returns batch ID.

        Raises:
            DuplicateRecordError: If a live batch for the same file exists
        """
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def find_live_import_batch(self, bank_account_id: int, file_hash: str) -> Optional[ImportBatch]:
        """Find the batch for a file that has not been rolled back."""
        pass

    @abstractmethod
    def reset_import_batch(
        self,
        batch_id: int,
        *,
        file_name: str,
        imported_by: str,
        import_mode: ImportMode,
        row_count: int,
        metadata: dict[str, Any],
    ) -> None:
        """Put an existing batch back to pending for a retried import.

        Clears inserted_count, replaces metadata and refreshes imported_at.
        """
        pass

    @abstractmethod
    def update_import_batch(
        self,
        batch_id: int,
        *,
        status: Optional[BatchStatus] = None,
        inserted_count: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Update batch status, counts or metadata (metadata is replaced)."""
        pass

    @abstractmethod
    def list_import_batches(
        self,
        bank_account_id: int,
        status: Optional[BatchStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ImportBatch]:
        """List batches of an account, newest first."""
        pass

    # Transaction operations
    @abstractmethod
    def insert_transactions(self, rows: Sequence[NewTransaction]) -> int:
        """Insert all rows in one statement, or none of them.

        Returns:
            Number of rows inserted

        Raises:
            DuplicateRecordError: If any row collides with a stored (account, hash)
        """
        pass

    @abstractmethod
    def insert_transaction(self, row: NewTransaction) -> int:
        """Insert a single row. Returns transaction ID.

        Raises:
            DuplicateRecordError: If the row collides with a stored (account, hash)
        """
        pass

    @abstractmethod
    def delete_transactions(
        self,
        bank_account_id: int,
        *,
        owner: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        import_batch_id: Optional[int] = None,
    ) -> int:
        """Delete transactions of an account. Returns deleted count.

        Args:
            bank_account_id: Account to delete from
            owner: When set, only rows created by this user or with no owner
            start_date: Optional inclusive lower date bound
            end_date: Optional inclusive upper date bound
            import_batch_id: Optional batch filter
        """
        pass

    @abstractmethod
    def count_transactions(
        self,
        bank_account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        import_batch_id: Optional[int] = None,
    ) -> int:
        """Count transactions of an account with optional filters."""
        pass

    @abstractmethod
    def count_transactions_for_batch(self, batch_id: int) -> int:
        """Count transactions linked to an import batch."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        bank_account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[BankTransaction]:
        """List transactions ordered by date then ID."""
        pass

    def iter_transactions(
        self,
        bank_account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[BankTransaction]:
        """Yield transactions ordered by date then ID, one page per query."""
        offset = 0
        while True:
            page = self.list_transactions(
                bank_account_id,
                start_date=start_date,
                end_date=end_date,
                limit=page_size,
                offset=offset,
            )
            yield from page
            if len(page) < page_size:
                return
            offset += page_size

    # Balance operations
    @abstractmethod
    def upsert_opening_balance(
        self, user_id: str, bank_account_id: int, as_of_date: date, amount: Decimal
    ) -> int:
        """Create or replace the opening balance of (user, account). Returns its ID."""
        pass

    @abstractmethod
    def get_opening_balance(self, user_id: str, bank_account_id: int) -> Optional[OpeningBalance]:
        """Get the opening balance of (user, account)."""
        pass

    @abstractmethod
    def add_reported_balance(
        self, user_id: str, bank_account_id: int, reported_as_of_date: date, amount: Decimal
    ) -> int:
        """Append a reported balance observation. Returns its ID."""
        pass

    @abstractmethod
    def list_reported_balances(
        self, user_id: str, bank_account_id: int, limit: Optional[int] = None
    ) -> list[ReportedBalance]:
        """List reported balances, most recent as-of date first."""
        pass
