"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic so the domain types stay stable
when the schema changes.
"""

from decimal import Decimal
from typing import Optional

from bankrec.domain import entities as domain
from bankrec.database.models import (
    BankAccount as ORMBankAccount,
    BankTransaction as ORMBankTransaction,
    ImportBatch as ORMImportBatch,
    OpeningBalance as ORMOpeningBalance,
    ReportedBalance as ORMReportedBalance,
)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value if value is not None else 0).quantize(CENT)


def _optional_money(value) -> Optional[Decimal]:
    return None if value is None else Decimal(value).quantize(CENT)


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        created_by=orm_account.created_by,
        bank_name=orm_account.bank_name,
        account_number=orm_account.account_number,
        account_type=domain.AccountType(orm_account.account_type),
        currency=orm_account.currency,
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def bank_transaction_to_domain(orm_txn: ORMBankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain BankTransaction entity."""
    return domain.BankTransaction(
        id=orm_txn.id,
        bank_account_id=orm_txn.bank_account_id,
        import_batch_id=orm_txn.import_batch_id,
        txn_date=orm_txn.txn_date,
        description=orm_txn.description,
        withdrawal=_money(orm_txn.withdrawal),
        deposit=_money(orm_txn.deposit),
        balance=_optional_money(orm_txn.balance),
        channel=orm_txn.channel,
        reference_id=orm_txn.reference_id,
        txn_hash=orm_txn.txn_hash,
        raw=orm_txn.raw,
        created_by=orm_txn.created_by,
        created_at=orm_txn.created_at,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=orm_batch.id,
        bank_account_id=orm_batch.bank_account_id,
        file_name=orm_batch.file_name,
        file_hash=orm_batch.file_hash,
        imported_by=orm_batch.imported_by,
        imported_at=orm_batch.imported_at,
        import_mode=domain.ImportMode(orm_batch.import_mode),
        row_count=orm_batch.row_count,
        inserted_count=orm_batch.inserted_count,
        status=domain.BatchStatus(orm_batch.status),
        metadata=dict(orm_batch.batch_metadata or {}),
    )


def opening_balance_to_domain(orm_balance: ORMOpeningBalance) -> domain.OpeningBalance:
    """Convert SQLAlchemy OpeningBalance model to domain OpeningBalance entity."""
    return domain.OpeningBalance(
        id=orm_balance.id,
        user_id=orm_balance.user_id,
        bank_account_id=orm_balance.bank_account_id,
        as_of_date=orm_balance.as_of_date,
        amount=_money(orm_balance.opening_balance),
        created_at=orm_balance.created_at,
        updated_at=orm_balance.updated_at,
    )


def reported_balance_to_domain(orm_balance: ORMReportedBalance) -> domain.ReportedBalance:
    """Convert SQLAlchemy ReportedBalance model to domain ReportedBalance entity."""
    return domain.ReportedBalance(
        id=orm_balance.id,
        user_id=orm_balance.user_id,
        bank_account_id=orm_balance.bank_account_id,
        reported_as_of_date=orm_balance.reported_as_of_date,
        amount=_money(orm_balance.reported_balance),
        created_at=orm_balance.created_at,
    )
