"""Shared pytest fixtures for bankrec tests."""

import tempfile
import os
from pathlib import Path
import pytest

from bankrec.config import Settings
from bankrec.database.factories import create_sqlite_database
from bankrec.domain.account import AccountService
from bankrec.domain.balances import BalanceService
from bankrec.domain.batch_repair import BatchRepairService
from bankrec.domain.cash_position import CashPositionService
from bankrec.domain.export import TransactionExportService
from bankrec.domain.reconciliation import ReconciliationService
from bankrec.domain.statement_import import StatementImportService

USER = "alice"
OTHER_USER = "bob"

STATEMENT_HEADER = "Date,Description,Withdrawal,Deposit,Balance"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default settings (Asia/Bangkok, THB, page size 1000)."""
    return Settings()


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def import_service(temp_db, settings):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db, settings)


@pytest.fixture
def repair_service(temp_db):
    """Create a BatchRepairService with a temporary database."""
    return BatchRepairService(temp_db)


@pytest.fixture
def balance_service(temp_db):
    """Create a BalanceService with a temporary database."""
    return BalanceService(temp_db)


@pytest.fixture
def cash_service(temp_db, settings):
    """Create a CashPositionService with a temporary database."""
    return CashPositionService(temp_db, settings)


@pytest.fixture
def reconciliation_service(temp_db, settings):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db, settings)


@pytest.fixture
def export_service(temp_db, settings):
    """Create a TransactionExportService with a temporary database."""
    return TransactionExportService(temp_db, settings)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account owned by USER."""
    account_id = account_service.create_account(USER, bank_name="KBANK", account_number="123-4-56789-0")
    return account_service.get_account(account_id)


@pytest.fixture
def other_account(account_service):
    """Create an account owned by OTHER_USER."""
    account_id = account_service.create_account(OTHER_USER, bank_name="SCB", account_number="987-6-54321-0")
    return account_service.get_account(account_id)


@pytest.fixture
def statement_csv():
    """Build statement CSV bytes from (date, description, withdrawal, deposit) rows.

    Dates are written as given, so tests choose the format. Amounts may be
    strings, numbers or None for an empty cell.
    """

    def build(rows, header=STATEMENT_HEADER, preamble=()):
        lines = list(preamble) + [header]
        for row in rows:
            cells = ["" if value is None else str(value) for value in row]
            while len(cells) < len(header.split(",")):
                cells.append("")
            lines.append(",".join(cells))
        return ("\n".join(lines) + "\n").encode("utf-8")

    return build


@pytest.fixture
def import_rows(import_service, sample_account, statement_csv):
    """Import rows into the sample account and return the ImportResult."""

    def run(rows, file_name="statement.csv", mode="append", user_id=USER):
        return import_service.import_statement(
            user_id, sample_account.id, statement_csv(rows), file_name, mode=mode
        )

    return run


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
