"""Tests for the SQLAlchemy database implementation."""

from datetime import date
from decimal import Decimal

import pytest

from bankrec.domain import entities
from bankrec.domain.entities import BatchStatus, ImportMode, NewTransaction
from bankrec.domain.errors import DuplicateRecordError, NotFoundError

from conftest import OTHER_USER, USER


def _txn(account_id, day, amount, description="Row", batch_id=None, created_by=USER):
    return NewTransaction(
        bank_account_id=account_id,
        import_batch_id=batch_id,
        txn_date=day,
        description=description,
        withdrawal=Decimal("0"),
        deposit=Decimal(amount),
        txn_hash=f"{day}-{amount}-{description}",
        created_by=created_by,
    )


def _batch(db, account_id, file_hash="a" * 64):
    return db.create_import_batch(
        bank_account_id=account_id,
        file_name="statement.csv",
        file_hash=file_hash,
        imported_by=USER,
        import_mode=ImportMode.APPEND,
        row_count=2,
        metadata={"format_type": "kbiz"},
    )


class TestDatabaseInterface:
    """Test that the database returns domain entities."""

    def test_get_bank_account_returns_domain_model(self, temp_db, sample_account):
        account = temp_db.get_bank_account(sample_account.id)

        assert isinstance(account, entities.BankAccount)
        assert account.account_type == entities.AccountType.CURRENT
        assert account.currency == "THB"

    def test_missing_account(self, temp_db):
        assert temp_db.get_bank_account(99) is None

    def test_duplicate_account_number(self, temp_db, sample_account):
        with pytest.raises(DuplicateRecordError):
            temp_db.create_bank_account(created_by=USER, bank_name="KBANK", account_number="123-4-56789-0")

        # The session is usable after the failed write
        assert temp_db.get_bank_account(sample_account.id) is not None

    def test_set_active_on_missing_account(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.set_bank_account_active(99, False)

    def test_import_batch_returns_domain_model(self, temp_db, sample_account):
        batch_id = _batch(temp_db, sample_account.id)

        batch = temp_db.get_import_batch(batch_id)

        assert isinstance(batch, entities.ImportBatch)
        assert batch.status == BatchStatus.PENDING
        assert batch.import_mode == ImportMode.APPEND
        assert batch.inserted_count == 0
        assert batch.metadata == {"format_type": "kbiz"}

    def test_live_file_is_unique_per_account(self, temp_db, sample_account):
        batch_id = _batch(temp_db, sample_account.id)

        with pytest.raises(DuplicateRecordError):
            _batch(temp_db, sample_account.id)

        temp_db.update_import_batch(batch_id, status=BatchStatus.ROLLED_BACK)
        again = _batch(temp_db, sample_account.id)

        assert temp_db.find_live_import_batch(sample_account.id, "a" * 64).id == again

    def test_update_import_batch(self, temp_db, sample_account):
        batch_id = _batch(temp_db, sample_account.id)

        temp_db.update_import_batch(
            batch_id, status=BatchStatus.COMPLETED, inserted_count=2, metadata={"format_type": "generic"}
        )

        batch = temp_db.get_import_batch(batch_id)
        assert batch.status == BatchStatus.COMPLETED
        assert batch.inserted_count == 2
        assert batch.metadata == {"format_type": "generic"}

    def test_update_missing_batch(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.update_import_batch(99, status=BatchStatus.FAILED)

    def test_list_import_batches_by_status(self, temp_db, sample_account):
        first = _batch(temp_db, sample_account.id, "a" * 64)
        second = _batch(temp_db, sample_account.id, "b" * 64)
        temp_db.update_import_batch(first, status=BatchStatus.COMPLETED)

        pending = temp_db.list_import_batches(sample_account.id, status=BatchStatus.PENDING)

        assert [b.id for b in pending] == [second]
        assert len(temp_db.list_import_batches(sample_account.id, limit=1)) == 1

    def test_transactions_return_domain_models(self, temp_db, sample_account):
        temp_db.insert_transaction(_txn(sample_account.id, date(2025, 1, 2), "10.5"))

        [txn] = temp_db.list_transactions(sample_account.id)

        assert isinstance(txn, entities.BankTransaction)
        assert txn.deposit == Decimal("10.50")
        assert txn.withdrawal == Decimal("0.00")
        assert txn.balance is None
        assert txn.created_by == USER

    def test_duplicate_hash_is_rejected(self, temp_db, sample_account, other_account):
        row = _txn(sample_account.id, date(2025, 1, 2), "10")
        temp_db.insert_transaction(row)

        with pytest.raises(DuplicateRecordError):
            temp_db.insert_transaction(row)

        # The same hash on another account is a different transaction
        temp_db.insert_transaction(_txn(other_account.id, date(2025, 1, 2), "10", created_by=OTHER_USER))

    def test_insert_many_is_all_or_nothing(self, temp_db, sample_account):
        temp_db.insert_transaction(_txn(sample_account.id, date(2025, 1, 2), "10"))

        with pytest.raises(DuplicateRecordError):
            temp_db.insert_transactions(
                [_txn(sample_account.id, date(2025, 1, 3), "20"), _txn(sample_account.id, date(2025, 1, 2), "10")]
            )

        assert temp_db.count_transactions(sample_account.id) == 1

    def test_list_transactions_order_and_range(self, temp_db, sample_account):
        temp_db.insert_transactions(
            [
                _txn(sample_account.id, date(2025, 1, 3), "3"),
                _txn(sample_account.id, date(2025, 1, 1), "1"),
                _txn(sample_account.id, date(2025, 1, 2), "2"),
                _txn(sample_account.id, date(2025, 1, 2), "4"),
            ]
        )

        rows = temp_db.list_transactions(sample_account.id, start_date=date(2025, 1, 2), end_date=date(2025, 1, 3))

        assert [(t.txn_date.day, t.deposit) for t in rows] == [
            (2, Decimal("2.00")),
            (2, Decimal("4.00")),
            (3, Decimal("3.00")),
        ]

    def test_iter_transactions_pages(self, temp_db, sample_account):
        temp_db.insert_transactions([_txn(sample_account.id, date(2025, 1, day), str(day)) for day in range(1, 8)])

        paged = list(temp_db.iter_transactions(sample_account.id, page_size=3))

        assert [t.deposit for t in paged] == [Decimal(day) for day in range(1, 8)]
        assert paged == temp_db.list_transactions(sample_account.id)

    def test_delete_respects_owner(self, temp_db, sample_account):
        temp_db.insert_transactions(
            [
                _txn(sample_account.id, date(2025, 1, 1), "1"),
                _txn(sample_account.id, date(2025, 1, 2), "2", created_by=None),
                _txn(sample_account.id, date(2025, 1, 3), "3", created_by=OTHER_USER),
            ]
        )

        deleted = temp_db.delete_transactions(sample_account.id, owner=USER)

        assert deleted == 2
        [left] = temp_db.list_transactions(sample_account.id)
        assert left.created_by == OTHER_USER

    def test_delete_by_batch_and_range(self, temp_db, sample_account):
        batch_id = _batch(temp_db, sample_account.id)
        temp_db.insert_transactions(
            [
                _txn(sample_account.id, date(2025, 1, 1), "1", batch_id=batch_id),
                _txn(sample_account.id, date(2025, 1, 5), "5", batch_id=batch_id),
                _txn(sample_account.id, date(2025, 1, 6), "6"),
            ]
        )

        assert temp_db.delete_transactions(sample_account.id, start_date=date(2025, 1, 5)) == 2
        assert temp_db.count_transactions_for_batch(batch_id) == 1
        assert temp_db.delete_transactions(sample_account.id, import_batch_id=batch_id) == 1
        assert temp_db.count_transactions(sample_account.id) == 0

    def test_opening_balance_upsert(self, temp_db, sample_account):
        first = temp_db.upsert_opening_balance(USER, sample_account.id, date(2025, 1, 1), Decimal("100"))
        second = temp_db.upsert_opening_balance(USER, sample_account.id, date(2025, 2, 1), Decimal("200"))

        opening = temp_db.get_opening_balance(USER, sample_account.id)

        assert first == second
        assert isinstance(opening, entities.OpeningBalance)
        assert opening.amount == Decimal("200.00")
        assert temp_db.get_opening_balance(OTHER_USER, sample_account.id) is None

    def test_reported_balances_newest_first(self, temp_db, sample_account):
        temp_db.add_reported_balance(USER, sample_account.id, date(2025, 1, 31), Decimal("1"))
        temp_db.add_reported_balance(USER, sample_account.id, date(2025, 2, 28), Decimal("2"))
        temp_db.add_reported_balance(USER, sample_account.id, date(2025, 1, 15), Decimal("3"))

        reports = temp_db.list_reported_balances(USER, sample_account.id)

        assert [r.reported_as_of_date for r in reports] == [date(2025, 2, 28), date(2025, 1, 31), date(2025, 1, 15)]
        assert all(isinstance(r, entities.ReportedBalance) for r in reports)
        assert len(temp_db.list_reported_balances(USER, sample_account.id, limit=2)) == 2
