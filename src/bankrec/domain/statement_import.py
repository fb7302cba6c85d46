"""Bank statement import domain service.

An import runs parse -> batch lookup -> deletion policy -> insert ->
finalize. Every store call commits on its own; the batch row is the audit
trail that ties inserted transactions to the file they came from, and
``batch_lifecycle`` makes sure it never stays ``pending`` once the import
has started, whatever happens while rows are written.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from bankrec.config import Settings
from bankrec.database.base import Database
from bankrec.domain.account import AccountService
from bankrec.domain.entities import (
    BankAccount,
    BatchStatus,
    ColumnMapping,
    ImportBatch,
    ImportMode,
    ImportOverlap,
    ImportPreview,
    ImportResult,
    NewTransaction,
    ParsedStatement,
)
from bankrec.domain.errors import (
    DuplicateFileError,
    DuplicateRecordError,
    ImportFailedError,
    ManualMappingRequired,
    PersistenceError,
    ValidationError,
    no_valid_rows,
)
from bankrec.domain.hashing import file_hash, transaction_hash
from bankrec.domain.statement_parser import StatementParser
from bankrec.utils.spreadsheet import read_cell_grid

logger = logging.getLogger(__name__)

PREVIEW_SAMPLE_ROWS = 5
WARNING_SAMPLE_ROWS = 5
DEFAULT_HISTORY_LIMIT = 20


@dataclass
class ImportTally:
    """Counters collected while an import writes rows."""

    batch_id: int
    total_rows: int
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    deleted: int = 0
    error: Optional[str] = None
    status: Optional[BatchStatus] = None
    linked_count: int = 0


def import_message(tally: ImportTally) -> str:
    """Build the human-readable summary of an import."""
    if tally.inserted == 0:
        message = (
            f"No transactions imported ({tally.duplicates} duplicates skipped, "
            f"{tally.failed} failed)"
        )
        if tally.error:
            message += f": {tally.error}"
        return message
    if tally.deleted:
        message = f"Successfully imported {tally.inserted} transactions (deleted {tally.deleted} existing)"
    elif tally.duplicates:
        message = f"Imported {tally.inserted} transactions ({tally.duplicates} duplicates skipped)"
    else:
        message = f"Successfully imported {tally.inserted} transactions"
    if tally.failed:
        message += f", {tally.failed} rows failed"
    return message


def finalize_batch(db: Database, tally: ImportTally, metadata: dict[str, Any]) -> None:
    """Close a batch as completed or failed from what is actually stored.

    The inserted count is the number of transactions linked to the batch,
    so a retry that only finds duplicates of its own earlier rows still
    completes, and a concurrent import of the same file never downgrades
    the batch the other process filled.
    """
    tally.linked_count = db.count_transactions_for_batch(tally.batch_id)
    tally.status = BatchStatus.COMPLETED if tally.linked_count > 0 else BatchStatus.FAILED

    final_metadata = dict(metadata)
    final_metadata.update(
        deleted_before_import=tally.deleted,
        duplicate_count=tally.duplicates,
        failed_count=tally.failed,
        total_rows=tally.total_rows,
    )
    if tally.error:
        final_metadata["import_error"] = tally.error

    db.update_import_batch(
        tally.batch_id,
        status=tally.status,
        inserted_count=tally.linked_count,
        metadata=final_metadata,
    )
    logger.info(
        "Finalized batch %d as %s: %d inserted, %d duplicates, %d failed",
        tally.batch_id,
        tally.status.value,
        tally.inserted,
        tally.duplicates,
        tally.failed,
    )


@contextmanager
def batch_lifecycle(
    db: Database, batch_id: int, total_rows: int, metadata: dict[str, Any]
) -> Iterator[ImportTally]:
    """Yield a tally for a pending batch and always finalize it on exit.

    Exceptions raised inside the block are recorded as the batch's
    import_error and re-raised after finalization.
    """
    tally = ImportTally(batch_id=batch_id, total_rows=total_rows)
    try:
        yield tally
    except Exception as e:
        tally.error = str(e) or e.__class__.__name__
        logger.error("Import into batch %d aborted: %s", batch_id, tally.error)
        raise
    finally:
        finalize_batch(db, tally, metadata)


class StatementImportService:
    """Service for importing bank statement files."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize statement import service.

        Args:
            db: Database instance
            settings: Runtime settings (timezone, currency)
        """
        self.db = db
        self.settings = settings or Settings()
        self.account_service = AccountService(db, self.settings.currency)
        self.parser = StatementParser(self.settings.timezone)

    def parse_file(
        self, data: bytes, file_name: str, mapping: Optional[ColumnMapping] = None
    ) -> ParsedStatement:
        """Read and parse a statement file without any validation of the result."""
        grid = read_cell_grid(data, file_name)
        return self.parser.parse(grid, mapping)

    def _parse_for_import(
        self, data: bytes, file_name: str, mapping: Optional[ColumnMapping]
    ) -> ParsedStatement:
        parsed = self.parse_file(data, file_name, mapping)
        if parsed.requires_manual_mapping:
            raise ManualMappingRequired(parsed.detected_columns)
        if not parsed.transactions:
            message = no_valid_rows(len(parsed.warnings))
            samples = "; ".join(str(w) for w in parsed.warnings[:WARNING_SAMPLE_ROWS])
            if samples:
                message = f"{message}. {samples}"
            raise ValidationError(message)
        return parsed

    def preview(
        self,
        user_id: str,
        account_id: int,
        data: bytes,
        file_name: str,
        mapping: Optional[ColumnMapping] = None,
    ) -> ImportPreview:
        """Parse a file and summarize it without writing anything.

        Raises:
            AuthorizationError: If the caller does not own the account
            ManualMappingRequired: If the layout was not recognized
            ValidationError: If no valid rows were found
        """
        self.account_service.require_owned_account(user_id, account_id)
        parsed = self._parse_for_import(data, file_name, mapping)
        deposits = parsed.total_deposits
        withdrawals = parsed.total_withdrawals
        return ImportPreview(
            file_name=file_name,
            file_hash=file_hash(data),
            format_type=parsed.format_type,
            date_range=parsed.date_range,
            total_deposits=deposits,
            total_withdrawals=withdrawals,
            net=deposits - withdrawals,
            row_count=len(parsed.transactions),
            sample_rows=parsed.transactions[:PREVIEW_SAMPLE_ROWS],
            warnings=parsed.warnings,
        )

    def check_overlap(
        self,
        user_id: str,
        account_id: int,
        data: bytes,
        file_name: str,
        mapping: Optional[ColumnMapping] = None,
    ) -> ImportOverlap:
        """Count stored transactions inside the file's date range.

        Used before a replace_range import to show what would be replaced.
        """
        account = self.account_service.require_owned_account(user_id, account_id)
        parsed = self._parse_for_import(data, file_name, mapping)
        date_range = parsed.date_range
        existing = self.db.count_transactions(
            account.id, start_date=date_range.start, end_date=date_range.end
        )
        return ImportOverlap(
            existing_count=existing,
            date_range=date_range,
            file_count=len(parsed.transactions),
        )

    def list_history(
        self, user_id: str, account_id: int, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ImportBatch]:
        """List the account's import batches, newest first."""
        account = self.account_service.require_owned_account(user_id, account_id)
        return self.db.list_import_batches(account.id, limit=limit)

    def import_statement(
        self,
        user_id: str,
        account_id: int,
        data: bytes,
        file_name: str,
        mapping: Optional[ColumnMapping] = None,
        mode: ImportMode | str = ImportMode.APPEND,
    ) -> ImportResult:
        """Import a statement file into an account.

        Args:
            user_id: Caller; must own the account
            account_id: Target bank account
            data: Raw file bytes
            file_name: Original file name (extension selects the reader)
            mapping: Explicit column mapping, or None to auto-detect
            mode: append, replace_range or replace_all

        Returns:
            ImportResult with inserted, duplicate, deleted and failed counts

        Raises:
            AuthorizationError: If the caller does not own the account
            ManualMappingRequired: If the layout was not recognized (no batch created)
            ValidationError: If the mode is unknown or no valid rows were found
            DuplicateFileError: If the file was already imported and mode is append
            ImportFailedError: If no row was inserted; the batch is already failed
        """
        try:
            mode = ImportMode(mode)
        except ValueError:
            choices = ", ".join(m.value for m in ImportMode)
            raise ValidationError(f"Unknown import mode '{mode}'. Choose one of: {choices}")

        account = self.account_service.require_owned_account(user_id, account_id)
        user_id = account.created_by
        parsed = self._parse_for_import(data, file_name, mapping)
        digest = file_hash(data)
        metadata = self._batch_metadata(parsed)

        batch_id = self._open_batch(account, user_id, file_name, digest, mode, parsed, metadata)

        with batch_lifecycle(self.db, batch_id, len(parsed.transactions), metadata) as tally:
            tally.deleted = self._apply_deletion_policy(account, user_id, mode, parsed)
            rows = self._build_rows(account, batch_id, user_id, parsed)
            self._insert_rows(rows, tally)

        result = ImportResult(
            batch_id=batch_id,
            status=tally.status,
            inserted_count=tally.inserted,
            duplicate_count=tally.duplicates,
            deleted_count=tally.deleted,
            failed_count=tally.failed,
            message=import_message(tally),
        )
        if tally.status == BatchStatus.FAILED:
            raise ImportFailedError(result)
        return result

    def _batch_metadata(self, parsed: ParsedStatement) -> dict[str, Any]:
        date_range = parsed.date_range
        return {
            "format_type": parsed.format_type,
            "column_mapping": parsed.auto_mapping.to_dict() if parsed.auto_mapping else None,
            "date_range": date_range.to_dict() if date_range else None,
            "header_row_index": parsed.header_row_index,
            "warning_count": len(parsed.warnings),
        }

    def _open_batch(
        self,
        account: BankAccount,
        user_id: str,
        file_name: str,
        digest: str,
        mode: ImportMode,
        parsed: ParsedStatement,
        metadata: dict[str, Any],
    ) -> int:
        """Return the pending batch to import into, reusing a retried file's batch."""
        existing = self.db.find_live_import_batch(account.id, digest)
        if existing is None:
            try:
                batch_id = self.db.create_import_batch(
                    bank_account_id=account.id,
                    file_name=file_name,
                    file_hash=digest,
                    imported_by=user_id,
                    import_mode=mode,
                    row_count=len(parsed.transactions),
                    metadata=metadata,
                )
                logger.info("Created import batch %d for %s", batch_id, file_name)
                return batch_id
            except DuplicateRecordError:
                # Another import of the same file created the batch first
                existing = self.db.find_live_import_batch(account.id, digest)
                if existing is None:
                    raise
                logger.info("Lost batch creation race for %s to batch %d", file_name, existing.id)

        if existing.status == BatchStatus.COMPLETED and mode == ImportMode.APPEND:
            raise DuplicateFileError(existing.id, existing.imported_at)

        reuse_metadata = dict(metadata, previous_status=existing.status.value)
        self.db.reset_import_batch(
            existing.id,
            file_name=file_name,
            imported_by=user_id,
            import_mode=mode,
            row_count=len(parsed.transactions),
            metadata=reuse_metadata,
        )
        metadata["previous_status"] = existing.status.value
        logger.info("Reusing import batch %d (was %s)", existing.id, existing.status.value)
        return existing.id

    def _apply_deletion_policy(
        self, account: BankAccount, user_id: str, mode: ImportMode, parsed: ParsedStatement
    ) -> int:
        """Delete what the mode replaces. Returns the deleted count."""
        if mode == ImportMode.APPEND:
            return 0
        if mode == ImportMode.REPLACE_RANGE:
            date_range = parsed.date_range
            deleted = self.db.delete_transactions(
                account.id,
                owner=user_id,
                start_date=date_range.start,
                end_date=date_range.end,
            )
            logger.info(
                "Deleted %d transactions between %s and %s before import",
                deleted,
                date_range.start,
                date_range.end,
            )
            return deleted
        deleted = self.db.delete_transactions(account.id, owner=user_id)
        logger.info("Deleted all %d transactions of account %d before import", deleted, account.id)
        return deleted

    def _build_rows(
        self, account: BankAccount, batch_id: int, user_id: str, parsed: ParsedStatement
    ) -> list[NewTransaction]:
        return [
            NewTransaction(
                bank_account_id=account.id,
                import_batch_id=batch_id,
                txn_date=txn.txn_date,
                description=txn.description,
                withdrawal=txn.withdrawal,
                deposit=txn.deposit,
                txn_hash=transaction_hash(
                    account.id, txn.txn_date, txn.withdrawal, txn.deposit, txn.description
                ),
                created_by=user_id,
                balance=txn.balance,
                channel=txn.channel,
                reference_id=txn.reference_id,
                raw=txn.raw,
            )
            for txn in parsed.transactions
        ]

    def _insert_rows(self, rows: list[NewTransaction], tally: ImportTally) -> None:
        """Bulk insert, falling back to one row at a time on duplicates."""
        try:
            tally.inserted = self.db.insert_transactions(rows)
            return
        except DuplicateRecordError:
            logger.info(
                "Bulk insert for batch %d hit existing rows; inserting one at a time",
                tally.batch_id,
            )

        for row in rows:
            try:
                self.db.insert_transaction(row)
                tally.inserted += 1
            except DuplicateRecordError:
                tally.duplicates += 1
            except PersistenceError as e:
                tally.failed += 1
                tally.error = tally.error or str(e)
                logger.warning(
                    "Could not insert %s row '%s' into batch %d: %s",
                    row.txn_date,
                    row.description,
                    tally.batch_id,
                    e,
                )
