"""Rollback and repair of import batches."""

import logging
from datetime import datetime, UTC

from bankrec.database.base import Database
from bankrec.domain.account import AccountService
from bankrec.domain.entities import BatchStatus, RepairResult, RollbackResult
from bankrec.domain.errors import NotFoundError, batch_not_found

logger = logging.getLogger(__name__)


class BatchRepairService:
    """Service for reversing and healing import batches."""

    def __init__(self, db: Database):
        """Initialize batch repair service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def rollback(self, user_id: str, batch_id: int) -> RollbackResult:
        """Delete every transaction of a completed batch and mark it rolled back.

        Rolling back a batch that is pending, failed or already rolled back
        changes nothing and reports zero deleted rows. Once rolled back, the
        same file can be imported again as a new batch.

        Args:
            user_id: Caller; must own the batch's account
            batch_id: Batch to roll back

        Returns:
            RollbackResult with the resulting status and deleted count

        Raises:
            NotFoundError: If the batch does not exist
            AuthorizationError: If the caller does not own the account
        """
        batch = self.db.get_import_batch(batch_id)
        if batch is None:
            raise NotFoundError(batch_not_found(batch_id))
        self.account_service.require_owned_account(user_id, batch.bank_account_id)

        if batch.status != BatchStatus.COMPLETED:
            logger.info("Batch %d is %s; nothing to roll back", batch_id, batch.status.value)
            return RollbackResult(batch_id=batch_id, status=batch.status, deleted_count=0)

        deleted = self.db.delete_transactions(batch.bank_account_id, import_batch_id=batch_id)
        metadata = dict(batch.metadata)
        metadata["rollback_info"] = {
            "rolled_back_at": datetime.now(UTC).isoformat(),
            "rolled_back_by": user_id,
            "deleted_count": deleted,
        }
        self.db.update_import_batch(batch_id, status=BatchStatus.ROLLED_BACK, metadata=metadata)
        logger.info("Rolled back batch %d: deleted %d transactions", batch_id, deleted)
        return RollbackResult(batch_id=batch_id, status=BatchStatus.ROLLED_BACK, deleted_count=deleted)

    def repair_pending_batches(self, user_id: str, account_id: int) -> RepairResult:
        """Close batches left pending by an interrupted import.

        A pending batch with linked transactions becomes completed with that
        count; one without any becomes failed.

        Raises:
            AuthorizationError: If the caller does not own the account
        """
        account = self.account_service.require_owned_account(user_id, account_id)
        completed: list[int] = []
        failed: list[int] = []

        for batch in self.db.list_import_batches(account.id, status=BatchStatus.PENDING):
            linked = self.db.count_transactions_for_batch(batch.id)
            status = BatchStatus.COMPLETED if linked > 0 else BatchStatus.FAILED
            metadata = dict(batch.metadata)
            metadata["repair_info"] = {
                "repaired_at": datetime.now(UTC).isoformat(),
                "linked_count": linked,
            }
            self.db.update_import_batch(batch.id, status=status, inserted_count=linked, metadata=metadata)
            (completed if linked > 0 else failed).append(batch.id)
            logger.info("Repaired batch %d as %s (%d linked)", batch.id, status.value, linked)

        return RepairResult(
            repaired=len(completed) + len(failed),
            completed_ids=tuple(completed),
            failed_ids=tuple(failed),
        )
