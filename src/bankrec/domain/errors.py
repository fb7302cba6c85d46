"""Shared domain error messages and error types."""

from datetime import datetime
from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from bankrec.domain.entities import ImportResult


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class ManualMappingRequired(ValidationError):
    """Statement layout was not recognized; an explicit column mapping is needed."""

    def __init__(self, headers: Sequence[str], message: Optional[str] = None):
        self.headers = list(headers)
        super().__init__(message or manual_mapping_required(self.headers))


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class AuthorizationError(DomainError):
    """Caller has no identity or does not own the requested resource."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DuplicateFileError(ConflictError):
    """The same file was already imported into the account."""

    def __init__(self, batch_id: int, imported_at: datetime):
        self.batch_id = batch_id
        self.imported_at = imported_at
        super().__init__(file_already_imported(imported_at))


class DuplicateRecordError(ConflictError):
    """Store rejected a write because of a unique constraint."""


class PersistenceError(DomainError):
    """Store failed for a reason other than a uniqueness violation."""


class ImportFailedError(DomainError):
    """Import finished without inserting a single row.

    The batch has already been finalized as failed when this is raised;
    ``result`` carries its counts.
    """

    def __init__(self, result: "ImportResult"):
        self.result = result
        super().__init__(result.message)


def missing_identity() -> str:
    """Return message for calls without an authenticated user."""
    return "Not authenticated: a user identity is required"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Bank account {account_id} not found"


def account_not_owned(account_id: int) -> str:
    """Return message when the caller does not own the account."""
    return f"Bank account {account_id} not found or access denied"


def batch_not_found(batch_id: int) -> str:
    """Return message for missing import batch."""
    return f"Import batch {batch_id} not found"


def manual_mapping_required(headers: Sequence[str]) -> str:
    """Return message asking the caller for an explicit column mapping."""
    shown = ", ".join(str(h) for h in headers if h) or "(none)"
    return f"Cannot auto-detect statement format. Provide a column mapping. Detected columns: {shown}"


def no_valid_rows(warning_count: int) -> str:
    """Return message for a statement that produced no transactions."""
    if warning_count:
        return f"No valid transactions found in file ({warning_count} rows skipped)"
    return "No valid transactions found in file"


def file_already_imported(imported_at: datetime) -> str:
    """Return message for an append-mode re-upload of a completed file."""
    return (
        f"This file was already imported on {imported_at:%Y-%m-%d %H:%M}. "
        "Use rollback on that batch before importing it again, "
        "or import with --mode replace_range."
    )


def duplicate_account(bank_name: str, account_number: str) -> str:
    """Return message for a second account with the same bank and number."""
    return f"Bank account '{bank_name} {account_number}' already exists"


def unknown_mapping_columns(columns: Sequence[str]) -> str:
    """Return message when mapped columns are absent from the header row."""
    return f"Mapped columns not found in header: {', '.join(columns)}"
