"""Content hashes used as idempotency keys."""

import hashlib
from datetime import date
from decimal import Decimal
from typing import Optional

DELIMITER = "|"
CENT = Decimal("0.01")


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(CENT))


def transaction_hash(
    account_id: int,
    txn_date: date,
    withdrawal: Decimal,
    deposit: Decimal,
    description: Optional[str],
) -> str:
    """Return the dedup key of a transaction.

    SHA-256 over account id, ISO date, both amounts as two-place decimal
    strings and the description, joined with ``|``. Two rows with the same
    economic content and description always hash equal.
    """
    parts = [
        str(account_id),
        txn_date.isoformat(),
        _money(withdrawal),
        _money(deposit),
        description or "",
    ]
    return hashlib.sha256(DELIMITER.join(parts).encode("utf-8")).hexdigest()


def file_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw file bytes."""
    return hashlib.sha256(data).hexdigest()
