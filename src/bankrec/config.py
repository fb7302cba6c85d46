"""Runtime settings loaded from the environment."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

DEFAULT_TIMEZONE = "Asia/Bangkok"
DEFAULT_CURRENCY = "THB"
DEFAULT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        db_path: SQLite database file, or None for the default location
        timezone: IANA timezone used to turn statement timestamps into calendar days
        currency: Currency code assigned to new accounts and shown in exports
        page_size: Number of rows fetched per store read
    """

    db_path: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    currency: str = DEFAULT_CURRENCY
    page_size: int = DEFAULT_PAGE_SIZE

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def default_db_path() -> str:
    """Return ~/.bankrec/bankrec.db, creating the directory if needed."""
    db_dir = Path.home() / ".bankrec"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "bankrec.db")


def load_settings(environ: Optional[dict[str, str]] = None) -> Settings:
    """Build settings from BANKREC_* environment variables.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Raises:
        ValueError: If BANKREC_PAGE_SIZE is not a positive integer
    """
    env = os.environ if environ is None else environ

    page_size_raw = env.get("BANKREC_PAGE_SIZE")
    page_size = DEFAULT_PAGE_SIZE
    if page_size_raw:
        try:
            page_size = int(page_size_raw)
        except ValueError:
            raise ValueError(f"BANKREC_PAGE_SIZE must be an integer, got '{page_size_raw}'")
        if page_size <= 0:
            raise ValueError("BANKREC_PAGE_SIZE must be positive")

    return Settings(
        db_path=env.get("BANKREC_DB_PATH") or None,
        timezone=env.get("BANKREC_TIMEZONE") or DEFAULT_TIMEZONE,
        currency=env.get("BANKREC_CURRENCY") or DEFAULT_CURRENCY,
        page_size=page_size,
    )
