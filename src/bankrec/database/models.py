"""SQLAlchemy models for bankrec database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BankAccount(Base):
    """Bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    created_by = Column(String, nullable=False, index=True)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    account_type = Column(String, default="current", nullable=False)
    currency = Column(String(3), default="THB", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("created_by", "bank_name", "account_number", name="uq_bank_account_number"),
    )

    # Relationships
    transactions = relationship("BankTransaction", back_populates="account")
    import_batches = relationship("ImportBatch", back_populates="account")


class ImportBatch(Base):
    """Import batch model: one row per ingested statement file."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    file_name = Column(String, nullable=False)
    file_hash = Column(String(64), nullable=False)
    imported_by = Column(String, nullable=False)
    imported_at = Column(DateTime, default=_utcnow, nullable=False)
    import_mode = Column(String, default="append", nullable=False)
    row_count = Column(Integer, default=0, nullable=False)
    inserted_count = Column(Integer, default=0, nullable=False)
    status = Column(String, default="pending", nullable=False)
    # "metadata" is reserved on declarative classes
    batch_metadata = Column("metadata", JSON, default=dict, nullable=False)

    # Same file may only be live once per account; rolled back batches do not count
    __table_args__ = (
        Index(
            "uq_import_batch_live_file",
            "bank_account_id",
            "file_hash",
            unique=True,
            sqlite_where=text("status != 'rolled_back'"),
            postgresql_where=text("status != 'rolled_back'"),
        ),
        Index("ix_import_batch_account_status", "bank_account_id", "status"),
    )

    # Relationships
    account = relationship("BankAccount", back_populates="import_batches")
    transactions = relationship("BankTransaction", back_populates="import_batch")


class BankTransaction(Base):
    """Bank transaction model."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    import_batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=True, index=True)
    txn_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    withdrawal = Column(Numeric(14, 2), default=0, nullable=False)
    deposit = Column(Numeric(14, 2), default=0, nullable=False)
    balance = Column(Numeric(14, 2), nullable=True)
    channel = Column(String, nullable=True)
    reference_id = Column(String, nullable=True)
    txn_hash = Column(String(64), nullable=False)
    raw = Column(JSON, nullable=True)
    # Null for rows that predate per-user ownership
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Dedup key
    __table_args__ = (
        UniqueConstraint("bank_account_id", "txn_hash", name="uq_bank_txn_account_hash"),
        Index("ix_bank_txn_account_date", "bank_account_id", "txn_date"),
    )

    # Relationships
    account = relationship("BankAccount", back_populates="transactions")
    import_batch = relationship("ImportBatch", back_populates="transactions")


class OpeningBalance(Base):
    """Opening balance model, one per user and account."""

    __tablename__ = "bank_opening_balances"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    as_of_date = Column(Date, nullable=False)
    opening_balance = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "bank_account_id", name="uq_opening_balance_user_account"),)


class ReportedBalance(Base):
    """Append-only balance observations from the bank's own channels."""

    __tablename__ = "bank_reported_balances"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    reported_as_of_date = Column(Date, nullable=False)
    reported_balance = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_reported_balance_lookup", "user_id", "bank_account_id", "reported_as_of_date"),
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory, creating tables if needed."""
    engine: Engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
