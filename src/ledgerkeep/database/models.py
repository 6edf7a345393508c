"""SQLAlchemy models for ledgerkeep database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)
    transaction_fee = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    transactions = relationship(
        "Transaction", back_populates="account", foreign_keys="Transaction.account_id"
    )


class Vendor(Base):
    """Vendor (payee) model."""

    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    depth = Column(Integer, nullable=False, default=0)
    path = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_categories_organization_parent", "organization_id", "parent_id"),
        Index("ix_categories_path", "path"),
    )

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")
    splits = relationship("TransactionSplit", back_populates="category")


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    destination_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    transaction_type = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    fee_amount = Column(Numeric(12, 2), nullable=True)
    date = Column(Date, nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    memo = Column(String, nullable=True)
    status = Column(String, nullable=False, default="unconfirmed", index=True)
    confirmed_at = Column(DateTime, nullable=True)
    reconciled_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_by = Column(String, nullable=True)
    last_modified_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)

    # Ids are never reused; the history tables outlive deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    # Relationships
    account = relationship("Account", back_populates="transactions", foreign_keys=[account_id])
    destination_account = relationship("Account", foreign_keys=[destination_account_id])
    vendor = relationship("Vendor")
    splits = relationship(
        "TransactionSplit",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionSplit.id",
    )


class TransactionSplit(Base):
    """Category split of a transaction."""

    __tablename__ = "transaction_splits"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)

    # Relationships
    transaction = relationship("Transaction", back_populates="splits")
    category = relationship("Category", back_populates="splits")


class TransactionStatusHistory(Base):
    """Append-only log of status transitions.

    ``transaction_id`` carries no foreign key so the log outlives deletions.
    """

    __tablename__ = "transaction_status_history"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, nullable=False, index=True)
    from_status = Column(String, nullable=True)
    to_status = Column(String, nullable=False)
    changed_by = Column(String, nullable=False)
    changed_at = Column(DateTime, default=_utcnow, nullable=False)
    notes = Column(String, nullable=True)


class TransactionEditHistory(Base):
    """Append-only log of field-level edits."""

    __tablename__ = "transaction_edit_history"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, nullable=False, index=True)
    edited_by = Column(String, nullable=False)
    edited_at = Column(DateTime, default=_utcnow, nullable=False)
    edit_type = Column(String, nullable=False)
    changes = Column(JSON, nullable=False, default=list)
    previous_state = Column(JSON, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
