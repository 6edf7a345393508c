"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so schema changes stay out of the
domain services.
"""

from ledgerkeep.domain import entities as domain
from ledgerkeep.database.models import (
    Account as ORMAccount,
    Vendor as ORMVendor,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    TransactionSplit as ORMTransactionSplit,
    TransactionStatusHistory as ORMStatusHistory,
    TransactionEditHistory as ORMEditHistory,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        organization_id=orm_account.organization_id,
        name=orm_account.name,
        balance=orm_account.balance,
        opening_balance=orm_account.opening_balance,
        transaction_fee=orm_account.transaction_fee,
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def vendor_to_domain(orm_vendor: ORMVendor) -> domain.Vendor:
    """Convert SQLAlchemy Vendor model to domain Vendor entity."""
    return domain.Vendor(
        id=orm_vendor.id,
        organization_id=orm_vendor.organization_id,
        name=orm_vendor.name,
        is_active=orm_vendor.is_active,
        created_at=orm_vendor.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        organization_id=orm_category.organization_id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        depth=orm_category.depth,
        path=orm_category.path,
        is_active=orm_category.is_active,
        created_at=orm_category.created_at,
    )


def split_to_domain(orm_split: ORMTransactionSplit) -> domain.TransactionSplit:
    """Convert SQLAlchemy TransactionSplit model to domain entity."""
    return domain.TransactionSplit(
        id=orm_split.id,
        transaction_id=orm_split.transaction_id,
        category_id=orm_split.category_id,
        category_name=orm_split.category.name,
        amount=orm_split.amount,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        destination_account_id=orm_transaction.destination_account_id,
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        amount=orm_transaction.amount,
        fee_amount=orm_transaction.fee_amount,
        date=orm_transaction.date,
        vendor_id=orm_transaction.vendor_id,
        memo=orm_transaction.memo,
        status=domain.TransactionStatus(orm_transaction.status),
        confirmed_at=orm_transaction.confirmed_at,
        reconciled_at=orm_transaction.reconciled_at,
        version=orm_transaction.version,
        created_by=orm_transaction.created_by,
        last_modified_by=orm_transaction.last_modified_by,
        created_at=orm_transaction.created_at,
        updated_at=orm_transaction.updated_at,
        splits=tuple(split_to_domain(s) for s in orm_transaction.splits),
    )


def status_history_to_domain(orm_entry: ORMStatusHistory) -> domain.StatusHistoryEntry:
    """Convert SQLAlchemy status history row to domain entity."""
    return domain.StatusHistoryEntry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        from_status=(
            domain.TransactionStatus(orm_entry.from_status)
            if orm_entry.from_status is not None
            else None
        ),
        to_status=domain.TransactionStatus(orm_entry.to_status),
        changed_by=orm_entry.changed_by,
        changed_at=orm_entry.changed_at,
        notes=orm_entry.notes,
    )


def edit_history_to_domain(orm_entry: ORMEditHistory) -> domain.EditHistoryEntry:
    """Convert SQLAlchemy edit history row to domain entity."""
    return domain.EditHistoryEntry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        edited_by=orm_entry.edited_by,
        edited_at=orm_entry.edited_at,
        edit_type=domain.EditType(orm_entry.edit_type),
        changes=tuple(
            domain.FieldChange(
                field=c["field"], old_value=c.get("old_value"), new_value=c.get("new_value")
            )
            for c in (orm_entry.changes or [])
        ),
        previous_state=orm_entry.previous_state,
    )
