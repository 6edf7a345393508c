"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any
from datetime import date, datetime
from decimal import Decimal

# Entities only; services import this module
from ledgerkeep.domain.entities import (
    Account,
    Vendor,
    Category,
    Transaction,
    TransactionStatus,
    StatusHistoryEntry,
    EditHistoryEntry,
)


class Database(ABC):
    """Abstract database interface for ledgerkeep.

    Write methods commit immediately unless they run inside ``transaction()``,
    in which case everything commits together when the outermost block exits
    and rolls back if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open an atomic unit of work. Re-entrant."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        organization_id: str,
        name: str,
        balance: Decimal = Decimal("0"),
        transaction_fee: Optional[Decimal] = None,
    ) -> int:
        """Create a new account; ``balance`` is also recorded as the opening balance."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, organization_id: str, include_inactive: bool = False) -> list[Account]:
        """List accounts of an organization."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        transaction_fee: Optional[Decimal] = None,
        clear_fee: bool = False,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update account attributes. Never touches the balance."""
        pass

    @abstractmethod
    def adjust_account_balance(self, account_id: int, delta: Decimal) -> None:
        """Increment (or decrement, for negative deltas) an account balance."""
        pass

    # Vendor operations
    @abstractmethod
    def create_vendor(self, organization_id: str, name: str) -> int:
        """Create a vendor. Returns vendor ID."""
        pass

    @abstractmethod
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        """Get vendor by ID."""
        pass

    @abstractmethod
    def list_vendors(self, organization_id: str, include_inactive: bool = False) -> list[Vendor]:
        """List vendors of an organization."""
        pass

    @abstractmethod
    def set_vendor_active(self, vendor_id: int, is_active: bool) -> None:
        """Activate or deactivate a vendor."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        organization_id: str,
        name: str,
        parent_id: Optional[int] = None,
        depth: int = 0,
    ) -> int:
        """Create a category and its materialized path. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def find_category_by_name(
        self,
        organization_id: str,
        parent_id: Optional[int],
        name: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Category]:
        """Find a sibling by name, case-insensitively."""
        pass

    @abstractmethod
    def list_categories(
        self,
        organization_id: str,
        search: Optional[str] = None,
        parent_id: Optional[int] = None,
        category_ids: Optional[list[int]] = None,
        limit: Optional[int] = None,
    ) -> list[Category]:
        """List categories ordered by depth then name."""
        pass

    @abstractmethod
    def list_child_categories(self, category_id: int) -> list[Category]:
        """List direct children of a category."""
        pass

    @abstractmethod
    def update_category(
        self,
        category_id: int,
        name: Optional[str] = None,
        parent_id: Optional[int] = None,
        clear_parent: bool = False,
        depth: Optional[int] = None,
        path: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update category fields."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Hard-delete a category."""
        pass

    @abstractmethod
    def count_category_splits(self, category_id: int) -> int:
        """Count transaction splits referencing a category."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: int,
        transaction_type: str,
        amount: Decimal,
        date: date,
        splits: list[tuple[int, Decimal]],
        fee_amount: Optional[Decimal] = None,
        destination_account_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        memo: Optional[str] = None,
        created_by: Optional[str] = None,
        version: int = 1,
        transaction_id: Optional[int] = None,
    ) -> int:
        """Create a transaction with its splits. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID, including splits."""
        pass

    @abstractmethod
    def update_transaction_if_current(
        self,
        transaction_id: int,
        expected_version: int,
        expected_status: TransactionStatus,
        values: dict[str, Any],
    ) -> bool:
        """Write ``values`` and bump the version if version and status still match.

        Returns False when another writer got there first.
        """
        pass

    @abstractmethod
    def replace_transaction_splits(
        self, transaction_id: int, splits: list[tuple[int, Decimal]]
    ) -> None:
        """Delete every split of a transaction and insert the given ones."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its splits."""
        pass

    @abstractmethod
    def set_transaction_status_if(
        self,
        transaction_id: int,
        expected_status: TransactionStatus,
        new_status: TransactionStatus,
        confirmed_at: Optional[datetime],
        reconciled_at: Optional[datetime],
    ) -> bool:
        """Move a transaction to ``new_status`` if it is still in ``expected_status``."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[str] = None,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        statuses: Optional[list[str]] = None,
        confirmed_after: Optional[datetime] = None,
        confirmed_before: Optional[datetime] = None,
        reconciled_after: Optional[datetime] = None,
        reconciled_before: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """List an account's transactions, newest first, with the unpaginated total."""
        pass

    @abstractmethod
    def list_account_postings(self, account_id: int) -> list[Transaction]:
        """All transactions touching an account as source or transfer destination."""
        pass

    # Audit log operations
    @abstractmethod
    def add_status_history(
        self,
        transaction_id: int,
        from_status: Optional[TransactionStatus],
        to_status: TransactionStatus,
        changed_by: str,
        notes: Optional[str] = None,
        changed_at: Optional[datetime] = None,
    ) -> int:
        """Append a status history row. Returns its ID."""
        pass

    @abstractmethod
    def list_status_history(self, transaction_id: int) -> list[StatusHistoryEntry]:
        """Status history of a transaction, newest first."""
        pass

    @abstractmethod
    def add_edit_history(
        self,
        transaction_id: int,
        edited_by: str,
        edit_type: str,
        changes: list[dict[str, Any]],
        previous_state: Optional[dict[str, Any]] = None,
    ) -> int:
        """Append an edit history row. Returns its ID."""
        pass

    @abstractmethod
    def list_edit_history(
        self, transaction_id: int, limit: Optional[int] = None, offset: int = 0
    ) -> list[EditHistoryEntry]:
        """Edit history of a transaction, newest first."""
        pass

    @abstractmethod
    def get_latest_edit(
        self, transaction_id: int, edit_type: Optional[str] = None
    ) -> Optional[EditHistoryEntry]:
        """Most recent edit, optionally of one type."""
        pass

    @abstractmethod
    def count_edit_history(self, transaction_id: int) -> int:
        """Number of edit history rows for a transaction."""
        pass
