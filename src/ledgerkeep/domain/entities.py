"""Domain model entities for ledgerkeep.

These are pure data classes representing business concepts, independent of
database schema. Services return these; the database layer maps its ORM rows
onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionType(str, Enum):
    """Kind of transaction; governs which balance formula applies."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    """Lifecycle state of a transaction."""

    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    RECONCILED = "reconciled"


class EditType(str, Enum):
    """Kind of entry in the edit history."""

    CREATE = "create"
    UPDATE = "update"
    SPLIT_CHANGE = "split_change"
    DELETE = "delete"
    RESTORE = "restore"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    organization_id: str
    name: str
    balance: Decimal
    opening_balance: Decimal
    transaction_fee: Optional[Decimal]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Vendor:
    """Vendor (payee) domain entity."""

    id: int
    organization_id: str
    name: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    organization_id: str
    name: str
    parent_id: Optional[int]
    depth: int
    path: Optional[str]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class TransactionSplit:
    """Portion of a transaction attributed to one category."""

    id: int
    transaction_id: int
    category_id: int
    category_name: str
    amount: Decimal


@dataclass(frozen=True)
class SplitInput:
    """Split requested by a caller.

    The category is chosen by ``category_id`` or, when absent, by
    ``category_name`` resolved against the organization's root categories.
    """

    amount: Decimal
    category_id: Optional[int] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    account_id: int
    destination_account_id: Optional[int]
    transaction_type: TransactionType
    amount: Decimal
    fee_amount: Optional[Decimal]
    date: date
    vendor_id: Optional[int]
    memo: Optional[str]
    status: TransactionStatus
    confirmed_at: Optional[datetime]
    reconciled_at: Optional[datetime]
    version: int
    created_by: Optional[str]
    last_modified_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    splits: tuple[TransactionSplit, ...] = ()


@dataclass(frozen=True)
class StatusHistoryEntry:
    """Immutable record of one status transition."""

    id: int
    transaction_id: int
    from_status: Optional[TransactionStatus]
    to_status: TransactionStatus
    changed_by: str
    changed_at: datetime
    notes: Optional[str]


@dataclass(frozen=True)
class FieldChange:
    """Old and new value of a single edited field."""

    field: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class EditHistoryEntry:
    """Immutable record of one edit to a transaction."""

    id: int
    transaction_id: int
    edited_by: str
    edited_at: datetime
    edit_type: EditType
    changes: tuple[FieldChange, ...]
    previous_state: Optional[dict[str, Any]]


@dataclass(frozen=True)
class BulkStatusFailure:
    """A transaction id that could not be moved, with the reason."""

    transaction_id: int
    error: str


@dataclass(frozen=True)
class BulkStatusResult:
    """Outcome of a bulk status change; partial success is expected."""

    status: TransactionStatus
    successful: list[int] = field(default_factory=list)
    failed: list[BulkStatusFailure] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return bool(self.successful) and not self.failed

    @property
    def partially_succeeded(self) -> bool:
        return bool(self.successful) and bool(self.failed)

    @property
    def none_succeeded(self) -> bool:
        return not self.successful


@dataclass(frozen=True)
class ReconciliationResult:
    """Result of reconciling an account against a bank statement."""

    reconciled_count: int
    cleared_balance: Decimal
    statement_balance: Decimal
    difference: Decimal
    statement_date: date


@dataclass(frozen=True)
class StatusTotals:
    """Count and signed net impact of transactions in one status."""

    count: int
    net: Decimal


@dataclass(frozen=True)
class StatusSummary:
    """Per-status totals for an account."""

    account_id: int
    account_name: str
    balance: Decimal
    unconfirmed: StatusTotals
    confirmed: StatusTotals
    reconciled: StatusTotals
    overall: StatusTotals
