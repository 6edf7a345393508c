"""Edit history (audit trail) domain service."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import EditHistoryEntry, EditType, FieldChange, Transaction
from ledgerkeep.domain.errors import NotFoundError, ValidationError, transaction_not_found
from ledgerkeep.domain.ownership import require_account

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100
CENTS = Decimal("0.01")

# Fields compared when a transaction is edited, in reporting order.
TRACKED_FIELDS = (
    "amount",
    "transaction_type",
    "fee_amount",
    "date",
    "memo",
    "vendor_id",
    "destination_account_id",
)


def json_safe(value: Any) -> Any:
    """Convert a field value into something the JSON column can hold."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value.quantize(CENTS))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    return value


def splits_state(txn: Transaction) -> list[dict[str, Any]]:
    return [
        {
            "category_id": split.category_id,
            "category_name": split.category_name,
            "amount": json_safe(split.amount),
        }
        for split in txn.splits
    ]


def snapshot_transaction(txn: Transaction) -> dict[str, Any]:
    """Full JSON-safe copy of a transaction, enough to restore it later."""
    return {
        "id": txn.id,
        "account_id": txn.account_id,
        "destination_account_id": txn.destination_account_id,
        "transaction_type": txn.transaction_type.value,
        "amount": json_safe(txn.amount),
        "fee_amount": json_safe(txn.fee_amount),
        "date": json_safe(txn.date),
        "vendor_id": txn.vendor_id,
        "memo": txn.memo,
        "status": txn.status.value,
        "confirmed_at": json_safe(txn.confirmed_at),
        "reconciled_at": json_safe(txn.reconciled_at),
        "version": txn.version,
        "created_by": txn.created_by,
        "created_at": json_safe(txn.created_at),
        "splits": splits_state(txn),
    }


def diff_fields(old: dict[str, Any], new: dict[str, Any]) -> list[FieldChange]:
    """Field-level changes between two value maps, for the tracked fields."""
    changes = []
    for field in TRACKED_FIELDS:
        old_value = json_safe(old.get(field))
        new_value = json_safe(new.get(field))
        if old_value != new_value:
            changes.append(FieldChange(field=field, old_value=old_value, new_value=new_value))
    return changes


def creation_changes(txn: Transaction) -> list[FieldChange]:
    """Changes recorded for a new transaction: every set field, from None."""
    changes = [
        FieldChange(field=field, old_value=None, new_value=json_safe(getattr(txn, field)))
        for field in TRACKED_FIELDS
        if getattr(txn, field) is not None
    ]
    changes.append(FieldChange(field="splits", old_value=None, new_value=splits_state(txn)))
    return changes


class EditHistoryService:
    """Append and query the per-transaction edit history.

    Entries outlive the transaction they describe, which is what makes
    restoring a deleted transaction possible.
    """

    def __init__(self, db: Database):
        self.db = db

    def record_edit(
        self,
        transaction_id: int,
        edited_by: str,
        edit_type: EditType,
        changes: Iterable[FieldChange] = (),
        previous_state: Optional[dict[str, Any]] = None,
    ) -> int:
        """Append an edit entry. Run it in the same unit of work as the edit.

        Returns:
            Edit history entry ID
        """
        return self.db.add_edit_history(
            transaction_id=transaction_id,
            edited_by=edited_by,
            edit_type=EditType(edit_type),
            changes=[
                {
                    "field": change.field,
                    "old_value": json_safe(change.old_value),
                    "new_value": json_safe(change.new_value),
                }
                for change in changes
            ],
            previous_state=json_safe(previous_state) if previous_state is not None else None,
        )

    def get_edit_history(
        self,
        organization_id: str,
        account_id: int,
        transaction_id: int,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> list[EditHistoryEntry]:
        """Edit history of a transaction, newest first.

        Works for deleted transactions too; ownership is then taken from the
        delete snapshot.

        Raises:
            ValidationError: If limit or offset is out of range
            NotFoundError: If the transaction never belonged to the account
        """
        if limit < 1 or limit > MAX_HISTORY_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
        if offset < 0:
            raise ValidationError("offset cannot be negative")

        require_account(self.db, organization_id, account_id)
        txn = self.db.get_transaction(transaction_id)
        if txn is not None:
            owner = txn.account_id
        else:
            snapshot = self.get_latest_snapshot(transaction_id)
            owner = snapshot.get("account_id") if snapshot is not None else None
        if owner != account_id:
            raise NotFoundError(transaction_not_found(transaction_id))

        return self.db.list_edit_history(transaction_id, limit=limit, offset=offset)

    def get_latest_edit(
        self, transaction_id: int, edit_type: Optional[EditType] = None
    ) -> Optional[EditHistoryEntry]:
        return self.db.get_latest_edit(transaction_id, edit_type=edit_type)

    def get_edit_count(self, transaction_id: int) -> int:
        return self.db.count_edit_history(transaction_id)

    def get_latest_snapshot(self, transaction_id: int) -> Optional[dict[str, Any]]:
        """State captured by the most recent delete, or None if never deleted."""
        entry = self.db.get_latest_edit(transaction_id, edit_type=EditType.DELETE)
        if entry is None:
            return None
        return entry.previous_state
