"""Transaction domain service.

Every write keeps account balances consistent with the transactions that
exist: the balance impact, the row itself and its audit entries are applied
in one unit of work, so either all of them land or none do.
"""

from datetime import date as date_type, datetime, UTC
from decimal import Decimal
from typing import Any, Optional, Sequence

from ledgerkeep.database.base import Database
from ledgerkeep.domain.audit import (
    EditHistoryService,
    creation_changes,
    diff_fields,
    json_safe,
    snapshot_transaction,
)
from ledgerkeep.domain.category import CategoryService
from ledgerkeep.domain.entities import (
    Account,
    EditType,
    FieldChange,
    SplitInput,
    Transaction as TransactionEntity,
    TransactionStatus,
    TransactionType,
)
from ledgerkeep.domain.errors import (
    ConflictError,
    NotFoundError,
    ReconciledTransactionError,
    ValidationError,
    VersionConflictError,
    category_not_found,
    reconciled_locked,
    transaction_not_found,
)
from ledgerkeep.domain.ledger import (
    ZERO,
    BalanceAdjustment,
    Posting,
    impact,
    posting_impacts,
    reversal,
    update_adjustments,
)
from ledgerkeep.domain.ownership import (
    require_account,
    require_active_vendor,
    require_transaction,
)
from ledgerkeep.logging_config import get_logger

logger = get_logger("transaction")

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100

ResolvedSplits = list[tuple[int, Decimal]]


def _split_key(splits: ResolvedSplits) -> list[tuple[int, str]]:
    return sorted((category_id, json_safe(amount)) for category_id, amount in splits)


class TransactionService:
    """Service for managing transactions and the balances they move."""

    def __init__(self, db: Database, category_service: Optional[CategoryService] = None):
        """Initialize transaction service.

        Args:
            db: Database instance
            category_service: Used to resolve split categories by name. Pass
                the shared one so implicit category creation invalidates the
                shared tree cache.
        """
        self.db = db
        self.category_service = category_service or CategoryService(db)
        self.edit_history = EditHistoryService(db)

    # Validation helpers
    def _validate_destination(
        self,
        organization_id: str,
        account_id: int,
        transaction_type: TransactionType,
        destination_account_id: Optional[int],
    ) -> None:
        if transaction_type is TransactionType.TRANSFER:
            if destination_account_id is None:
                raise ValidationError("Transfers require a destination account")
            if destination_account_id == account_id:
                raise ValidationError("Transfer destination must differ from the source account")
            require_account(self.db, organization_id, destination_account_id)
        elif destination_account_id is not None:
            raise ValidationError("Only transfers can have a destination account")

    def _check_split_inputs(self, splits: Sequence[SplitInput]) -> None:
        if not splits:
            raise ValidationError("At least one split is required")
        for split in splits:
            if split.amount is None or split.amount <= 0:
                raise ValidationError("Split amounts must be positive")
            if split.category_id is None and not (split.category_name or "").strip():
                raise ValidationError("Each split needs a category_id or a category_name")

    def _resolve_splits(self, organization_id: str, splits: Sequence[SplitInput]) -> ResolvedSplits:
        """Map split inputs to (category_id, amount).

        Named categories that don't exist yet are created at the root level.
        """
        resolved = []
        for split in splits:
            if split.category_id is not None:
                category = self.db.get_category(split.category_id)
                if category is None or category.organization_id != organization_id:
                    raise NotFoundError(category_not_found(split.category_id))
                category_id = category.id
            else:
                category_id = self.category_service.find_or_create_root_category(
                    organization_id, split.category_name
                )
            resolved.append((category_id, split.amount))
        return resolved

    @staticmethod
    def _fee_for(account: Account, apply_fee: bool) -> Optional[Decimal]:
        if apply_fee and account.transaction_fee:
            return account.transaction_fee
        return None

    def _apply(self, adjustments: list[BalanceAdjustment]) -> None:
        for adjustment in adjustments:
            self.db.adjust_account_balance(adjustment.account_id, adjustment.delta)

    # Mutations
    def create_transaction(
        self,
        organization_id: str,
        account_id: int,
        *,
        actor: str,
        amount: Decimal,
        splits: Sequence[SplitInput],
        transaction_type: TransactionType = TransactionType.EXPENSE,
        date: Optional[date_type] = None,
        memo: Optional[str] = None,
        vendor_id: Optional[int] = None,
        destination_account_id: Optional[int] = None,
        apply_fee: bool = False,
    ) -> TransactionEntity:
        """Create a transaction and apply its balance impact.

        Args:
            organization_id: Owning organization
            account_id: Source account
            actor: Who performs the change, recorded in the audit logs
            amount: Positive amount
            splits: Category splits; at least one
            transaction_type: Income, expense or transfer
            date: Transaction date, today when omitted
            memo: Optional memo
            vendor_id: Optional active vendor
            destination_account_id: Receiving account, transfers only
            apply_fee: Charge the account's flat transaction fee

        Returns:
            The created transaction, status unconfirmed and version 1

        Raises:
            NotFoundError: If the account, vendor, destination or a category is missing
            ValidationError: If amounts, splits or the destination are invalid
        """
        transaction_type = TransactionType(transaction_type)
        account = require_account(self.db, organization_id, account_id)
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be positive")
        self._check_split_inputs(splits)
        if vendor_id is not None:
            require_active_vendor(self.db, organization_id, vendor_id)
        self._validate_destination(
            organization_id, account_id, transaction_type, destination_account_id
        )

        fee = self._fee_for(account, apply_fee)
        txn_date = date if date is not None else datetime.now(UTC).date()

        with self.db.transaction():
            resolved = self._resolve_splits(organization_id, splits)
            transaction_id = self.db.create_transaction(
                account_id=account_id,
                transaction_type=transaction_type,
                amount=amount,
                date=txn_date,
                splits=resolved,
                fee_amount=fee,
                destination_account_id=destination_account_id,
                vendor_id=vendor_id,
                memo=memo,
                created_by=actor,
            )
            posting = Posting(
                transaction_type=transaction_type,
                amount=amount,
                fee=fee or ZERO,
                account_id=account_id,
                destination_account_id=destination_account_id,
            )
            self._apply(posting_impacts(posting))
            self.db.add_status_history(
                transaction_id, None, TransactionStatus.UNCONFIRMED, actor
            )
            txn = self.db.get_transaction(transaction_id)
            self.edit_history.record_edit(
                transaction_id, actor, EditType.CREATE, changes=creation_changes(txn)
            )

        logger.info(
            "transaction_created",
            extra={
                "organization_id": organization_id,
                "account_id": account_id,
                "transaction_id": transaction_id,
                "transaction_type": transaction_type,
                "amount": amount,
                "actor": actor,
            },
        )
        return txn

    def update_transaction(
        self,
        organization_id: str,
        account_id: int,
        transaction_id: int,
        *,
        actor: str,
        expected_version: Optional[int] = None,
        force: bool = False,
        amount: Optional[Decimal] = None,
        transaction_type: Optional[TransactionType] = None,
        date: Optional[date_type] = None,
        memo: Optional[str] = None,
        clear_memo: bool = False,
        vendor_id: Optional[int] = None,
        clear_vendor: bool = False,
        destination_account_id: Optional[int] = None,
        clear_destination: bool = False,
        apply_fee: Optional[bool] = None,
        splits: Optional[Sequence[SplitInput]] = None,
    ) -> TransactionEntity:
        """Update a transaction and move balances by the difference.

        Unset arguments keep their current value; ``clear_*`` flags null a
        field. ``apply_fee`` re-evaluates the fee against the account's
        current flat fee. When ``splits`` is given it replaces every split.

        Args:
            expected_version: Version the caller last saw. A mismatch raises
                unless ``force`` is set.
            force: Overwrite regardless of ``expected_version``

        Returns:
            The updated transaction

        Raises:
            VersionConflictError: If the transaction changed since the caller read it
            ReconciledTransactionError: If a reconciled transaction would change
                anything besides its memo
            NotFoundError, ValidationError: As for ``create_transaction``
        """
        account = require_account(self.db, organization_id, account_id)
        current = require_transaction(self.db, organization_id, account_id, transaction_id)

        if expected_version is not None and not force and expected_version != current.version:
            logger.warning(
                "version_conflict_detected",
                extra={
                    "transaction_id": transaction_id,
                    "expected_version": expected_version,
                    "current_version": current.version,
                    "actor": actor,
                },
            )
            raise VersionConflictError(
                f"Transaction {transaction_id} was modified by someone else "
                f"(expected version {expected_version}, current version {current.version})",
                current_version=current.version,
                current_transaction=current,
            )

        new_type = TransactionType(transaction_type) if transaction_type is not None else current.transaction_type
        new_amount = amount if amount is not None else current.amount
        new_date = date if date is not None else current.date
        new_memo = None if clear_memo else (memo if memo is not None else current.memo)
        new_vendor = None if clear_vendor else (vendor_id if vendor_id is not None else current.vendor_id)
        if clear_destination:
            new_destination = None
        elif destination_account_id is not None:
            new_destination = destination_account_id
        elif new_type is TransactionType.TRANSFER:
            new_destination = current.destination_account_id
        else:
            new_destination = None
        if apply_fee is None:
            new_fee = current.fee_amount
        else:
            new_fee = self._fee_for(account, apply_fee)

        new_values: dict[str, Any] = {
            "amount": new_amount,
            "transaction_type": new_type,
            "fee_amount": new_fee,
            "date": new_date,
            "memo": new_memo,
            "vendor_id": new_vendor,
            "destination_account_id": new_destination,
        }
        old_values = {field: getattr(current, field) for field in new_values}
        changes = diff_fields(old_values, new_values)

        current_splits = [(s.category_id, s.amount) for s in current.splits]
        if splits is not None:
            self._check_split_inputs(splits)

        if current.status is TransactionStatus.RECONCILED:
            locked = [c.field for c in changes if c.field != "memo"]
            if splits is not None and not self._same_split_ids(splits, current_splits):
                locked.append("splits")
            if locked:
                raise ReconciledTransactionError(reconciled_locked(transaction_id))

        if new_amount <= 0:
            raise ValidationError("Amount must be positive")
        if new_vendor is not None and new_vendor != current.vendor_id:
            require_active_vendor(self.db, organization_id, new_vendor)
        self._validate_destination(organization_id, account_id, new_type, new_destination)

        with self.db.transaction():
            resolved = None
            if splits is not None:
                resolved = self._resolve_splits(organization_id, splits)
                if _split_key(resolved) == _split_key(current_splits):
                    resolved = None
            if resolved is not None:
                changes.append(
                    FieldChange(
                        field="splits",
                        old_value=[
                            {"category_id": c, "amount": json_safe(a)} for c, a in current_splits
                        ],
                        new_value=[{"category_id": c, "amount": json_safe(a)} for c, a in resolved],
                    )
                )
            if not changes:
                return current

            written = self.db.update_transaction_if_current(
                transaction_id,
                expected_version=current.version,
                expected_status=current.status,
                values={**new_values, "last_modified_by": actor},
            )
            if not written:
                latest = self.db.get_transaction(transaction_id)
                if latest is None:
                    raise NotFoundError(transaction_not_found(transaction_id))
                logger.warning(
                    "version_conflict_detected",
                    extra={
                        "transaction_id": transaction_id,
                        "expected_version": current.version,
                        "current_version": latest.version,
                        "actor": actor,
                    },
                )
                raise VersionConflictError(
                    f"Transaction {transaction_id} was modified concurrently",
                    current_version=latest.version,
                    current_transaction=latest,
                )
            if resolved is not None:
                self.db.replace_transaction_splits(transaction_id, resolved)

            new_posting = Posting(
                transaction_type=new_type,
                amount=new_amount,
                fee=new_fee or ZERO,
                account_id=account_id,
                destination_account_id=new_destination,
            )
            self._apply(update_adjustments(Posting.from_transaction(current), new_posting))

            edit_type = EditType.SPLIT_CHANGE if resolved is not None else EditType.UPDATE
            self.edit_history.record_edit(
                transaction_id,
                actor,
                edit_type,
                changes=changes,
                previous_state=snapshot_transaction(current),
            )
            updated = self.db.get_transaction(transaction_id)

        logger.info(
            "transaction_updated",
            extra={
                "transaction_id": transaction_id,
                "version": updated.version,
                "fields": [c.field for c in changes],
                "forced": force,
                "actor": actor,
            },
        )
        return updated

    @staticmethod
    def _same_split_ids(splits: Sequence[SplitInput], current: ResolvedSplits) -> bool:
        """Whether id-addressed split inputs match the stored splits exactly."""
        if any(split.category_id is None for split in splits):
            return False
        return _split_key([(s.category_id, s.amount) for s in splits]) == _split_key(current)

    def delete_transaction(
        self, organization_id: str, account_id: int, transaction_id: int, *, actor: str
    ) -> None:
        """Delete a transaction and reverse its balance impact.

        A snapshot is kept in the edit history so the transaction can be
        restored.

        Raises:
            NotFoundError: If the transaction doesn't exist on the account
            ReconciledTransactionError: If the transaction is reconciled
        """
        current = require_transaction(self.db, organization_id, account_id, transaction_id)
        if current.status is TransactionStatus.RECONCILED:
            raise ReconciledTransactionError(reconciled_locked(transaction_id))

        with self.db.transaction():
            self._apply(reversal(Posting.from_transaction(current)))
            self.db.delete_transaction(transaction_id)
            self.edit_history.record_edit(
                transaction_id,
                actor,
                EditType.DELETE,
                previous_state=snapshot_transaction(current),
            )

        logger.info(
            "transaction_deleted",
            extra={
                "organization_id": organization_id,
                "account_id": account_id,
                "transaction_id": transaction_id,
                "actor": actor,
            },
        )

    def restore_transaction(
        self, organization_id: str, account_id: int, transaction_id: int, *, actor: str
    ) -> TransactionEntity:
        """Recreate a deleted transaction from its delete snapshot.

        The restored row keeps its id, starts over as unconfirmed and gets the
        snapshot version plus one.

        Raises:
            ConflictError: If the transaction still exists
            NotFoundError: If there is nothing to restore for this account, or
                a referenced account, vendor or category is gone
        """
        require_account(self.db, organization_id, account_id)
        if self.db.get_transaction(transaction_id) is not None:
            raise ConflictError(f"Transaction {transaction_id} has not been deleted")

        snapshot = self.edit_history.get_latest_snapshot(transaction_id)
        if snapshot is None or snapshot.get("account_id") != account_id:
            raise NotFoundError(transaction_not_found(transaction_id))

        transaction_type = TransactionType(snapshot["transaction_type"])
        amount = Decimal(snapshot["amount"])
        fee = Decimal(snapshot["fee_amount"]) if snapshot.get("fee_amount") is not None else None
        destination_account_id = snapshot.get("destination_account_id")
        vendor_id = snapshot.get("vendor_id")
        splits = [(s["category_id"], Decimal(s["amount"])) for s in snapshot.get("splits", [])]

        if destination_account_id is not None:
            require_account(self.db, organization_id, destination_account_id)
        if vendor_id is not None:
            require_active_vendor(self.db, organization_id, vendor_id)
        for category_id, _ in splits:
            category = self.db.get_category(category_id)
            if category is None or category.organization_id != organization_id:
                raise NotFoundError(category_not_found(category_id))

        with self.db.transaction():
            self.db.create_transaction(
                account_id=account_id,
                transaction_type=transaction_type,
                amount=amount,
                date=date_type.fromisoformat(snapshot["date"]),
                splits=splits,
                fee_amount=fee,
                destination_account_id=destination_account_id,
                vendor_id=vendor_id,
                memo=snapshot.get("memo"),
                created_by=actor,
                version=snapshot["version"] + 1,
                transaction_id=transaction_id,
            )
            self._apply(
                posting_impacts(
                    Posting(
                        transaction_type=transaction_type,
                        amount=amount,
                        fee=fee or ZERO,
                        account_id=account_id,
                        destination_account_id=destination_account_id,
                    )
                )
            )
            self.db.add_status_history(
                transaction_id, None, TransactionStatus.UNCONFIRMED, actor, notes="Restored"
            )
            self.edit_history.record_edit(
                transaction_id, actor, EditType.RESTORE, previous_state=snapshot
            )
            restored = self.db.get_transaction(transaction_id)

        logger.info(
            "transaction_restored",
            extra={
                "account_id": account_id,
                "transaction_id": transaction_id,
                "version": restored.version,
                "actor": actor,
            },
        )
        return restored

    # Queries
    def get_transaction(
        self, organization_id: str, account_id: int, transaction_id: int
    ) -> TransactionEntity:
        """Get transaction by ID.

        Raises:
            NotFoundError: If the transaction doesn't exist on the account
        """
        return require_transaction(self.db, organization_id, account_id, transaction_id)

    def list_transactions(
        self,
        organization_id: str,
        account_id: int,
        start_date: Optional[date_type] = None,
        end_date: Optional[date_type] = None,
        transaction_type: Optional[TransactionType] = None,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
        statuses: Optional[Sequence[TransactionStatus]] = None,
        confirmed_after: Optional[datetime] = None,
        confirmed_before: Optional[datetime] = None,
        reconciled_after: Optional[datetime] = None,
        reconciled_before: Optional[datetime] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> tuple[list[TransactionEntity], int]:
        """List an account's transactions, newest date first.

        Args:
            category: Case-insensitive substring of any split's category name
            status: Single status filter; combined with ``statuses``
            limit: Page size, 1 to 100
            offset: Rows to skip

        Returns:
            Tuple of (page of transactions, total matching rows)
        """
        if limit < 1 or limit > MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if offset < 0:
            raise ValidationError("offset cannot be negative")
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError("start_date must be on or before end_date")
        require_account(self.db, organization_id, account_id)

        wanted = [TransactionStatus(s) for s in (statuses or [])]
        if status is not None:
            wanted.append(TransactionStatus(status))

        return self.db.list_transactions(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=TransactionType(transaction_type) if transaction_type else None,
            vendor_id=vendor_id,
            category=category,
            statuses=wanted or None,
            confirmed_after=confirmed_after,
            confirmed_before=confirmed_before,
            reconciled_after=reconciled_after,
            reconciled_before=reconciled_before,
            limit=limit,
            offset=offset,
        )

    def recompute_balance(self, organization_id: str, account_id: int) -> Decimal:
        """Opening balance plus the impact of every existing transaction.

        Equals the stored balance unless something bypassed the ledger.
        """
        account = require_account(self.db, organization_id, account_id)
        total = account.opening_balance
        for txn in self.db.list_account_postings(account_id):
            total += impact(Posting.from_transaction(txn), account_id)
        return total
