"""Transaction status lifecycle.

Transactions start unconfirmed, get confirmed once seen on the bank side and
end up reconciled against a statement. Reconciled is terminal.
"""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Sequence

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import (
    Account,
    BulkStatusFailure,
    BulkStatusResult,
    ReconciliationResult,
    StatusHistoryEntry,
    StatusSummary,
    StatusTotals,
    Transaction,
    TransactionStatus,
)
from ledgerkeep.domain.errors import (
    BatchTooLargeError,
    ConflictError,
    DomainError,
    InvalidStatusTransitionError,
    NotFoundError,
    ReconciledTransactionError,
    StatusAlreadySetError,
    ValidationError,
    already_in_status,
    invalid_status_transition,
    reconciled_locked,
    transaction_not_found,
)
from ledgerkeep.domain.ledger import ZERO, Posting, impact
from ledgerkeep.domain.ownership import require_account, require_transaction
from ledgerkeep.logging_config import get_logger

logger = get_logger("status")

MAX_BULK_STATUS_BATCH = 100
MAX_NOTES_LENGTH = 500

ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.UNCONFIRMED: frozenset({TransactionStatus.CONFIRMED}),
    TransactionStatus.CONFIRMED: frozenset(
        {TransactionStatus.UNCONFIRMED, TransactionStatus.RECONCILED}
    ),
    TransactionStatus.RECONCILED: frozenset(),
}


def check_transition(current: TransactionStatus, requested: TransactionStatus) -> None:
    """Raise unless ``current -> requested`` is an allowed edge.

    Raises:
        StatusAlreadySetError: If the transaction is already in that status
        ReconciledTransactionError: If the transaction is reconciled
        InvalidStatusTransitionError: For any other edge outside the table
    """
    if current is requested:
        raise StatusAlreadySetError(already_in_status(requested.value))
    if current is TransactionStatus.RECONCILED:
        raise ReconciledTransactionError(reconciled_locked())
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            invalid_status_transition(current.value, requested.value)
        )


def status_timestamps(
    txn: Transaction, new_status: TransactionStatus, now: datetime
) -> tuple[Optional[datetime], Optional[datetime]]:
    """``(confirmed_at, reconciled_at)`` after moving ``txn`` to ``new_status``."""
    if new_status is TransactionStatus.UNCONFIRMED:
        return None, None
    if new_status is TransactionStatus.CONFIRMED:
        return now, None
    return txn.confirmed_at or now, now


def _check_notes(notes: Optional[str]) -> None:
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")


class StatusService:
    """Service for moving transactions through their status lifecycle."""

    def __init__(self, db: Database):
        """Initialize status service.

        Args:
            db: Database instance
        """
        self.db = db

    def _transition(
        self,
        txn: Transaction,
        new_status: TransactionStatus,
        actor: str,
        notes: Optional[str],
        now: datetime,
    ) -> None:
        """Swap the status if nobody else did first, and log the change.

        Must run inside ``db.transaction()``.
        """
        confirmed_at, reconciled_at = status_timestamps(txn, new_status, now)
        swapped = self.db.set_transaction_status_if(
            txn.id, txn.status, new_status, confirmed_at, reconciled_at
        )
        if not swapped:
            latest = self.db.get_transaction(txn.id)
            if latest is None:
                raise NotFoundError(transaction_not_found(txn.id))
            if latest.status is new_status:
                raise StatusAlreadySetError(already_in_status(new_status.value))
            raise ConflictError(f"Status of transaction {txn.id} changed concurrently")
        self.db.add_status_history(
            txn.id, txn.status, new_status, actor, notes=notes, changed_at=now
        )

    def change_status(
        self,
        organization_id: str,
        account_id: int,
        transaction_id: int,
        new_status: TransactionStatus,
        *,
        actor: str,
        notes: Optional[str] = None,
    ) -> Transaction:
        """Move one transaction to ``new_status``.

        Args:
            organization_id: Owning organization
            account_id: Account the transaction belongs to
            transaction_id: Transaction to move
            new_status: Target status
            actor: Who performs the change
            notes: Optional note stored with the history entry

        Returns:
            The transaction after the change

        Raises:
            NotFoundError: If the transaction doesn't exist on the account
            StatusAlreadySetError: If it is already in ``new_status``
            ReconciledTransactionError: If it is reconciled
            InvalidStatusTransitionError: If the edge is not allowed
        """
        new_status = TransactionStatus(new_status)
        _check_notes(notes)
        txn = require_transaction(self.db, organization_id, account_id, transaction_id)
        check_transition(txn.status, new_status)

        with self.db.transaction():
            self._transition(txn, new_status, actor, notes, datetime.now(UTC))

        logger.info(
            "transaction_status_changed",
            extra={
                "transaction_id": transaction_id,
                "from_status": txn.status,
                "to_status": new_status,
                "actor": actor,
            },
        )
        return self.db.get_transaction(transaction_id)

    def bulk_change_status(
        self,
        organization_id: str,
        account_id: int,
        transaction_ids: Sequence[int],
        new_status: TransactionStatus,
        *,
        actor: str,
        notes: Optional[str] = None,
    ) -> BulkStatusResult:
        """Move several transactions; each id succeeds or fails on its own.

        Raises:
            ValidationError: If no ids were given
            BatchTooLargeError: If more than MAX_BULK_STATUS_BATCH ids were given
            NotFoundError: If the account doesn't exist
        """
        new_status = TransactionStatus(new_status)
        if not transaction_ids:
            raise ValidationError("At least one transaction id is required")
        if len(transaction_ids) > MAX_BULK_STATUS_BATCH:
            raise BatchTooLargeError(
                f"Cannot change more than {MAX_BULK_STATUS_BATCH} transactions at once"
            )
        _check_notes(notes)
        require_account(self.db, organization_id, account_id)

        successful: list[int] = []
        failed: list[BulkStatusFailure] = []
        now = datetime.now(UTC)
        for transaction_id in dict.fromkeys(transaction_ids):
            txn = self.db.get_transaction(transaction_id)
            if txn is None or txn.account_id != account_id:
                failed.append(BulkStatusFailure(transaction_id, transaction_not_found(transaction_id)))
                continue
            try:
                check_transition(txn.status, new_status)
                with self.db.transaction():
                    self._transition(txn, new_status, actor, notes, now)
            except DomainError as e:
                failed.append(BulkStatusFailure(transaction_id, str(e)))
                continue
            successful.append(transaction_id)

        logger.info(
            "bulk_status_changed",
            extra={
                "account_id": account_id,
                "to_status": new_status,
                "successful": len(successful),
                "failed": len(failed),
                "actor": actor,
            },
        )
        return BulkStatusResult(status=new_status, successful=successful, failed=failed)

    def reconcile(
        self,
        organization_id: str,
        account_id: int,
        statement_balance: Decimal,
        statement_date: date,
        transaction_ids: Sequence[int],
        *,
        actor: str,
        notes: Optional[str] = None,
    ) -> ReconciliationResult:
        """Reconcile confirmed transactions against a bank statement.

        All listed transactions move to reconciled together, or none do. The
        difference between statement and cleared balance is reported, not
        enforced.

        Raises:
            NotFoundError: If the account or a transaction is missing
            ValidationError: If a transaction is not confirmed
        """
        _check_notes(notes)
        if not transaction_ids:
            raise ValidationError("At least one transaction id is required")
        account = require_account(self.db, organization_id, account_id)

        txns = []
        for transaction_id in dict.fromkeys(transaction_ids):
            txn = self.db.get_transaction(transaction_id)
            if txn is None or txn.account_id != account_id:
                raise NotFoundError(transaction_not_found(transaction_id))
            if txn.status is not TransactionStatus.CONFIRMED:
                raise ValidationError(
                    f"Transaction {transaction_id} must be confirmed to reconcile "
                    f"(currently {txn.status.value})"
                )
            txns.append(txn)

        now = datetime.now(UTC)
        note = notes or f"Reconciled against statement of {statement_date.isoformat()}"
        with self.db.transaction():
            for txn in txns:
                self._transition(txn, TransactionStatus.RECONCILED, actor, note, now)

        cleared_balance = self._cleared_balance(account)
        difference = statement_balance - cleared_balance
        logger.info(
            "account_reconciled",
            extra={
                "account_id": account_id,
                "reconciled_count": len(txns),
                "statement_balance": statement_balance,
                "cleared_balance": cleared_balance,
                "difference": difference,
                "actor": actor,
            },
        )
        return ReconciliationResult(
            reconciled_count=len(txns),
            cleared_balance=cleared_balance,
            statement_balance=statement_balance,
            difference=difference,
            statement_date=statement_date,
        )

    def _cleared_balance(self, account: Account) -> Decimal:
        """Opening balance plus every confirmed or reconciled impact."""
        total = account.opening_balance
        for txn in self.db.list_account_postings(account.id):
            if txn.status is not TransactionStatus.UNCONFIRMED:
                total += impact(Posting.from_transaction(txn), account.id)
        return total

    def get_status_history(
        self, organization_id: str, account_id: int, transaction_id: int
    ) -> list[StatusHistoryEntry]:
        """Status history of a transaction, newest first."""
        require_transaction(self.db, organization_id, account_id, transaction_id)
        return self.db.list_status_history(transaction_id)

    def get_summary(self, organization_id: str, account_id: int) -> StatusSummary:
        """Count and net balance impact per status for an account.

        Incoming transfers count toward the destination account's totals.
        """
        account = require_account(self.db, organization_id, account_id)
        counts = {status: 0 for status in TransactionStatus}
        nets = {status: ZERO for status in TransactionStatus}
        for txn in self.db.list_account_postings(account_id):
            counts[txn.status] += 1
            nets[txn.status] += impact(Posting.from_transaction(txn), account_id)

        def totals(status: TransactionStatus) -> StatusTotals:
            return StatusTotals(count=counts[status], net=nets[status])

        return StatusSummary(
            account_id=account.id,
            account_name=account.name,
            balance=account.balance,
            unconfirmed=totals(TransactionStatus.UNCONFIRMED),
            confirmed=totals(TransactionStatus.CONFIRMED),
            reconciled=totals(TransactionStatus.RECONCILED),
            overall=StatusTotals(count=sum(counts.values()), net=sum(nets.values(), ZERO)),
        )
