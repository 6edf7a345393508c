"""Balance arithmetic for transactions.

Pure functions only: given the type, amount, fee and accounts of a
transaction, compute the signed amount it adds to or removes from each
account. The transaction service applies the results to the store.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ledgerkeep.domain.entities import Transaction, TransactionType

ZERO = Decimal("0")


@dataclass(frozen=True)
class Posting:
    """The balance-relevant fields of a transaction."""

    transaction_type: TransactionType
    amount: Decimal
    fee: Decimal
    account_id: int
    destination_account_id: Optional[int] = None

    @property
    def is_transfer(self) -> bool:
        return self.transaction_type is TransactionType.TRANSFER

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "Posting":
        return cls(
            transaction_type=txn.transaction_type,
            amount=txn.amount,
            fee=txn.fee_amount or ZERO,
            account_id=txn.account_id,
            destination_account_id=txn.destination_account_id,
        )


@dataclass(frozen=True)
class BalanceAdjustment:
    """Signed delta to apply to one account balance."""

    account_id: int
    delta: Decimal


def source_impact(posting: Posting) -> Decimal:
    """Impact on the account that owns the transaction."""
    if posting.transaction_type is TransactionType.INCOME:
        return posting.amount - posting.fee
    # Expense and the source side of a transfer both pay the fee.
    return -(posting.amount + posting.fee)


def impact(posting: Posting, account_id: int) -> Decimal:
    """Signed impact of a posting on a specific account.

    The fee only applies to the source side of a transfer.
    """
    if account_id == posting.account_id:
        return source_impact(posting)
    if posting.is_transfer and account_id == posting.destination_account_id:
        return posting.amount
    return ZERO


def _collect(deltas: dict[int, Decimal]) -> list[BalanceAdjustment]:
    return [
        BalanceAdjustment(account_id=account_id, delta=delta)
        for account_id, delta in sorted(deltas.items())
        if delta != ZERO
    ]


def _add(deltas: dict[int, Decimal], account_id: Optional[int], delta: Decimal) -> None:
    if account_id is None:
        return
    deltas[account_id] = deltas.get(account_id, ZERO) + delta


def posting_impacts(posting: Posting) -> list[BalanceAdjustment]:
    """Impacts of a newly created posting on every account it touches."""
    deltas: dict[int, Decimal] = {}
    _add(deltas, posting.account_id, source_impact(posting))
    if posting.is_transfer:
        _add(deltas, posting.destination_account_id, posting.amount)
    return _collect(deltas)


def reversal(posting: Posting) -> list[BalanceAdjustment]:
    """Adjustments that undo a posting (used when deleting)."""
    return [
        BalanceAdjustment(account_id=adj.account_id, delta=-adj.delta)
        for adj in posting_impacts(posting)
    ]


def update_adjustments(old: Posting, new: Posting) -> list[BalanceAdjustment]:
    """Per-account deltas turning the old posting's impact into the new one's.

    Both postings must belong to the same source account.
    """
    if old.account_id != new.account_id:
        raise ValueError("Postings must share a source account")

    deltas: dict[int, Decimal] = {}
    source = old.account_id

    if old.is_transfer and new.is_transfer:
        _add(deltas, source, source_impact(new) - source_impact(old))
        if old.destination_account_id != new.destination_account_id:
            _add(deltas, old.destination_account_id, -old.amount)
            _add(deltas, new.destination_account_id, new.amount)
        else:
            _add(deltas, new.destination_account_id, new.amount - old.amount)
    elif old.is_transfer:
        # Undo both legs, then apply the new income/expense to the source only.
        _add(deltas, source, -source_impact(old))
        _add(deltas, old.destination_account_id, -old.amount)
        _add(deltas, source, source_impact(new))
    elif new.is_transfer:
        _add(deltas, source, -source_impact(old))
        _add(deltas, source, source_impact(new))
        _add(deltas, new.destination_account_id, new.amount)
    else:
        _add(deltas, source, source_impact(new) - source_impact(old))

    return _collect(deltas)
