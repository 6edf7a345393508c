"""Tests for the transaction status lifecycle."""

from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from ledgerkeep.domain.entities import SplitInput, TransactionStatus, TransactionType
from ledgerkeep.domain.errors import (
    BatchTooLargeError,
    InvalidStatusTransitionError,
    NotFoundError,
    ReconciledTransactionError,
    StatusAlreadySetError,
    ValidationError,
)
from ledgerkeep.domain.status import (
    MAX_BULK_STATUS_BATCH,
    StatusService,
    check_transition,
    status_timestamps,
)

from conftest import ACTOR, ORG

D = Decimal
UNCONFIRMED = TransactionStatus.UNCONFIRMED
CONFIRMED = TransactionStatus.CONFIRMED
RECONCILED = TransactionStatus.RECONCILED


@pytest.fixture
def make_txn(transaction_service, sample_account):
    def _make(amount="10.00", account_id=None, **kwargs):
        return transaction_service.create_transaction(
            ORG,
            account_id or sample_account.id,
            actor=ACTOR,
            amount=D(amount),
            splits=[SplitInput(D(amount), category_name="Misc")],
            **kwargs,
        )

    return _make


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,requested",
        [
            (UNCONFIRMED, CONFIRMED),
            (CONFIRMED, UNCONFIRMED),
            (CONFIRMED, RECONCILED),
        ],
    )
    def test_allowed(self, current, requested):
        check_transition(current, requested)

    def test_skipping_confirmation_not_allowed(self):
        with pytest.raises(InvalidStatusTransitionError):
            check_transition(UNCONFIRMED, RECONCILED)

    @pytest.mark.parametrize("requested", [UNCONFIRMED, CONFIRMED])
    def test_reconciled_is_terminal(self, requested):
        with pytest.raises(ReconciledTransactionError):
            check_transition(RECONCILED, requested)

    @pytest.mark.parametrize("status", list(TransactionStatus))
    def test_same_status_rejected(self, status):
        with pytest.raises(StatusAlreadySetError):
            check_transition(status, status)


class TestTimestamps:
    def test_confirm_sets_confirmed_at(self, make_txn):
        now = datetime(2024, 5, 1, tzinfo=UTC)
        assert status_timestamps(make_txn(), CONFIRMED, now) == (now, None)

    def test_unconfirm_clears_both(self, make_txn):
        now = datetime(2024, 5, 1, tzinfo=UTC)
        assert status_timestamps(make_txn(), UNCONFIRMED, now) == (None, None)


class TestChangeStatus:
    def test_confirm_then_reconcile(self, status_service, make_txn, sample_account):
        txn = make_txn()

        confirmed = status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)
        assert confirmed.status is CONFIRMED
        assert confirmed.confirmed_at is not None
        assert confirmed.reconciled_at is None

        reconciled = status_service.change_status(ORG, sample_account.id, txn.id, "reconciled", actor=ACTOR)
        assert reconciled.status is RECONCILED
        assert reconciled.confirmed_at == confirmed.confirmed_at
        assert reconciled.reconciled_at is not None

    def test_unconfirm_clears_confirmed_at(self, status_service, make_txn, sample_account):
        txn = make_txn()
        status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)
        back = status_service.change_status(ORG, sample_account.id, txn.id, UNCONFIRMED, actor=ACTOR)
        assert back.status is UNCONFIRMED
        assert back.confirmed_at is None

    def test_status_change_does_not_touch_balance_or_version(
        self, status_service, make_txn, sample_account, balance_of
    ):
        txn = make_txn()
        before = balance_of(sample_account.id)
        updated = status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)
        assert balance_of(sample_account.id) == before
        assert updated.version == txn.version

    def test_history_written_newest_first(self, status_service, make_txn, sample_account):
        txn = make_txn()
        status_service.change_status(
            ORG, sample_account.id, txn.id, CONFIRMED, actor="bob", notes="seen on statement"
        )

        history = status_service.get_status_history(ORG, sample_account.id, txn.id)
        assert [(h.from_status, h.to_status) for h in history] == [
            (UNCONFIRMED, CONFIRMED),
            (None, UNCONFIRMED),
        ]
        assert history[0].changed_by == "bob"
        assert history[0].notes == "seen on statement"

    def test_already_in_status(self, status_service, make_txn, sample_account):
        txn = make_txn()
        with pytest.raises(StatusAlreadySetError, match="already unconfirmed"):
            status_service.change_status(ORG, sample_account.id, txn.id, UNCONFIRMED, actor=ACTOR)

    def test_lost_race_reports_already_set(self, status_service, make_txn, sample_account, second_db):
        txn = make_txn()
        stale = second_db.get_transaction(txn.id)
        status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor="bob")

        with pytest.raises(StatusAlreadySetError, match="already confirmed"):
            with second_db.transaction():
                StatusService(second_db)._transition(
                    stale, CONFIRMED, "carol", None, datetime.now(UTC)
                )

        history = status_service.get_status_history(ORG, sample_account.id, txn.id)
        assert [h.to_status for h in history].count(CONFIRMED) == 1
        assert history[0].changed_by == "bob"

    def test_reconciled_cannot_change(self, status_service, make_txn, sample_account):
        txn = make_txn()
        status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)
        status_service.change_status(ORG, sample_account.id, txn.id, RECONCILED, actor=ACTOR)
        with pytest.raises(ReconciledTransactionError):
            status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)

    def test_wrong_account(self, status_service, make_txn, second_account):
        txn = make_txn()
        with pytest.raises(NotFoundError):
            status_service.change_status(ORG, second_account.id, txn.id, CONFIRMED, actor=ACTOR)

    def test_notes_length_limit(self, status_service, make_txn, sample_account):
        txn = make_txn()
        with pytest.raises(ValidationError):
            status_service.change_status(
                ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR, notes="x" * 501
            )

    def test_unknown_status_value(self, status_service, make_txn, sample_account):
        txn = make_txn()
        with pytest.raises(ValueError):
            status_service.change_status(ORG, sample_account.id, txn.id, "pending", actor=ACTOR)


class TestBulkChangeStatus:
    def test_partial_success(self, status_service, make_txn, sample_account):
        first, second, third = make_txn(), make_txn(), make_txn()
        status_service.change_status(ORG, sample_account.id, second.id, CONFIRMED, actor=ACTOR)

        result = status_service.bulk_change_status(
            ORG, sample_account.id, [first.id, second.id, third.id, 9999], CONFIRMED, actor=ACTOR
        )

        assert result.successful == [first.id, third.id]
        assert [f.transaction_id for f in result.failed] == [second.id, 9999]
        assert "already confirmed" in result.failed[0].error
        assert result.partially_succeeded
        assert not result.all_succeeded

    def test_duplicates_processed_once(self, status_service, make_txn, sample_account):
        txn = make_txn()
        result = status_service.bulk_change_status(
            ORG, sample_account.id, [txn.id, txn.id], CONFIRMED, actor=ACTOR
        )
        assert result.successful == [txn.id]
        assert result.failed == []
        assert len(status_service.get_status_history(ORG, sample_account.id, txn.id)) == 2

    def test_transactions_of_other_accounts_fail(
        self, status_service, make_txn, sample_account, second_account
    ):
        other = make_txn(account_id=second_account.id)
        result = status_service.bulk_change_status(
            ORG, sample_account.id, [other.id], CONFIRMED, actor=ACTOR
        )
        assert result.none_succeeded
        assert result.failed[0].transaction_id == other.id

    def test_empty_batch(self, status_service, sample_account):
        with pytest.raises(ValidationError):
            status_service.bulk_change_status(ORG, sample_account.id, [], CONFIRMED, actor=ACTOR)

    def test_batch_too_large(self, status_service, sample_account):
        ids = list(range(1, MAX_BULK_STATUS_BATCH + 2))
        with pytest.raises(BatchTooLargeError):
            status_service.bulk_change_status(ORG, sample_account.id, ids, CONFIRMED, actor=ACTOR)


class TestReconcile:
    def test_reports_difference(self, status_service, make_txn, sample_account):
        spent = make_txn("100.00")
        earned = make_txn("40.00", transaction_type=TransactionType.INCOME)
        make_txn("7.00")  # stays unconfirmed
        for txn in (spent, earned):
            status_service.change_status(ORG, sample_account.id, txn.id, CONFIRMED, actor=ACTOR)

        result = status_service.reconcile(
            ORG,
            sample_account.id,
            statement_balance=D("945.00"),
            statement_date=date(2024, 5, 31),
            transaction_ids=[spent.id, earned.id],
            actor=ACTOR,
        )

        assert result.reconciled_count == 2
        assert result.cleared_balance == D("940.00")
        assert result.difference == D("5.00")
        assert result.statement_date == date(2024, 5, 31)

        history = status_service.get_status_history(ORG, sample_account.id, spent.id)
        assert history[0].to_status is RECONCILED
        assert "2024-05-31" in history[0].notes

    def test_all_or_nothing(self, status_service, make_txn, sample_account, transaction_service):
        confirmed = make_txn()
        unconfirmed = make_txn()
        status_service.change_status(ORG, sample_account.id, confirmed.id, CONFIRMED, actor=ACTOR)

        with pytest.raises(ValidationError, match="must be confirmed"):
            status_service.reconcile(
                ORG,
                sample_account.id,
                statement_balance=D("0"),
                statement_date=date(2024, 5, 31),
                transaction_ids=[confirmed.id, unconfirmed.id],
                actor=ACTOR,
            )
        assert transaction_service.get_transaction(ORG, sample_account.id, confirmed.id).status is CONFIRMED

    def test_missing_transaction(self, status_service, sample_account):
        with pytest.raises(NotFoundError):
            status_service.reconcile(
                ORG,
                sample_account.id,
                statement_balance=D("0"),
                statement_date=date(2024, 5, 31),
                transaction_ids=[9999],
                actor=ACTOR,
            )


def test_summary(status_service, make_txn, sample_account, second_account):
    spent = make_txn("100.00")
    make_txn("30.00", transaction_type=TransactionType.INCOME)
    make_txn(
        "50.00",
        account_id=second_account.id,
        transaction_type=TransactionType.TRANSFER,
        destination_account_id=sample_account.id,
    )
    status_service.change_status(ORG, sample_account.id, spent.id, CONFIRMED, actor=ACTOR)

    summary = status_service.get_summary(ORG, sample_account.id)

    assert summary.account_name == "Checking"
    assert summary.balance == D("980.00")
    assert (summary.confirmed.count, summary.confirmed.net) == (1, D("-100.00"))
    assert (summary.unconfirmed.count, summary.unconfirmed.net) == (2, D("80.00"))
    assert summary.reconciled.count == 0
    assert (summary.overall.count, summary.overall.net) == (3, D("-20.00"))
