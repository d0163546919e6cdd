"""Tests for settling scheduled obligations, including failure and race cases."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from pocketledger.errors import (
    AlreadyPaidError,
    InsufficientFundsError,
    NotFoundError,
    SettlementFailedError,
)
from pocketledger.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelScheduleRepository,
    SQLModelTransactionRepository,
)
from pocketledger.services.settlement import SettlementOrchestrator, settlement_description
from tests.conftest import OTHER_USER_ID, USER_ID


def _storage_error() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("disk I/O error"))


class FlakyTransactionRepository(SQLModelTransactionRepository):
    """Ledger store whose next append or retract can be made to fail."""

    fail_append = False
    fail_retract = False

    def append(self, entry):
        if self.fail_append:
            raise _storage_error()
        return super().append(entry)

    def retract(self, transaction_id, *, user_id, related_scheduled_id):
        if self.fail_retract:
            raise _storage_error()
        return super().retract(
            transaction_id, user_id=user_id, related_scheduled_id=related_scheduled_id
        )


class FlakyAccountRepository(SQLModelAccountRepository):
    """Balance store whose settlement debit can time out."""

    fail_adjust = False

    def adjust_balance(self, user_id, delta_cents, *, floor_cents=None):
        if self.fail_adjust:
            raise TimeoutError("balance store did not answer in time")
        return super().adjust_balance(user_id, delta_cents, floor_cents=floor_cents)


class FlakyScheduleRepository(SQLModelScheduleRepository):
    fail_revert = False

    def revert_paid(self, obligation_id, *, user_id):
        if self.fail_revert:
            raise _storage_error()
        return super().revert_paid(obligation_id, user_id=user_id)


@pytest.fixture
def flaky(session_factory, clock):
    """Orchestrator wired to stores with switchable failures."""
    accounts = FlakyAccountRepository(session_factory, default_timezone="UTC")
    ledger = FlakyTransactionRepository(session_factory)
    schedule = FlakyScheduleRepository(session_factory)
    orchestrator = SettlementOrchestrator(
        accounts, ledger, schedule, clock=clock, default_timezone="UTC"
    )
    return orchestrator, accounts, ledger, schedule


def _assert_untouched(account_repo, transaction_repo, schedule_repo, obligation_id, cents):
    assert account_repo.get_balance(USER_ID) == Decimal(cents) / 100
    assert transaction_repo.get_by_related_scheduled_id(obligation_id, user_id=USER_ID) is None
    obligation = schedule_repo.get_by_id(obligation_id, user_id=USER_ID)
    assert obligation.is_paid is False
    assert obligation.paid_at is None


# =============================================================================
# Happy path
# =============================================================================


def test_settle_debits_balance_and_writes_ledger_entry(
    orchestrator, funded_account, obligation_factory, transaction_repo, schedule_repo, clock
):
    funded_account(cents=10_000)
    obligation = obligation_factory(title="Rent", amount_cents=4_000, description="June rent")

    result = orchestrator.settle(USER_ID, obligation.id)

    assert result.balance == Decimal("60.00")
    assert result.amount == Decimal("-40.00")
    assert result.paid_at == clock.now

    entry = transaction_repo.get_by_id(result.transaction_id, user_id=USER_ID)
    assert entry.amount_cents == -4_000
    assert entry.title == "Rent"
    assert entry.category == "housing"
    assert entry.description == "Payment for: June rent"
    assert entry.related_scheduled_id == obligation.id
    assert entry.occurred_at == date(2025, 6, 20)

    stored = schedule_repo.get_by_id(obligation.id, user_id=USER_ID)
    assert stored.is_paid is True
    assert stored.paid_at is not None


def test_settlement_description_falls_back_to_title(obligation_factory):
    obligation = obligation_factory(title="Gym", description="")

    assert settlement_description(obligation) == "Payment for: Gym"


def test_settle_allows_exact_balance(orchestrator, funded_account, obligation_factory):
    funded_account(cents=4_000)
    obligation = obligation_factory(amount_cents=4_000)

    result = orchestrator.settle(USER_ID, obligation.id)

    assert result.balance == Decimal("0.00")


def test_settle_income_obligation_credits_balance(
    orchestrator, funded_account, obligation_factory, transaction_repo
):
    funded_account(cents=0)
    obligation = obligation_factory(title="Salary", amount_cents=350_000, category="income")

    result = orchestrator.settle(USER_ID, obligation.id)

    assert result.balance == Decimal("3500.00")
    entry = transaction_repo.get_by_id(result.transaction_id, user_id=USER_ID)
    assert entry.amount_cents == 350_000


def test_settle_past_due_obligation(orchestrator, funded_account, obligation_factory):
    funded_account(cents=10_000)
    obligation = obligation_factory(due_at=date(2025, 5, 1))

    assert orchestrator.settle(USER_ID, obligation.id).balance == Decimal("60.00")


def test_entry_is_dated_in_account_timezone(
    orchestrator, account_repo, funded_account, obligation_factory, transaction_repo, clock
):
    funded_account(cents=10_000)
    account_repo.set_timezone(USER_ID, "Asia/Tokyo")
    clock.now = datetime(2025, 6, 20, 23, 30, tzinfo=timezone.utc)
    obligation = obligation_factory()

    result = orchestrator.settle(USER_ID, obligation.id)

    entry = transaction_repo.get_by_id(result.transaction_id, user_id=USER_ID)
    assert entry.occurred_at == date(2025, 6, 21)


def test_settle_logs_state_changes(orchestrator, funded_account, obligation_factory, caplog):
    funded_account(cents=10_000)
    obligation = obligation_factory()

    with caplog.at_level(logging.INFO, logger="pocketledger"):
        orchestrator.settle(USER_ID, obligation.id)

    states = [
        record.state for record in caplog.records if record.getMessage() == "Settlement state change"
    ]
    assert states == ["settling", "settled"]


# =============================================================================
# Rejections
# =============================================================================


def test_insufficient_funds_changes_nothing(
    orchestrator, funded_account, obligation_factory, account_repo, transaction_repo, schedule_repo
):
    funded_account(cents=1_000)
    obligation = obligation_factory(amount_cents=4_000)

    with pytest.raises(InsufficientFundsError) as excinfo:
        orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.balance == Decimal("10.00")
    assert excinfo.value.required == Decimal("40.00")
    _assert_untouched(account_repo, transaction_repo, schedule_repo, obligation.id, 1_000)


def test_settling_twice_raises_already_paid(
    orchestrator, funded_account, obligation_factory, account_repo, transaction_repo
):
    funded_account(cents=10_000)
    obligation = obligation_factory()
    orchestrator.settle(USER_ID, obligation.id)

    with pytest.raises(AlreadyPaidError):
        orchestrator.settle(USER_ID, obligation.id)

    assert account_repo.get_balance(USER_ID) == Decimal("60.00")
    settled = [e for e in transaction_repo.list_all(USER_ID) if e.related_scheduled_id]
    assert len(settled) == 1


def test_unknown_obligation_raises_not_found(orchestrator, funded_account):
    funded_account(cents=10_000)

    with pytest.raises(NotFoundError):
        orchestrator.settle(USER_ID, 424_242)


def test_cannot_settle_another_users_obligation(
    orchestrator, funded_account, obligation_factory, schedule_repo
):
    funded_account(cents=10_000)
    funded_account(user_id=OTHER_USER_ID, cents=10_000)
    obligation = obligation_factory(user_id=OTHER_USER_ID)

    with pytest.raises(NotFoundError):
        orchestrator.settle(USER_ID, obligation.id)

    assert schedule_repo.get_by_id(obligation.id, user_id=OTHER_USER_ID).is_paid is False


# =============================================================================
# Failure and compensation
# =============================================================================


def test_append_failure_rolls_back_mark_paid(
    flaky, funded_account, obligation_factory, account_repo, transaction_repo, schedule_repo
):
    orchestrator, _, ledger, _ = flaky
    funded_account(cents=10_000)
    obligation = obligation_factory()
    ledger.fail_append = True

    with pytest.raises(SettlementFailedError) as excinfo:
        orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.fatal is False
    assert excinfo.value.retryable is True
    _assert_untouched(account_repo, transaction_repo, schedule_repo, obligation.id, 10_000)


def test_balance_timeout_rolls_back_entry_and_flag(
    flaky, funded_account, obligation_factory, account_repo, transaction_repo, schedule_repo
):
    orchestrator, accounts, _, _ = flaky
    funded_account(cents=10_000)
    obligation = obligation_factory()
    accounts.fail_adjust = True

    with pytest.raises(SettlementFailedError) as excinfo:
        orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.retryable
    _assert_untouched(account_repo, transaction_repo, schedule_repo, obligation.id, 10_000)
    assert transaction_repo.list_all(USER_ID) == []


def test_retry_after_failure_settles_exactly_once(
    flaky, funded_account, obligation_factory, account_repo, transaction_repo
):
    orchestrator, accounts, _, _ = flaky
    funded_account(cents=10_000)
    obligation = obligation_factory()

    accounts.fail_adjust = True
    with pytest.raises(SettlementFailedError):
        orchestrator.settle(USER_ID, obligation.id)

    accounts.fail_adjust = False
    result = orchestrator.settle(USER_ID, obligation.id)

    assert result.balance == Decimal("60.00")
    settled = [e for e in transaction_repo.list_all(USER_ID) if e.related_scheduled_id]
    assert [e.id for e in settled] == [result.transaction_id]


def test_failed_rollback_is_fatal_and_logged_critical(
    flaky, funded_account, obligation_factory, caplog
):
    orchestrator, _, ledger, schedule = flaky
    funded_account(cents=10_000)
    obligation = obligation_factory()
    ledger.fail_append = True
    schedule.fail_revert = True

    with caplog.at_level(logging.INFO, logger="pocketledger"):
        with pytest.raises(SettlementFailedError) as excinfo:
            orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.fatal is True
    assert excinfo.value.retryable is False
    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert critical
    assert critical[0].obligation_id == obligation.id


def test_failed_retract_is_fatal(flaky, funded_account, obligation_factory):
    orchestrator, accounts, ledger, _ = flaky
    funded_account(cents=10_000)
    obligation = obligation_factory()
    accounts.fail_adjust = True
    ledger.fail_retract = True

    with pytest.raises(SettlementFailedError) as excinfo:
        orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.fatal is True


def test_storage_error_while_marking_paid_is_retryable(
    session_factory, clock, funded_account, obligation_factory, account_repo, transaction_repo
):
    class BrokenSchedule(SQLModelScheduleRepository):
        def mark_paid(self, obligation_id, paid_at, *, user_id):
            raise _storage_error()

    schedule = BrokenSchedule(session_factory)
    orchestrator = SettlementOrchestrator(
        account_repo, transaction_repo, schedule, clock=clock, default_timezone="UTC"
    )
    funded_account(cents=10_000)
    obligation = obligation_factory()

    with pytest.raises(SettlementFailedError) as excinfo:
        orchestrator.settle(USER_ID, obligation.id)

    assert excinfo.value.retryable
    _assert_untouched(account_repo, transaction_repo, schedule, obligation.id, 10_000)


# =============================================================================
# Concurrency
# =============================================================================


def _run_concurrently(count, target):
    barrier = threading.Barrier(count)
    outcomes: list[object] = []
    lock = threading.Lock()

    def worker(index):
        barrier.wait()
        try:
            outcome = target(index)
        except Exception as exc:  # collected and asserted by the caller
            outcome = exc
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


def test_concurrent_settles_of_same_obligation_succeed_once(
    orchestrator, funded_account, obligation_factory, account_repo, transaction_repo
):
    funded_account(cents=10_000)
    obligation = obligation_factory(amount_cents=4_000)

    outcomes = _run_concurrently(8, lambda _: orchestrator.settle(USER_ID, obligation.id))

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(successes) == 1
    assert len(failures) == 7
    assert all(isinstance(f, AlreadyPaidError) for f in failures)
    assert account_repo.get_balance(USER_ID) == Decimal("60.00")
    settled = [e for e in transaction_repo.list_all(USER_ID) if e.related_scheduled_id]
    assert len(settled) == 1


def test_concurrent_settles_of_different_obligations_all_apply(
    orchestrator, funded_account, obligation_factory, account_repo, transaction_repo
):
    funded_account(cents=10_000)
    obligations = [obligation_factory(title=f"Bill {i}", amount_cents=1_000) for i in range(5)]

    outcomes = _run_concurrently(5, lambda i: orchestrator.settle(USER_ID, obligations[i].id))

    assert not [o for o in outcomes if isinstance(o, Exception)]
    assert account_repo.get_balance(USER_ID) == Decimal("50.00")
    assert transaction_repo.sum_amounts(USER_ID) == -5_000


def test_concurrent_settles_never_overdraw(
    orchestrator, funded_account, obligation_factory, account_repo, transaction_repo, schedule_repo
):
    funded_account(cents=5_000)
    obligations = [obligation_factory(title=f"Bill {i}", amount_cents=2_000) for i in range(3)]

    outcomes = _run_concurrently(3, lambda i: orchestrator.settle(USER_ID, obligations[i].id))

    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientFundsError)
    assert account_repo.get_balance(USER_ID) == Decimal("10.00")
    assert transaction_repo.sum_amounts(USER_ID) == -4_000
    assert len(schedule_repo.list_unpaid(USER_ID)) == 1
