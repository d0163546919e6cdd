"""Settlement of scheduled obligations.

Settling turns one scheduled obligation into a ledger entry and moves the
balance by the same amount. The three writes go to three repositories, each
committing on its own, so all-or-nothing visibility is provided by
compensation:

* the obligation is claimed first with a conditional update on ``is_paid``;
  whoever loses that race gets :class:`AlreadyPaidError`,
* the ledger entry is appended next,
* the balance is adjusted last with a relative update.

If a later step fails the earlier ones are undone in reverse order before the
error is raised. A failure while undoing is fatal and logged at CRITICAL.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from ..domain.repositories import AccountRepository, ScheduleRepository, TransactionRepository
from ..errors import (
    AlreadyPaidError,
    InsufficientFundsError,
    NotFoundError,
    SettlementFailedError,
)
from ..logging_config import get_logger
from ..models.scheduled import ScheduledObligation, SettlementState
from ..models.transaction import Transaction
from ..money import from_cents, to_cents
from .clock import Clock, local_today, utc_now

logger = get_logger(__name__)

# Storage-level failures; OSError covers TimeoutError.
STORAGE_ERRORS = (SQLAlchemyError, OSError)


@dataclass(frozen=True, slots=True)
class SettlementResult:
    """Outcome of a successful settlement."""

    obligation_id: int
    transaction_id: int
    balance: Decimal
    amount: Decimal
    paid_at: datetime


def settlement_description(obligation: ScheduledObligation) -> str:
    return f"Payment for: {obligation.description or obligation.title}"


class SettlementOrchestrator:
    """Atomically settles scheduled obligations. Holds no state between calls."""

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        schedule_repo: ScheduleRepository,
        *,
        clock: Clock = utc_now,
        default_timezone: str | None = None,
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.schedule_repo = schedule_repo
        self.clock = clock
        self.default_timezone = default_timezone

    def settle(self, user_id: str, obligation_id: int) -> SettlementResult:
        """Pay a scheduled obligation.

        Raises:
            NotFoundError: the obligation does not exist for this user
            AlreadyPaidError: it is already paid, or a concurrent call won
            InsufficientFundsError: the balance does not cover an outflow
            SettlementFailedError: a storage failure; state was rolled back
                unless ``fatal`` is set
        """
        log_extra = {"user_id": user_id, "obligation_id": obligation_id}

        try:
            obligation, balance_cents, timezone_name = self._load(user_id, obligation_id)
        except STORAGE_ERRORS as exc:
            logger.error("Settlement aborted while loading state", extra=log_extra, exc_info=True)
            raise SettlementFailedError(
                "Could not load the payment or balance. Please try again."
            ) from exc

        ledger_cents = obligation.signed_amount_cents
        if ledger_cents < 0 and balance_cents < obligation.amount_cents:
            logger.info("Settlement rejected: insufficient funds", extra=log_extra)
            raise InsufficientFundsError(from_cents(balance_cents), obligation.amount)

        paid_at = self.clock()
        try:
            self.schedule_repo.mark_paid(obligation_id, paid_at, user_id=user_id)
        except (AlreadyPaidError, NotFoundError):
            logger.info("Settlement rejected: obligation already claimed", extra=log_extra)
            raise
        except STORAGE_ERRORS as exc:
            logger.error("Could not mark obligation paid", extra=log_extra, exc_info=True)
            raise SettlementFailedError(
                "Could not record the payment. Please try again."
            ) from exc
        logger.info(
            "Settlement state change",
            extra={**log_extra, "state": SettlementState.SETTLING.value},
        )

        entry = Transaction(
            user_id=user_id,
            title=obligation.title,
            amount_cents=ledger_cents,
            occurred_at=local_today(paid_at, timezone_name),
            category=obligation.category,
            description=settlement_description(obligation),
            related_scheduled_id=obligation_id,
        )
        try:
            transaction_id = self.transaction_repo.append(entry)
        except Exception as exc:
            logger.error("Ledger append failed during settlement", extra=log_extra, exc_info=True)
            self._roll_back(user_id, obligation_id, transaction_id=None)
            raise SettlementFailedError(
                "Could not record the payment. Nothing was charged; please try again."
            ) from exc

        floor_cents = 0 if ledger_cents < 0 else None
        try:
            new_balance = self.account_repo.adjust_balance(
                user_id, ledger_cents, floor_cents=floor_cents
            )
        except InsufficientFundsError:
            # A concurrent settlement spent the funds after our check.
            logger.info("Settlement rejected at debit: insufficient funds", extra=log_extra)
            self._roll_back(user_id, obligation_id, transaction_id=transaction_id)
            raise
        except Exception as exc:
            logger.error("Balance update failed during settlement", extra=log_extra, exc_info=True)
            self._roll_back(user_id, obligation_id, transaction_id=transaction_id)
            raise SettlementFailedError(
                "Could not update your balance. Nothing was charged; please try again."
            ) from exc

        logger.info(
            "Settlement state change",
            extra={
                **log_extra,
                "state": SettlementState.SETTLED.value,
                "transaction_id": transaction_id,
                "amount_cents": ledger_cents,
            },
        )
        return SettlementResult(
            obligation_id=obligation_id,
            transaction_id=transaction_id,
            balance=new_balance,
            amount=from_cents(ledger_cents),
            paid_at=paid_at,
        )

    def _load(self, user_id: str, obligation_id: int) -> tuple[ScheduledObligation, int, str | None]:
        obligation = self.schedule_repo.get_by_id(obligation_id, user_id=user_id)
        if obligation is None:
            raise NotFoundError(f"Scheduled payment {obligation_id} was not found.")
        if obligation.is_paid:
            raise AlreadyPaidError(obligation_id)

        balance = self.account_repo.get_balance(user_id)
        account = self.account_repo.get(user_id)
        timezone_name = (account.timezone_name if account else None) or self.default_timezone
        return obligation, to_cents(balance), timezone_name

    def _roll_back(self, user_id: str, obligation_id: int, *, transaction_id: int | None) -> None:
        """Undo the steps already applied, newest first."""
        log_extra = {
            "user_id": user_id,
            "obligation_id": obligation_id,
            "transaction_id": transaction_id,
        }
        try:
            if transaction_id is not None:
                if not self.transaction_repo.retract(
                    transaction_id, user_id=user_id, related_scheduled_id=obligation_id
                ):
                    raise RuntimeError(f"ledger entry {transaction_id} missing during rollback")
            if not self.schedule_repo.revert_paid(obligation_id, user_id=user_id):
                raise RuntimeError(f"obligation {obligation_id} was not paid during rollback")
        except Exception as exc:
            logger.critical(
                "Settlement rollback failed; ledger needs operator attention",
                extra=log_extra,
                exc_info=True,
            )
            raise SettlementFailedError(
                "Payment could not be completed or undone. Support has been notified.",
                fatal=True,
            ) from exc

        logger.warning(
            "Settlement rolled back",
            extra={**log_extra, "state": SettlementState.SCHEDULED.value},
        )


__all__ = ["STORAGE_ERRORS", "SettlementOrchestrator", "SettlementResult", "settlement_description"]
