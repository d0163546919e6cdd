"""Error taxonomy surfaced by the ledger core.

Every error carries a human-readable message suitable for showing to the user.
Storage-level failures (SQLAlchemy errors) are not wrapped by the stores; the
settlement orchestrator converts them into :class:`SettlementFailedError`.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    """Base class for all ledger core errors."""

    kind = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed input; nothing was written."""

    kind = "validation_error"


class NotFoundError(LedgerError):
    """Referenced account, transaction or obligation does not exist."""

    kind = "not_found"


class AlreadyPaidError(LedgerError):
    """The scheduled obligation is already settled."""

    kind = "already_paid"

    def __init__(self, obligation_id: int, message: str | None = None):
        super().__init__(message or f"Scheduled payment {obligation_id} has already been paid.")
        self.obligation_id = obligation_id


class InsufficientFundsError(LedgerError):
    """The balance does not cover the requested outflow; nothing was changed."""

    kind = "insufficient_funds"

    def __init__(self, balance: Decimal, required: Decimal):
        super().__init__(
            f"Insufficient funds: balance {balance:.2f} does not cover {required:.2f}."
        )
        self.balance = balance
        self.required = required


class SettlementFailedError(LedgerError):
    """Storage failure during settlement.

    When ``fatal`` is false the rollback completed and the caller may retry.
    When ``fatal`` is true a compensation step failed and the stores may be
    inconsistent until an operator intervenes.
    """

    kind = "settlement_failed"

    def __init__(self, message: str, *, fatal: bool = False):
        super().__init__(message)
        self.fatal = fatal

    @property
    def retryable(self) -> bool:
        return not self.fatal


__all__ = [
    "AlreadyPaidError",
    "InsufficientFundsError",
    "LedgerError",
    "NotFoundError",
    "SettlementFailedError",
    "ValidationError",
]
