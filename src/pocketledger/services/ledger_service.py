"""Ledger helpers for recording transactions, deposits and summaries."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..constants.categories import (
    DEFAULT_CATEGORY,
    DEPOSIT_CATEGORY,
    is_known_category,
    normalize_category,
)
from ..domain.repositories import AccountRepository, TransactionRepository
from ..errors import ValidationError
from ..infra.repositories.transaction import validate_entry
from ..logging_config import get_logger
from ..models.transaction import Transaction
from ..money import MoneyLike, ZERO, from_cents, to_cents
from .clock import coerce_date

logger = get_logger(__name__)

TRANSACTION_TYPES = {"expense", "income"}


def resolve_category(raw_value: Optional[str], *, default: str | None = None) -> str:
    """Normalize a category tag and reject unknown or missing ones."""

    category = normalize_category(raw_value) or default
    if not category:
        raise ValidationError("Please select a category.")
    if not is_known_category(category):
        raise ValidationError(f"Unknown category: {raw_value!r}")
    return category


def signed_cents(amount: MoneyLike, transaction_type: Optional[str]) -> int:
    """Return the ledger amount in cents.

    Without a transaction type the amount is taken as already signed. With
    ``expense``/``income`` it must be a positive magnitude and the sign is
    applied here, the way the manual entry form does it.
    """

    cents = to_cents(amount)
    if transaction_type is None:
        return cents
    kind = transaction_type.strip().lower()
    if kind not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {transaction_type!r}")
    if cents <= 0:
        raise ValidationError("Please enter a valid amount")
    return -cents if kind == "expense" else cents


def record_transaction(
    account_repo: AccountRepository,
    transaction_repo: TransactionRepository,
    *,
    user_id: str,
    title: str,
    amount: MoneyLike,
    occurred_at: date | datetime | str,
    category: Optional[str] = DEFAULT_CATEGORY,
    description: str = "",
    transaction_type: Optional[str] = None,
) -> tuple[Transaction, Decimal]:
    """Write a manual ledger entry and apply it to the balance.

    The balance is adjusted first; if the append then fails the adjustment is
    reversed so the balance keeps matching the ledger. Ledger entries are
    write-once and only settlement entries can be retracted, so a relative
    balance adjustment is the only step here that can be undone. Returns the
    stored entry and the new balance.
    """

    try:
        day = coerce_date(occurred_at)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {occurred_at!r}") from exc

    entry = Transaction(
        user_id=user_id,
        title=(title or "").strip(),
        amount_cents=signed_cents(amount, transaction_type),
        occurred_at=day,
        category=resolve_category(category, default=DEFAULT_CATEGORY),
        description=(description or "").strip(),
    )
    # Reject before the balance moves.
    validate_entry(entry)

    balance = account_repo.adjust_balance(user_id, entry.amount_cents)
    try:
        transaction_repo.append(entry)
    except Exception:
        logger.warning(
            "Ledger append failed; reversing balance adjustment",
            extra={"user_id": user_id, "amount_cents": entry.amount_cents},
            exc_info=True,
        )
        account_repo.adjust_balance(user_id, -entry.amount_cents)
        raise

    logger.info(
        "Transaction recorded",
        extra={"user_id": user_id, "transaction_id": entry.id, "amount_cents": entry.amount_cents},
    )
    return entry, balance


def deposit(
    account_repo: AccountRepository,
    transaction_repo: TransactionRepository,
    *,
    user_id: str,
    amount: MoneyLike,
    occurred_at: date | datetime | str,
    note: str = "",
) -> tuple[Transaction, Decimal]:
    """Add funds to the balance, recorded as an income entry."""

    return record_transaction(
        account_repo,
        transaction_repo,
        user_id=user_id,
        title="Added balance",
        amount=amount,
        occurred_at=occurred_at,
        category=DEPOSIT_CATEGORY,
        description=note,
        transaction_type="income",
    )


def compute_summary(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Compute income, expenses, and net totals from the provided transactions."""

    rows = list(transactions)
    income = sum((from_cents(t.amount_cents) for t in rows if t.is_income), ZERO)
    expenses = sum((from_cents(-t.amount_cents) for t in rows if not t.is_income), ZERO)
    return {"income": income, "expenses": expenses, "net": income - expenses}


__all__ = [
    "TRANSACTION_TYPES",
    "compute_summary",
    "deposit",
    "record_transaction",
    "resolve_category",
    "signed_cents",
]
