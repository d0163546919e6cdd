"""SQLModel implementation of the ledger (Transaction) repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy import delete, func
from sqlmodel import Session, select

from ...errors import ValidationError
from ...models.transaction import Transaction


def validate_entry(entry: Transaction) -> None:
    """Reject entries that must never reach the ledger."""

    if not entry.user_id or not entry.user_id.strip():
        raise ValidationError("A user id is required.")
    if not entry.title or not entry.title.strip():
        raise ValidationError("Please enter a title for the transaction.")
    if not entry.amount_cents:
        raise ValidationError("Transaction amount must not be zero.")
    if entry.occurred_at is None:
        raise ValidationError("Transaction date is required.")
    if entry.id is not None:
        raise ValidationError("Ledger entries are write-once; id must not be preset.")


class SQLModelTransactionRepository:
    """SQLModel-based, write-once ledger repository."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def append(self, entry: Transaction) -> int:
        """Persist a new ledger entry and return its id."""
        validate_entry(entry)
        entry.title = entry.title.strip()
        with self.session_factory() as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)
        assert entry.id is not None
        return entry.id

    def get_by_id(self, transaction_id: int, *, user_id: str) -> Optional[Transaction]:
        """Retrieve a ledger entry by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_by_related_scheduled_id(
        self, obligation_id: int, *, user_id: str
    ) -> Optional[Transaction]:
        """Return the entry produced by settling the given obligation."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Transaction)
                .where(Transaction.related_scheduled_id == obligation_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_recent(self, user_id: str, limit: int = 10) -> list[Transaction]:
        """List the most recent entries, newest first."""
        if limit <= 0:
            raise ValidationError("Limit must be positive.")
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())  # type: ignore
                .limit(limit)
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_all(self, user_id: str) -> list[Transaction]:
        """Every entry for the user in insertion order."""
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def sum_amounts(self, user_id: str) -> int:
        """Sum of all entry amounts for the user, in cents."""
        with self.session_factory() as session:
            total = session.exec(
                select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                    Transaction.user_id == user_id
                )
            ).one()
            return int(total)

    def retract(self, transaction_id: int, *, user_id: str, related_scheduled_id: int) -> bool:
        """Remove an entry appended by a settlement that is being rolled back.

        Only an entry that references ``related_scheduled_id`` can be removed,
        so manual entries are never touched.
        """
        with self.session_factory() as session:
            result = session.execute(
                delete(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
                .where(Transaction.related_scheduled_id == related_scheduled_id)
            )
            session.commit()
            return result.rowcount > 0


__all__ = ["SQLModelTransactionRepository", "validate_entry"]
