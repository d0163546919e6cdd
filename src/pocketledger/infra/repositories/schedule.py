"""SQLModel implementation of the scheduled obligation repository."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ...errors import AlreadyPaidError, NotFoundError, ValidationError
from ...models.scheduled import ScheduledObligation


def validate_obligation(obligation: ScheduledObligation) -> None:
    """Reject obligations that are malformed before anything is written."""

    if not obligation.user_id or not obligation.user_id.strip():
        raise ValidationError("A user id is required.")
    if not obligation.title or not obligation.title.strip():
        raise ValidationError("Please enter a title for the scheduled payment.")
    if obligation.amount_cents is None or obligation.amount_cents <= 0:
        raise ValidationError("Please enter a valid amount greater than zero.")
    if not obligation.category or not obligation.category.strip():
        raise ValidationError("Please select a category.")
    if obligation.due_at is None:
        raise ValidationError("A due date is required.")
    if obligation.is_paid or obligation.paid_at is not None:
        raise ValidationError("New scheduled payments must start unpaid.")


class SQLModelScheduleRepository:
    """SQLModel-based repository for scheduled obligations.

    ``mark_paid`` and ``revert_paid`` are conditional updates on ``is_paid``;
    the row count tells the caller whether it won.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def create(self, obligation: ScheduledObligation) -> int:
        """Persist a new scheduled obligation."""
        validate_obligation(obligation)
        obligation.title = obligation.title.strip()
        with self.session_factory() as session:
            session.add(obligation)
            session.commit()
            session.refresh(obligation)
            session.expunge(obligation)
        assert obligation.id is not None
        return obligation.id

    def get_by_id(self, obligation_id: int, *, user_id: str) -> Optional[ScheduledObligation]:
        """Retrieve an obligation by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(ScheduledObligation)
                .where(ScheduledObligation.id == obligation_id)
                .where(ScheduledObligation.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def mark_paid(self, obligation_id: int, paid_at: datetime, *, user_id: str) -> None:
        """Mark the obligation paid if, and only if, it is currently unpaid."""
        with self.session_factory() as session:
            result = session.execute(
                update(ScheduledObligation)
                .where(ScheduledObligation.id == obligation_id)
                .where(ScheduledObligation.user_id == user_id)
                .where(ScheduledObligation.is_paid == False)  # noqa: E712
                .values(is_paid=True, paid_at=paid_at)
            )
            if result.rowcount == 1:
                session.commit()
                return
            session.rollback()
            exists = session.exec(
                select(ScheduledObligation.id)
                .where(ScheduledObligation.id == obligation_id)
                .where(ScheduledObligation.user_id == user_id)
            ).first()
        if exists is None:
            raise NotFoundError(f"Scheduled payment {obligation_id} was not found.")
        raise AlreadyPaidError(obligation_id)

    def revert_paid(self, obligation_id: int, *, user_id: str) -> bool:
        """Return a paid obligation to the scheduled state (settlement rollback)."""
        with self.session_factory() as session:
            result = session.execute(
                update(ScheduledObligation)
                .where(ScheduledObligation.id == obligation_id)
                .where(ScheduledObligation.user_id == user_id)
                .where(ScheduledObligation.is_paid == True)  # noqa: E712
                .values(is_paid=False, paid_at=None)
            )
            session.commit()
            return result.rowcount == 1

    def list_unpaid(self, user_id: str) -> list[ScheduledObligation]:
        """Unpaid obligations ordered by due date, earliest first."""
        with self.session_factory() as session:
            statement = (
                select(ScheduledObligation)
                .where(ScheduledObligation.user_id == user_id)
                .where(ScheduledObligation.is_paid == False)  # noqa: E712
                .order_by(ScheduledObligation.due_at, ScheduledObligation.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_due_on(self, user_id: str, day: date) -> list[ScheduledObligation]:
        """Unpaid obligations due on ``day``."""
        with self.session_factory() as session:
            statement = (
                select(ScheduledObligation)
                .where(ScheduledObligation.user_id == user_id)
                .where(ScheduledObligation.is_paid == False)  # noqa: E712
                .where(ScheduledObligation.due_at == day)
                .order_by(ScheduledObligation.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_overdue(self, user_id: str, today: date) -> list[ScheduledObligation]:
        """Unpaid obligations due before ``today``."""
        with self.session_factory() as session:
            statement = (
                select(ScheduledObligation)
                .where(ScheduledObligation.user_id == user_id)
                .where(ScheduledObligation.is_paid == False)  # noqa: E712
                .where(ScheduledObligation.due_at < today)
                .order_by(ScheduledObligation.due_at, ScheduledObligation.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows


__all__ = ["SQLModelScheduleRepository", "validate_obligation"]
