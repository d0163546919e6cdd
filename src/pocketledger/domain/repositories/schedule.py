"""Scheduled obligation repository protocol."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ...models.scheduled import ScheduledObligation


class ScheduleRepository(Protocol):
    """Repository for scheduled obligations."""

    def create(self, obligation: ScheduledObligation) -> int:
        """Persist a new unpaid obligation and return its id."""
        ...

    def get_by_id(self, obligation_id: int, *, user_id: str) -> Optional[ScheduledObligation]:
        """Retrieve an obligation by ID."""
        ...

    def mark_paid(self, obligation_id: int, paid_at: datetime, *, user_id: str) -> None:
        """Flip ``is_paid`` from false to true, or fail if it is already true."""
        ...

    def revert_paid(self, obligation_id: int, *, user_id: str) -> bool:
        """Flip ``is_paid`` back to false after a failed settlement."""
        ...

    def list_unpaid(self, user_id: str) -> list[ScheduledObligation]:
        """Unpaid obligations, earliest due first."""
        ...

    def list_due_on(self, user_id: str, day: date) -> list[ScheduledObligation]:
        """Unpaid obligations due on the given calendar day."""
        ...

    def list_overdue(self, user_id: str, today: date) -> list[ScheduledObligation]:
        """Unpaid obligations whose due date is before ``today``."""
        ...
