"""Read-side views over the ledger, schedule and balance."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from ..domain.repositories import AccountRepository, ScheduleRepository, TransactionRepository
from ..errors import ValidationError
from ..models.scheduled import ScheduledObligation
from ..models.transaction import Transaction
from .clock import Clock, local_today, utc_now
from .ledger_service import compute_summary
from .scheduling import UpcomingItem, annotate_upcoming


@dataclass(slots=True)
class ReminderSummary:
    """Input for the notification badge: what is due today."""

    count: int
    message: str
    items: list[ScheduledObligation] = field(default_factory=list)


def reminder_message(count: int) -> str:
    if count == 0:
        return "No transactions due today"
    return f"{count} transaction{'s' if count != 1 else ''} due today"


class LedgerQueries:
    """Stateless query facade; every call reads the stores afresh."""

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        schedule_repo: ScheduleRepository,
        *,
        clock: Clock = utc_now,
        default_timezone: str | None = None,
        recent_limit: int = 10,
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.schedule_repo = schedule_repo
        self.clock = clock
        self.default_timezone = default_timezone
        self.recent_limit = recent_limit

    def today(self, user_id: str) -> date:
        """Current calendar day in the account's timezone."""
        account = self.account_repo.get(user_id)
        timezone_name = (account.timezone_name if account else None) or self.default_timezone
        return local_today(self.clock(), timezone_name)

    def get_balance(self, user_id: str) -> Decimal:
        return self.account_repo.get_balance(user_id)

    def recent_transactions(self, user_id: str, limit: Optional[int] = None) -> list[Transaction]:
        limit = self.recent_limit if limit is None else limit
        if limit <= 0:
            raise ValidationError("Limit must be positive.")
        return self.transaction_repo.list_recent(user_id, limit)

    def upcoming(self, user_id: str) -> list[ScheduledObligation]:
        return self.schedule_repo.list_unpaid(user_id)

    def upcoming_with_urgency(self, user_id: str) -> list[UpcomingItem]:
        return annotate_upcoming(self.schedule_repo.list_unpaid(user_id), self.today(user_id))

    def overdue(self, user_id: str) -> list[ScheduledObligation]:
        return self.schedule_repo.list_overdue(user_id, self.today(user_id))

    def due_today(self, user_id: str) -> list[ScheduledObligation]:
        return self.schedule_repo.list_due_on(user_id, self.today(user_id))

    def due_today_count(self, user_id: str) -> int:
        return len(self.due_today(user_id))

    def reminder_summary(self, user_id: str) -> ReminderSummary:
        items = self.due_today(user_id)
        return ReminderSummary(count=len(items), message=reminder_message(len(items)), items=items)

    def ledger_summary(self, user_id: str, limit: Optional[int] = None) -> dict[str, Decimal]:
        """Income, expenses and net over the most recent entries."""
        return compute_summary(self.recent_transactions(user_id, limit))


__all__ = ["LedgerQueries", "ReminderSummary", "reminder_message"]
