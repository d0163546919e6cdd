"""Creating scheduled obligations and due-date helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from ..domain.repositories import ScheduleRepository
from ..errors import ValidationError
from ..logging_config import get_logger
from ..models.scheduled import ScheduledObligation
from ..money import MoneyLike, to_cents
from .clock import coerce_date
from .ledger_service import resolve_category

logger = get_logger(__name__)

HIGH_URGENCY_DAYS = 3
MEDIUM_URGENCY_DAYS = 7


def schedule_obligation(
    schedule_repo: ScheduleRepository,
    *,
    user_id: str,
    title: str,
    amount: MoneyLike,
    due_at: date | datetime | str,
    category: str | None,
    description: str = "",
) -> ScheduledObligation:
    """Validate the form fields and store a new unpaid obligation.

    ``amount`` is the magnitude of the eventual payment; whether settlement
    debits or credits the balance follows from the category.
    """

    try:
        due_day = coerce_date(due_at)
    except ValueError as exc:
        raise ValidationError(f"Invalid due date: {due_at!r}") from exc

    cents = to_cents(amount)
    if cents <= 0:
        raise ValidationError("Please enter a valid amount greater than zero.")

    obligation = ScheduledObligation(
        user_id=user_id,
        title=(title or "").strip(),
        amount_cents=cents,
        due_at=due_day,
        category=resolve_category(category),
        description=(description or "").strip(),
        is_paid=False,
    )
    schedule_repo.create(obligation)
    logger.info(
        "Obligation scheduled",
        extra={"user_id": user_id, "obligation_id": obligation.id, "due_at": due_day},
    )
    return obligation


def days_until(due_at: date, today: date) -> int:
    """Whole days from *today* to *due_at*; negative when overdue."""

    return (due_at - today).days


def urgency_level(days: int) -> str:
    """Map days-until-due onto the reminder urgency buckets."""

    if days <= HIGH_URGENCY_DAYS:
        return "high"
    if days <= MEDIUM_URGENCY_DAYS:
        return "medium"
    return "low"


@dataclass(slots=True)
class UpcomingItem:
    """An unpaid obligation annotated for reminder lists."""

    obligation: ScheduledObligation
    days_until: int
    urgency: str

    @property
    def is_due_today(self) -> bool:
        return self.days_until == 0

    @property
    def is_overdue(self) -> bool:
        return self.days_until < 0

    @property
    def amount(self) -> Decimal:
        return self.obligation.amount

    @property
    def due_label(self) -> str:
        if self.days_until < 0:
            overdue = -self.days_until
            return f"{overdue} day{'s' if overdue != 1 else ''} overdue"
        if self.days_until == 0:
            return "Today"
        if self.days_until == 1:
            return "Tomorrow"
        return f"{self.days_until} days"


def annotate_upcoming(obligations: list[ScheduledObligation], today: date) -> list[UpcomingItem]:
    """Attach days-until and urgency to each obligation, preserving order."""

    items: list[UpcomingItem] = []
    for obligation in obligations:
        days = days_until(obligation.due_at, today)
        items.append(UpcomingItem(obligation=obligation, days_until=days, urgency=urgency_level(days)))
    return items


__all__ = [
    "HIGH_URGENCY_DAYS",
    "MEDIUM_URGENCY_DAYS",
    "UpcomingItem",
    "annotate_upcoming",
    "days_until",
    "schedule_obligation",
    "urgency_level",
]
