"""Scheduled (future-dated, unpaid) obligations."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..constants.categories import is_income_category
from ..money import from_cents


class SettlementState(str, Enum):
    """Lifecycle of a scheduled obligation.

    ``SETTLING`` only exists while a settlement call is in flight; it is never
    persisted, so a stored obligation is always either scheduled or settled.
    """

    SCHEDULED = "scheduled"
    SETTLING = "settling"
    SETTLED = "settled"


class ScheduledObligation(SQLModel, table=True):
    """An expected payment that has not been made yet."""

    __tablename__: ClassVar[str] = "scheduled_obligation"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(nullable=False, index=True, max_length=128)
    title: str = Field(nullable=False, max_length=128)
    amount_cents: int = Field(nullable=False, description="Magnitude; settlement applies the sign")
    due_at: date = Field(nullable=False, index=True)
    category: str = Field(nullable=False, max_length=32)
    description: str = Field(default="", max_length=255)
    is_paid: bool = Field(default=False, nullable=False, index=True)
    paid_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def is_income(self) -> bool:
        return is_income_category(self.category)

    @property
    def signed_amount_cents(self) -> int:
        """Ledger amount produced when this obligation settles."""
        return self.amount_cents if self.is_income else -self.amount_cents

    @property
    def state(self) -> SettlementState:
        return SettlementState.SETTLED if self.is_paid else SettlementState.SCHEDULED
