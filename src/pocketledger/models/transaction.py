"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import from_cents


class Transaction(SQLModel, table=True):
    """A settled, immutable ledger entry, hand-entered or produced by settlement."""

    __tablename__: ClassVar[str] = "ledger_entry"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(nullable=False, index=True, max_length=128)
    title: str = Field(nullable=False, max_length=128)
    amount_cents: int = Field(
        nullable=False, description="Positive for inflow, negative for outflow"
    )
    occurred_at: date = Field(nullable=False, index=True)
    category: str = Field(nullable=False, max_length=32, index=True)
    description: str = Field(default="", max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    # Back-reference to the scheduled obligation this entry settles. Not a foreign
    # key: neither row owns the other. Unique so one obligation yields one entry.
    related_scheduled_id: Optional[int] = Field(default=None, unique=True)

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def is_income(self) -> bool:
        return self.amount_cents > 0
