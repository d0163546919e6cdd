"""Account model holding the per-user balance."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import from_cents


class Account(SQLModel, table=True):
    """One balance per user, keyed by the identity provider's opaque user id."""

    __tablename__: ClassVar[str] = "account"

    user_id: str = Field(primary_key=True, max_length=128)
    balance_cents: int = Field(default=0, nullable=False)
    timezone_name: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(default=None)

    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)
