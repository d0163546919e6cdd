"""Account repository protocol."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol

from ...models.account import Account


class AccountRepository(Protocol):
    """Repository owning the single balance value per user."""

    def get(self, user_id: str) -> Optional[Account]:
        """Retrieve an account, or None if it was never created."""
        ...

    def ensure_exists(self, user_id: str, *, timezone_name: str | None = None) -> Account:
        """Create the account with a zero balance unless it already exists."""
        ...

    def get_balance(self, user_id: str) -> Decimal:
        """Return the current balance."""
        ...

    def adjust_balance(self, user_id: str, delta_cents: int, *, floor_cents: int | None = None) -> Decimal:
        """Apply a relative change and return the new balance.

        With ``floor_cents`` the change is only applied if the resulting balance
        stays at or above the floor.
        """
        ...

    def set_timezone(self, user_id: str, timezone_name: str) -> Account:
        """Record the IANA timezone used to decide which day is "today"."""
        ...
