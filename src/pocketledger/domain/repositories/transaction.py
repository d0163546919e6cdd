"""Transaction (ledger) repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.transaction import Transaction


class TransactionRepository(Protocol):
    """Write-once store of settled ledger entries.

    There is deliberately no update or delete. ``retract`` exists only so the
    settlement orchestrator can undo an entry it appended in the same call.
    """

    def append(self, entry: Transaction) -> int:
        """Persist a new entry and return its store-assigned id."""
        ...

    def get_by_id(self, transaction_id: int, *, user_id: str) -> Optional[Transaction]:
        """Retrieve a ledger entry by ID."""
        ...

    def get_by_related_scheduled_id(self, obligation_id: int, *, user_id: str) -> Optional[Transaction]:
        """Return the entry that settled the given obligation, if any."""
        ...

    def list_recent(self, user_id: str, limit: int = 10) -> list[Transaction]:
        """Most recent entries, newest ``occurred_at`` first."""
        ...

    def sum_amounts(self, user_id: str) -> int:
        """Sum of all entry amounts for the user, in cents."""
        ...

    def retract(self, transaction_id: int, *, user_id: str, related_scheduled_id: int) -> bool:
        """Remove an entry appended by an unfinished settlement."""
        ...
