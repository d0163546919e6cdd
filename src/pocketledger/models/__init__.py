"""SQLModel table exports."""

from .account import Account
from .scheduled import ScheduledObligation, SettlementState
from .transaction import Transaction

__all__ = [
    "Account",
    "ScheduledObligation",
    "SettlementState",
    "Transaction",
]
