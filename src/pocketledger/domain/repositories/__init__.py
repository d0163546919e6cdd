"""Repository protocol definitions for domain layer."""

from .account import AccountRepository
from .schedule import ScheduleRepository
from .transaction import TransactionRepository

__all__ = [
    "AccountRepository",
    "ScheduleRepository",
    "TransactionRepository",
]
