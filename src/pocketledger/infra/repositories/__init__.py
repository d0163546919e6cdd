"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .schedule import SQLModelScheduleRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelScheduleRepository",
    "SQLModelTransactionRepository",
]
