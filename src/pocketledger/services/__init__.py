"""Service module exports."""

from . import (
    clock,
    ledger_service,
    queries,
    scheduling,
    settlement,
)

__all__ = [
    "clock",
    "ledger_service",
    "queries",
    "scheduling",
    "settlement",
]
