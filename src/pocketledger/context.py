"""Application context for dependency injection.

The context is the surface presentation code calls into: it wires the engine,
repositories and services together and exposes the ledger operations with the
user id passed explicitly on every call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelAccountRepository,
    SQLModelScheduleRepository,
    SQLModelTransactionRepository,
)
from .logging_config import get_logger
from .models.scheduled import ScheduledObligation
from .models.transaction import Transaction
from .money import MoneyLike
from .services import ledger_service, scheduling
from .services.clock import Clock, utc_now
from .services.queries import LedgerQueries, ReminderSummary
from .services.scheduling import UpcomingItem
from .services.settlement import SettlementOrchestrator, SettlementResult

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Centralized application context with repositories and services."""

    # Configuration
    config: BaseConfig

    # Database
    engine: Any
    session_factory: Callable[[], Session]

    # Repositories
    account_repo: SQLModelAccountRepository
    transaction_repo: SQLModelTransactionRepository
    schedule_repo: SQLModelScheduleRepository

    # Services
    settlement: SettlementOrchestrator
    queries: LedgerQueries
    clock: Clock = utc_now

    # -- writes -------------------------------------------------------------

    def schedule_obligation(
        self,
        user_id: str,
        *,
        title: str,
        amount: MoneyLike,
        due_at: date | datetime | str,
        category: str | None,
        description: str = "",
    ) -> ScheduledObligation:
        return scheduling.schedule_obligation(
            self.schedule_repo,
            user_id=user_id,
            title=title,
            amount=amount,
            due_at=due_at,
            category=category,
            description=description,
        )

    def record_transaction(
        self,
        user_id: str,
        *,
        title: str,
        amount: MoneyLike,
        occurred_at: date | datetime | str | None = None,
        category: str | None = "general",
        description: str = "",
        transaction_type: str | None = None,
    ) -> tuple[Transaction, Decimal]:
        return ledger_service.record_transaction(
            self.account_repo,
            self.transaction_repo,
            user_id=user_id,
            title=title,
            amount=amount,
            occurred_at=occurred_at or self.queries.today(user_id),
            category=category,
            description=description,
            transaction_type=transaction_type,
        )

    def deposit(
        self,
        user_id: str,
        amount: MoneyLike,
        *,
        note: str = "",
        occurred_at: date | datetime | str | None = None,
    ) -> tuple[Transaction, Decimal]:
        return ledger_service.deposit(
            self.account_repo,
            self.transaction_repo,
            user_id=user_id,
            amount=amount,
            occurred_at=occurred_at or self.queries.today(user_id),
            note=note,
        )

    def settle(self, user_id: str, obligation_id: int) -> SettlementResult:
        return self.settlement.settle(user_id, obligation_id)

    def set_timezone(self, user_id: str, timezone_name: str) -> None:
        self.account_repo.set_timezone(user_id, timezone_name)

    # -- reads --------------------------------------------------------------

    def get_balance(self, user_id: str) -> Decimal:
        return self.queries.get_balance(user_id)

    def recent_transactions(self, user_id: str, limit: Optional[int] = None) -> list[Transaction]:
        return self.queries.recent_transactions(user_id, limit)

    def upcoming(self, user_id: str) -> list[ScheduledObligation]:
        return self.queries.upcoming(user_id)

    def upcoming_with_urgency(self, user_id: str) -> list[UpcomingItem]:
        return self.queries.upcoming_with_urgency(user_id)

    def due_today(self, user_id: str) -> list[ScheduledObligation]:
        return self.queries.due_today(user_id)

    def reminder_summary(self, user_id: str) -> ReminderSummary:
        return self.queries.reminder_summary(user_id)

    def dispose(self) -> None:
        """Release pooled database connections."""
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None, *, clock: Clock = utc_now
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    account_repo = SQLModelAccountRepository(
        session_factory,
        auto_create=config.AUTO_CREATE_ACCOUNTS,
        default_timezone=config.DEFAULT_TIMEZONE,
    )
    transaction_repo = SQLModelTransactionRepository(session_factory)
    schedule_repo = SQLModelScheduleRepository(session_factory)

    settlement = SettlementOrchestrator(
        account_repo,
        transaction_repo,
        schedule_repo,
        clock=clock,
        default_timezone=config.DEFAULT_TIMEZONE,
    )
    queries = LedgerQueries(
        account_repo,
        transaction_repo,
        schedule_repo,
        clock=clock,
        default_timezone=config.DEFAULT_TIMEZONE,
        recent_limit=config.RECENT_LIMIT,
    )

    logger.debug("Application context created", extra={"database_url": config.DATABASE_URL})
    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        account_repo=account_repo,
        transaction_repo=transaction_repo,
        schedule_repo=schedule_repo,
        settlement=settlement,
        queries=queries,
        clock=clock,
    )
