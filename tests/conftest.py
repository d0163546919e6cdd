"""Pytest configuration and shared fixtures for PocketLedger tests.

This module provides database fixtures, a controllable clock, and data factories
for testing repositories, settlement and queries without touching the real
application database.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from pocketledger.config import TestingConfig
from pocketledger.context import create_app_context
from pocketledger.infra.database import create_db_engine, create_session_factory, init_database
from pocketledger.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelScheduleRepository,
    SQLModelTransactionRepository,
)
from pocketledger.models import ScheduledObligation, Transaction
from pocketledger.services.settlement import SettlementOrchestrator

USER_ID = "user-123"
OTHER_USER_ID = "user-456"

# 15:00 UTC on a Friday; the same calendar day in most western timezones.
FIXED_NOW = datetime(2025, 6, 20, 15, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock whose current time tests can move."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer environment settings out of the tests."""
    for name in (
        "POCKETLEDGER_DATABASE_URL",
        "POCKETLEDGER_DEFAULT_TIMEZONE",
        "POCKETLEDGER_STORE_TIMEOUT",
        "POCKETLEDGER_AUTO_CREATE_ACCOUNTS",
        "POCKETLEDGER_RECENT_LIMIT",
        "POCKETLEDGER_DEV_MODE",
        "POCKETLEDGER_DATA_DIR",
        "POCKETLEDGER_USER",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(tmp_path):
    """Testing configuration rooted in a per-test temporary directory."""
    return TestingConfig(tmp_path)


@pytest.fixture(scope="function")
def db_engine(config):
    """Create an isolated file-backed SQLite database for each test.

    A file (not ``:memory:``) is used so that threads in the concurrency tests
    each get their own connection to the same database.

    Yields:
        Engine: SQLModel engine with the schema created
    """
    engine = create_db_engine(config)
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Factory returning transactional session scopes, as the repositories expect."""
    return create_session_factory(db_engine)


@pytest.fixture
def account_repo(session_factory):
    return SQLModelAccountRepository(session_factory, default_timezone="UTC")


@pytest.fixture
def transaction_repo(session_factory):
    return SQLModelTransactionRepository(session_factory)


@pytest.fixture
def schedule_repo(session_factory):
    return SQLModelScheduleRepository(session_factory)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def orchestrator(account_repo, transaction_repo, schedule_repo, clock):
    return SettlementOrchestrator(
        account_repo,
        transaction_repo,
        schedule_repo,
        clock=clock,
        default_timezone="UTC",
    )


@pytest.fixture
def app_ctx(config, clock):
    """Fully wired application context using the frozen clock."""
    ctx = create_app_context(config, clock=clock)
    yield ctx
    ctx.dispose()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def funded_account(account_repo):
    """Factory that creates an account and sets its opening balance in cents."""

    def _fund(user_id: str = USER_ID, cents: int = 10_000):
        account_repo.ensure_exists(user_id)
        if cents:
            account_repo.adjust_balance(user_id, cents)
        return account_repo.get(user_id)

    return _fund


@pytest.fixture
def obligation_factory(schedule_repo):
    """Factory for persisted, unpaid scheduled obligations.

    Returns:
        Callable: Function that creates and returns a ScheduledObligation
    """

    def _create_obligation(
        title: str = "Rent",
        amount_cents: int = 4_000,
        due_at: date = date(2025, 6, 20),
        category: str = "housing",
        description: str = "",
        user_id: str = USER_ID,
    ) -> ScheduledObligation:
        obligation = ScheduledObligation(
            user_id=user_id,
            title=title,
            amount_cents=amount_cents,
            due_at=due_at,
            category=category,
            description=description,
        )
        schedule_repo.create(obligation)
        return obligation

    return _create_obligation


@pytest.fixture
def entry_factory(transaction_repo):
    """Factory for ledger entries appended directly to the store."""

    def _create_entry(
        title: str = "Coffee",
        amount_cents: int = -450,
        occurred_at: date = date(2025, 6, 20),
        category: str = "food",
        user_id: str = USER_ID,
        related_scheduled_id: int | None = None,
    ) -> Transaction:
        entry = Transaction(
            user_id=user_id,
            title=title,
            amount_cents=amount_cents,
            occurred_at=occurred_at,
            category=category,
            related_scheduled_id=related_scheduled_id,
        )
        transaction_repo.append(entry)
        return entry

    return _create_entry
