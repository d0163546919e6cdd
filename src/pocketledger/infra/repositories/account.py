"""SQLModel implementation of Account repository."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...config import validate_timezone
from ...errors import InsufficientFundsError, NotFoundError, ValidationError
from ...logging_config import get_logger
from ...models.account import Account
from ...money import from_cents

logger = get_logger(__name__)


def _require_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("A user id is required.")
    return user_id


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation.

    Balance changes are issued as ``balance = balance + delta`` so concurrent
    adjustments for the same user commute and none is lost.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        auto_create: bool = True,
        default_timezone: str | None = None,
    ):
        """Initialize with a session factory."""
        self.session_factory = session_factory
        self.auto_create = auto_create
        self.default_timezone = default_timezone

    def get(self, user_id: str) -> Optional[Account]:
        """Retrieve an account by user id."""
        with self.session_factory() as session:
            account = session.get(Account, user_id)
            if account:
                session.expunge(account)
            return account

    def ensure_exists(self, user_id: str, *, timezone_name: str | None = None) -> Account:
        """Create the account lazily with a zero balance; never touches an existing one."""
        _require_user_id(user_id)
        existing = self.get(user_id)
        if existing is not None:
            return existing

        tz = timezone_name or self.default_timezone
        if tz is not None:
            try:
                validate_timezone(tz)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        try:
            with self.session_factory() as session:
                account = Account(user_id=user_id, balance_cents=0, timezone_name=tz)
                session.add(account)
                session.commit()
                session.refresh(account)
                session.expunge(account)
        except IntegrityError:
            # Another caller created it between our read and insert.
            account = self.get(user_id)
            if account is None:
                raise
            return account
        logger.info("Account created", extra={"user_id": user_id})
        return account

    def _get_or_missing(self, user_id: str) -> Account:
        if self.auto_create:
            return self.ensure_exists(user_id)
        account = self.get(_require_user_id(user_id))
        if account is None:
            raise NotFoundError(f"No account exists for user {user_id!r}.")
        return account

    def get_balance(self, user_id: str) -> Decimal:
        """Return the current balance."""
        return self._get_or_missing(user_id).balance

    def adjust_balance(
        self, user_id: str, delta_cents: int, *, floor_cents: int | None = None
    ) -> Decimal:
        """Apply a relative balance change and return the resulting balance."""
        self._get_or_missing(user_id)
        with self.session_factory() as session:
            statement = update(Account).where(Account.user_id == user_id)
            if floor_cents is not None:
                statement = statement.where(
                    Account.balance_cents + delta_cents >= floor_cents  # type: ignore[operator]
                )
            statement = statement.values(
                balance_cents=Account.balance_cents + delta_cents,  # type: ignore[operator]
                updated_at=datetime.now(timezone.utc),
            )
            result = session.execute(statement)
            if result.rowcount == 0:
                session.rollback()
                current = session.get(Account, user_id)
                if current is None:
                    raise NotFoundError(f"No account exists for user {user_id!r}.")
                raise InsufficientFundsError(current.balance, from_cents(-delta_cents))

            # Read inside the same transaction so the value reflects this update only.
            new_cents = session.exec(
                select(Account.balance_cents).where(Account.user_id == user_id)
            ).one()
            session.commit()
        return from_cents(new_cents)

    def set_timezone(self, user_id: str, timezone_name: str) -> Account:
        """Record the account's IANA timezone."""
        try:
            validate_timezone(timezone_name)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self._get_or_missing(user_id)
        with self.session_factory() as session:
            result = session.execute(
                update(Account)
                .where(Account.user_id == user_id)
                .values(timezone_name=timezone_name, updated_at=datetime.now(timezone.utc))
            )
            if result.rowcount == 0:
                raise NotFoundError(f"No account exists for user {user_id!r}.")
            session.commit()
        account = self.get(user_id)
        assert account is not None
        return account


__all__ = ["SQLModelAccountRepository"]
