"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def validate_timezone(name: str) -> str:
    """Return *name* if it is a known IANA timezone, else raise ValueError."""

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc
    return name


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "PocketLedger"
    DB_FILENAME = "pocketledger.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.DATA_DIR = self._resolve_data_dir(data_dir)
        self.DEV_MODE = _env_bool("POCKETLEDGER_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("POCKETLEDGER_DATABASE_URL", self._build_sqlite_url())
        self.DEFAULT_TIMEZONE = validate_timezone(
            os.getenv("POCKETLEDGER_DEFAULT_TIMEZONE", "UTC").strip() or "UTC"
        )
        self.STORE_TIMEOUT = _env_float("POCKETLEDGER_STORE_TIMEOUT", 5.0)
        if self.STORE_TIMEOUT <= 0:
            raise ValueError("POCKETLEDGER_STORE_TIMEOUT must be positive.")
        self.AUTO_CREATE_ACCOUNTS = _env_bool("POCKETLEDGER_AUTO_CREATE_ACCOUNTS", default=True)
        self.RECENT_LIMIT = _env_int("POCKETLEDGER_RECENT_LIMIT", 10)

    def _resolve_data_dir(self, data_dir: Path | str | None) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = data_dir or os.getenv("POCKETLEDGER_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlite_pragmas(self) -> dict[str, Any]:
        """Pragmas issued on every new SQLite connection."""

        pragmas: dict[str, Any] = dict(self.SQLITE_PRAGMAS)
        pragmas["busy_timeout"] = int(self.STORE_TIMEOUT * 1000)
        return pragmas

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.is_sqlite:
            engine_options["connect_args"] = {
                "check_same_thread": False,
                "timeout": self.STORE_TIMEOUT,
            }
        else:
            engine_options["pool_timeout"] = self.STORE_TIMEOUT
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration for test runs; always uses a SQLite file under ``data_dir``."""

    __test__ = False

    DEBUG = False
    TESTING = True

    def __init__(self, data_dir: Path | str | None = None) -> None:
        super().__init__(data_dir)
        self.DATABASE_URL = self._build_sqlite_url()
