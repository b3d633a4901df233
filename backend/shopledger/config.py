# backend/shopledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Deferred bookkeeping (post-commit customer/cash/audit work)
    DEFERRED_TASKS_EAGER = _env_flag("DEFERRED_TASKS_EAGER", False)
    DEFERRED_TASK_JOIN_TIMEOUT = float(os.environ.get("DEFERRED_TASK_JOIN_TIMEOUT", "10"))

    # Optimistic-concurrency retries for the atomic phase
    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "5"))
    TRANSACTION_RETRY_BACKOFF = float(os.environ.get("TRANSACTION_RETRY_BACKOFF", "0.05"))

    CASH_RECONCILIATION_TOLERANCE = float(os.environ.get("CASH_RECONCILIATION_TOLERANCE", "0.005"))
