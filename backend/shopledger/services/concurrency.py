# Overview: Service-layer transaction primitive; runs a unit of work atomically with retry.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, StoreUnavailableError, TransactionConflictError
from ..extensions import db

logger = logging.getLogger(__name__)


def run_with_retry(
    func,
    *,
    operation: str,
    path: str | None = None,
    attempts: int | None = None,
    backoff_base: float | None = None,
):
    """
    Execute a unit of work atomically, retrying on concurrency failures.

    func reads, validates, writes and commits. It is re-run from scratch
    after a rollback when:
    - StaleDataError: a versioned row it read was changed by a concurrent
      commit (optimistic locking conflict)
    - OperationalError: the database was locked or briefly unreachable

    Any other exception rolls back and propagates unchanged. LedgerErrors get
    the operation name and path attached. Exhausted retries raise
    TransactionConflictError (stale data) or StoreUnavailableError.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 5)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSACTION_RETRY_BACKOFF", 0.05)

    for attempt in range(attempts):
        try:
            return func()
        except LedgerError as exc:
            db.session.rollback()
            raise exc.with_context(operation, path)
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.warning("%s gave up after %d attempts: %s", operation, attempts, exc)
                if isinstance(exc, StaleDataError):
                    raise TransactionConflictError(
                        "Concurrent update conflict; please retry",
                        details={"attempts": attempts},
                        operation=operation,
                        path=path,
                    ) from exc
                raise StoreUnavailableError(
                    "Data store unavailable",
                    details={"attempts": attempts},
                    operation=operation,
                    path=path,
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
