# Overview: Error taxonomy shared by the engines, the API layer and the CLI.

"""
Ledger error taxonomy.

Every error raised from an atomic operation derives from LedgerError and
carries:
- message: human-readable summary
- details: structured context (offending product ids, quantities, ...)
- operation: name of the engine operation that failed ("process_sale", ...)
- path: the store path being written when it failed ("products/12", ...)

status_code is what the API layer answers with; services never look at it.
"""

from __future__ import annotations


class LedgerError(Exception):
    status_code = 400

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        *,
        operation: str | None = None,
        path: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.operation = operation
        self.path = path

    def with_context(self, operation: str | None, path: str | None = None) -> "LedgerError":
        if self.operation is None:
            self.operation = operation
        if self.path is None:
            self.path = path
        return self

    def to_dict(self) -> dict:
        payload = {"error": self.message, "details": self.details}
        if self.operation:
            payload["operation"] = self.operation
        if self.path:
            payload["path"] = self.path
        return payload


class ValidationError(LedgerError):
    """Malformed input; raised before any store access."""
    status_code = 400


class NotFoundError(LedgerError):
    status_code = 404


class InsufficientStockError(LedgerError):
    """Requested quantity exceeds current stock at commit time."""
    status_code = 409


class DuplicateKeyError(LedgerError):
    status_code = 409


class StoreUnavailableError(LedgerError):
    status_code = 503


class TransactionConflictError(StoreUnavailableError):
    """Optimistic-concurrency retries were exhausted."""
    status_code = 503
