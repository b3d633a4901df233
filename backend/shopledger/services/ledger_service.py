# Overview: Service-layer operations for the financial ledger; append-only cash movement records.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..currency import format_currency, round_money
from ..errors import ValidationError
from ..extensions import db, deferred
from ..models import BusinessTransaction
from . import activity_service, settings_service
from .concurrency import run_with_retry

"""
Financial Ledger Invariants (authoritative)

- Append-only: entries are never updated or deleted (restore/reset excepted).
- amount is signed: positive = cash into the business, negative = cash out.
- Every change to current_business_cash has exactly one matching entry, so
  sum(amount) reconciles with the stored balance. Entries for the atomic
  engines may lag behind the balance (deferred phase) but never lead it.
"""

SALE_INCOME = "sale_income"
PURCHASE_PAYMENT = "purchase_payment"
SUPPLIER_PAYMENT = "supplier_payment"
MANUAL_ADJUSTMENT_CREDIT = "manual_adjustment_credit"
MANUAL_ADJUSTMENT_DEBIT = "manual_adjustment_debit"
INITIAL_BALANCE_SET = "initial_balance_set"
OTHER_INCOME = "other_income"
OTHER_EXPENSE = "other_expense"
SALE_RETURN = "sale_return"
STOCK_ADJUSTMENT_CREDIT = "stock_adjustment_credit"

TRANSACTION_TYPES = frozenset({
    SALE_INCOME,
    PURCHASE_PAYMENT,
    SUPPLIER_PAYMENT,
    MANUAL_ADJUSTMENT_CREDIT,
    MANUAL_ADJUSTMENT_DEBIT,
    INITIAL_BALANCE_SET,
    OTHER_INCOME,
    OTHER_EXPENSE,
    SALE_RETURN,
    STOCK_ADJUSTMENT_CREDIT,
})


@dataclass
class CashReconciliation:
    account_id: int
    stored_balance: float
    ledger_total: float
    difference: float
    is_consistent: bool

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "stored_balance": self.stored_balance,
            "ledger_total": self.ledger_total,
            "difference": self.difference,
            "is_consistent": self.is_consistent,
        }


def append_business_transaction(
    *,
    account_id: int,
    transaction_type: str,
    description: str,
    amount: float,
    related_document_id: str | int | None = None,
    notes: str | None = None,
) -> BusinessTransaction:
    """
    Append-only ledger entry inside the caller's transaction.

    - No balance logic here; callers move the cash themselves.
    - No deletes/updates of existing entries.
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown business transaction type: {transaction_type}")

    entry = BusinessTransaction(
        account_id=account_id,
        type=transaction_type,
        description=description,
        amount=round_money(amount),
        related_document_id=str(related_document_id) if related_document_id is not None else None,
        notes=notes,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_cash_movement(
    account_id: int,
    amount: float,
    transaction_type: str,
    description: str,
    related_document_id: str | int | None = None,
    *,
    apply_to_cash: bool = True,
) -> BusinessTransaction | None:
    """
    Deferred-phase bookkeeping: optionally move cash, then append the entry.

    Runs as its own retried transaction. Zero amounts are skipped.
    """
    if not amount:
        return None

    def _op():
        if apply_to_cash:
            settings = settings_service.load_settings_for_update(account_id)
            settings_service.apply_cash_delta(settings, amount)
        entry = append_business_transaction(
            account_id=account_id,
            transaction_type=transaction_type,
            description=description,
            amount=amount,
            related_document_id=related_document_id,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op, operation="record_cash_movement", path=f"business_transactions/{account_id}")


def list_business_transactions(
    account_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    transaction_type: str | None = None,
    limit: int | None = None,
) -> list[BusinessTransaction]:
    """Entries in [start, end), newest first."""
    query = db.session.query(BusinessTransaction).filter_by(account_id=account_id)
    if start is not None:
        query = query.filter(BusinessTransaction.occurred_at >= start)
    if end is not None:
        query = query.filter(BusinessTransaction.occurred_at < end)
    if transaction_type:
        query = query.filter_by(type=transaction_type)
    query = query.order_by(BusinessTransaction.occurred_at.desc(), BusinessTransaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def adjust_business_cash_balance(
    account_id: int,
    amount: float,
    adjustment_type: str,
    notes: str | None = None,
) -> float:
    """
    Manual cash adjustment (credit adds, debit removes).

    Balance change and ledger entry commit together.
    """
    if adjustment_type not in ("credit", "debit"):
        raise ValidationError("adjustment_type must be 'credit' or 'debit'")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount must be a number")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")

    delta = amount if adjustment_type == "credit" else -amount
    tx_type = MANUAL_ADJUSTMENT_CREDIT if adjustment_type == "credit" else MANUAL_ADJUSTMENT_DEBIT

    def _op():
        settings = settings_service.load_settings_for_update(account_id)
        currency = settings.currency
        new_balance = settings_service.apply_cash_delta(settings, delta)
        append_business_transaction(
            account_id=account_id,
            transaction_type=tx_type,
            description=f"Manual cash {adjustment_type} of {format_currency(amount, currency)}",
            amount=delta,
            notes=notes,
        )
        db.session.commit()
        return new_balance, currency

    new_balance, currency = run_with_retry(
        _op, operation="adjust_business_cash_balance", path=f"settings/{account_id}"
    )

    deferred.submit(
        "cash_adjustment_activity",
        activity_service.log_activity,
        account_id,
        activity_service.BUSINESS_CASH_ADJUSTMENT,
        f"Business cash {adjustment_type}ed by {format_currency(amount, currency)}. "
        f"New balance: {format_currency(new_balance, currency)}",
        {"amount": delta, "new_balance": new_balance, "notes": notes},
    )
    return new_balance


def reconcile_cash(account_id: int, *, tolerance: float | None = None) -> CashReconciliation:
    """Compare the stored cash balance against the sum of ledger entries."""
    if tolerance is None:
        tolerance = current_app.config.get("CASH_RECONCILIATION_TOLERANCE", 0.005)

    settings = settings_service.get_settings(account_id)
    ledger_total = (
        db.session.query(func.coalesce(func.sum(BusinessTransaction.amount), 0.0))
        .filter(BusinessTransaction.account_id == account_id)
        .scalar()
    )
    stored = round_money(settings.current_business_cash)
    ledger_total = round_money(ledger_total)
    difference = round_money(stored - ledger_total)
    return CashReconciliation(
        account_id=account_id,
        stored_balance=stored,
        ledger_total=ledger_total,
        difference=difference,
        is_consistent=abs(difference) <= tolerance,
    )
