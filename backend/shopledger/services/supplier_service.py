# Overview: Service-layer operations for suppliers; master data, payable balances and payments.

from __future__ import annotations

from ..currency import format_currency, round_money
from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import PurchaseInvoice, Supplier
from ..validation import (
    SUPPLIER_POLICY,
    SUPPLIER_UPDATE_POLICY,
    enforce_rules_supplier,
    validate_payload,
)
from . import activity_service, ledger_service, settings_service
from .concurrency import run_with_retry
from .purchase_service import derive_payment_status, list_open_invoices_for_supplier


def get_supplier(account_id: int, supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(account_id=account_id, id=supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def list_suppliers(account_id: int) -> list[Supplier]:
    return (
        db.session.query(Supplier)
        .filter_by(account_id=account_id)
        .order_by(Supplier.name.asc(), Supplier.id.asc())
        .all()
    )


def opening_balance_to_current(opening_balance: float, opening_balance_type: str) -> float:
    """Owed to supplier seeds a positive payable; owed by the user seeds a negative one."""
    amount = round_money(opening_balance or 0.0)
    return amount if opening_balance_type == Supplier.OWED_TO_SUPPLIER else -amount


def add_supplier(account_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    enforce_rules_supplier(patch)
    patch.setdefault("opening_balance", 0.0)
    patch.setdefault("opening_balance_type", Supplier.OWED_TO_SUPPLIER)

    def _op():
        settings = settings_service.load_settings_for_update(account_id)
        supplier = Supplier(
            account_id=account_id,
            current_balance=opening_balance_to_current(patch["opening_balance"], patch["opening_balance_type"]),
            **patch,
        )
        db.session.add(supplier)
        settings.total_suppliers = (settings.total_suppliers or 0) + 1
        db.session.commit()
        return supplier

    supplier = run_with_retry(_op, operation="add_supplier", path=f"suppliers/{account_id}")
    deferred.submit(
        "new_supplier_activity",
        activity_service.log_activity,
        account_id,
        activity_service.NEW_SUPPLIER,
        f"New supplier added: {supplier.name}",
        {"supplier_id": supplier.id, "opening_balance": supplier.current_balance},
    )
    return supplier


def update_supplier(account_id: int, supplier_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_UPDATE_POLICY, partial=True)

    def _op():
        supplier = get_supplier(account_id, supplier_id)
        for key, value in patch.items():
            setattr(supplier, key, value)
        db.session.commit()
        return supplier

    supplier = run_with_retry(_op, operation="update_supplier", path=f"suppliers/{supplier_id}")
    deferred.submit(
        "supplier_update_activity",
        activity_service.log_activity,
        account_id,
        activity_service.SUPPLIER_UPDATE,
        f"Supplier updated: {supplier.name}",
        {"supplier_id": supplier_id, "updated_fields": sorted(patch)},
    )
    return supplier


def delete_supplier(account_id: int, supplier_id: int) -> None:
    """
    Delete a supplier with no purchase history.

    Suppliers referenced by purchase invoices are kept so invoice edits and
    payable balances stay consistent.
    """
    def _op():
        supplier = get_supplier(account_id, supplier_id)
        invoice_count = db.session.query(PurchaseInvoice).filter_by(supplier_id=supplier_id).count()
        if invoice_count:
            raise ValidationError(
                "Supplier has purchase invoices and cannot be deleted",
                details={"supplier_id": supplier_id, "invoice_count": invoice_count},
            )
        name = supplier.name
        settings = settings_service.load_settings_for_update(account_id)
        settings.total_suppliers = max(0, (settings.total_suppliers or 0) - 1)
        db.session.delete(supplier)
        db.session.commit()
        return name

    name = run_with_retry(_op, operation="delete_supplier", path=f"suppliers/{supplier_id}")
    deferred.submit(
        "supplier_delete_activity",
        activity_service.log_activity,
        account_id,
        activity_service.SUPPLIER_DELETE,
        f"Supplier deleted: {name}",
        {"supplier_id": supplier_id, "name": name},
    )


def record_supplier_payment(
    account_id: int,
    supplier_id: int,
    amount: float,
    *,
    payment_method: str = "cash",
    reference: str | None = None,
    notes: str | None = None,
) -> Supplier:
    """
    Pay a supplier.

    In one transaction:
    - allocate the payment over open invoices, oldest invoice first
    - supplier.current_balance -= amount
    - business cash -= amount, with a supplier_payment ledger entry

    Any remainder beyond the open invoices still reduces the balance (an
    advance to the supplier).
    """
    try:
        amount = round_money(float(amount))
    except (TypeError, ValueError):
        raise ValidationError("amount must be a number")
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")

    def _op():
        supplier = get_supplier(account_id, supplier_id)
        settings = settings_service.load_settings_for_update(account_id)

        remaining = amount
        allocations = []
        for invoice in list_open_invoices_for_supplier(account_id, supplier_id):
            if remaining <= 0:
                break
            due = round_money(invoice.total_amount - invoice.amount_paid)
            if due <= 0:
                continue
            applied = min(remaining, due)
            invoice.amount_paid = round_money(invoice.amount_paid + applied)
            invoice.payment_status = derive_payment_status(invoice.total_amount, invoice.amount_paid)
            remaining = round_money(remaining - applied)
            allocations.append({"invoice_id": invoice.id, "applied": applied})

        supplier.current_balance = round_money((supplier.current_balance or 0.0) - amount)
        settings_service.apply_cash_delta(settings, -amount)

        description = f"Payment to supplier: {supplier.name}. Method: {payment_method}."
        if reference:
            description += f" Ref: {reference}"
        ledger_service.append_business_transaction(
            account_id=account_id,
            transaction_type=ledger_service.SUPPLIER_PAYMENT,
            description=description,
            amount=-amount,
            related_document_id=supplier_id,
            notes=notes,
        )
        currency = settings.currency
        db.session.commit()
        return supplier, allocations, currency

    supplier, allocations, currency = run_with_retry(
        _op, operation="record_supplier_payment", path=f"suppliers/{supplier_id}"
    )
    deferred.submit(
        "supplier_payment_activity",
        activity_service.log_activity,
        account_id,
        activity_service.SUPPLIER_BALANCE_UPDATE,
        f"Paid {format_currency(amount, currency)} to {supplier.name}. "
        f"New balance: {format_currency(supplier.current_balance, currency)}",
        {"supplier_id": supplier_id, "amount": amount, "allocations": allocations},
    )
    return supplier
