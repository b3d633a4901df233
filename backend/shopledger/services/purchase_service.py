"""
Purchase Engine - supplier invoices

WHY: A purchase moves stock, the supplier payable and business cash at the
same time. Those three must never disagree, so recording (and editing) an
invoice is a single atomic transaction. Only observational work (activity
entries and the purchase_payment ledger entry) is deferred.

EDITING is a compensating adjustment against the invoice's own prior state,
never delete-and-recreate:
- stock: apply (new_qty - old_qty) per product
- supplier: apply (new_owed - old_owed), moving the amount between suppliers
  when the supplier changed
- cash: add back (old_paid - new_paid)

grand_total is always sub_total (sum of lines) + tax_amount.
"""

from __future__ import annotations

from collections import defaultdict

from ..currency import format_currency, round_money
from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db, deferred
from ..models import Product, PurchaseInvoice, PurchaseLine, Supplier
from ..models.purchases import (
    OPEN_PAYMENT_STATUSES,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_UNPAID,
)
from ..schemas import NewProductLine, PurchaseInvoiceInput, RestockLine
from ..time_utils import parse_iso_datetime, period_bounds
from . import activity_service, ledger_service, settings_service
from .concurrency import run_with_retry
from .inventory_service import DEFAULT_CATEGORY, ensure_code_available, remember_category


def derive_payment_status(grand_total: float, amount_paid: float) -> str:
    """paid if amount_paid >= grand_total > 0; partially_paid if 0 < paid < total; unpaid otherwise."""
    grand_total = round_money(grand_total)
    amount_paid = round_money(amount_paid)
    if grand_total > 0 and amount_paid >= grand_total:
        return PAYMENT_STATUS_PAID
    if amount_paid > 0:
        return PAYMENT_STATUS_PARTIALLY_PAID
    return PAYMENT_STATUS_UNPAID


def _load_supplier(account_id: int, supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(account_id=account_id, id=supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def _load_restock_products(account_id: int, product_ids: set[int]) -> dict[int, Product]:
    if not product_ids:
        return {}
    products = (
        db.session.query(Product)
        .filter(
            Product.account_id == account_id,
            Product.id.in_(product_ids),
            Product.is_active.is_(True),
        )
        .all()
    )
    found = {p.id: p for p in products}
    missing = sorted(product_ids - set(found))
    if missing:
        raise NotFoundError("Product not found", details={"product_ids": missing})
    return found


def _coerce_invoice_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return parse_iso_datetime(value)
    return value


def add_purchase_invoice(account_id: int, invoice_input: PurchaseInvoiceInput) -> PurchaseInvoice:
    """
    Record a purchase invoice atomically.

    Raises:
        DuplicateKeyError: a new-product line uses a code that already exists
        NotFoundError: supplier or restock product missing
    """
    grand_total = invoice_input.grand_total
    amount_paid = round_money(invoice_input.amount_paid)
    restock_ids = {item.product_id for item in invoice_input.items if isinstance(item, RestockLine)}

    def _op():
        for item in invoice_input.items:
            if isinstance(item, NewProductLine):
                ensure_code_available(account_id, item.product_code)

        supplier = _load_supplier(account_id, invoice_input.supplier_id)
        settings = settings_service.load_settings_for_update(account_id)
        products = _load_restock_products(account_id, restock_ids)

        numeric_id = settings_service.claim_next_numeric_id(settings, "purchase")
        invoice = PurchaseInvoice(
            account_id=account_id,
            numeric_purchase_id=numeric_id,
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            invoice_number=invoice_input.invoice_number or f"AUTOGEN-{numeric_id}",
            notes=invoice_input.notes,
            sub_total=invoice_input.sub_total,
            tax_amount=round_money(invoice_input.tax_amount),
            total_amount=grand_total,
            amount_paid=amount_paid,
            payment_status=derive_payment_status(grand_total, amount_paid),
        )
        invoice_date = _coerce_invoice_date(invoice_input.invoice_date)
        if invoice_date is not None:
            invoice.invoice_date = invoice_date

        audit_lines = []
        for number, item in enumerate(invoice_input.items, start=1):
            if isinstance(item, RestockLine):
                product = products[item.product_id]
                product.stock += item.quantity
                if product.cost_price != item.purchase_price:
                    product.cost_price = item.purchase_price
                created = False
            elif isinstance(item, NewProductLine):
                product = Product(
                    account_id=account_id,
                    product_code=item.product_code,
                    name=item.product_name,
                    price=item.sale_price,
                    cost_price=item.purchase_price,
                    stock=item.quantity,
                    category=item.category or DEFAULT_CATEGORY,
                    discount_percentage=0.0,
                )
                db.session.add(product)
                db.session.flush()
                settings.total_products = (settings.total_products or 0) + 1
                remember_category(settings, product.category)
                created = True
            else:
                raise TypeError(f"Unsupported purchase line item: {item!r}")

            invoice.lines.append(PurchaseLine(
                line_number=number,
                product_id=product.id,
                product_code=product.product_code,
                product_name=product.name,
                quantity=item.quantity,
                purchase_price=item.purchase_price,
                line_total=round_money(item.quantity * item.purchase_price),
                sale_price=item.sale_price if created else None,
                created_product=created,
            ))
            audit_lines.append({
                "product_id": product.id,
                "product_name": product.name,
                "product_code": product.product_code,
                "quantity": item.quantity,
                "new_stock": product.stock,
                "created": created,
            })

        supplier.current_balance = round_money((supplier.current_balance or 0.0) + grand_total - amount_paid)
        settings_service.apply_cash_delta(settings, -amount_paid)

        db.session.add(invoice)
        db.session.flush()
        snapshot = {
            "invoice_id": invoice.id,
            "numeric_purchase_id": numeric_id,
            "invoice_number": invoice.invoice_number,
            "supplier_id": supplier.id,
            "supplier_name": supplier.name,
            "supplier_balance": supplier.current_balance,
            "tax_amount": invoice.tax_amount,
            "grand_total": grand_total,
            "amount_paid": amount_paid,
            "currency": settings.currency,
            "lines": audit_lines,
        }
        db.session.commit()
        return invoice, snapshot

    invoice, snapshot = run_with_retry(_op, operation="add_purchase_invoice", path=f"purchase_invoices/{account_id}")

    if amount_paid > 0:
        deferred.submit(
            "purchase_payment_ledger",
            ledger_service.record_cash_movement,
            account_id,
            -amount_paid,
            ledger_service.PURCHASE_PAYMENT,
            f"Payment for purchase #{snapshot['numeric_purchase_id']} "
            f"(Inv: {snapshot['invoice_number']}) to {snapshot['supplier_name']}",
            snapshot["numeric_purchase_id"],
            apply_to_cash=False,
        )
    deferred.submit("purchase_activity", log_purchase_activity, account_id, snapshot)
    return invoice


def log_purchase_activity(account_id: int, snapshot: dict) -> None:
    currency = snapshot["currency"]
    for line in snapshot["lines"]:
        if line["created"]:
            activity_service.log_activity(
                account_id,
                activity_service.INVENTORY_UPDATE,
                f"New product {line['product_name']} (Code: {line['product_code']}) created via purchase "
                f"#{snapshot['numeric_purchase_id']} with stock {line['new_stock']}.",
                {"product_id": line["product_id"], "purchase_id": snapshot["invoice_id"]},
                commit=False,
            )
        else:
            activity_service.log_activity(
                account_id,
                activity_service.STOCK_ADD,
                f"Stock for {line['product_name']} (Code: {line['product_code']}) increased by "
                f"{line['quantity']} via purchase #{snapshot['numeric_purchase_id']}. New stock: {line['new_stock']}.",
                {"product_id": line["product_id"], "purchase_id": snapshot["invoice_id"], "quantity": line["quantity"]},
                commit=False,
            )
    owed = round_money(snapshot["grand_total"] - snapshot["amount_paid"])
    activity_service.log_activity(
        account_id,
        activity_service.SUPPLIER_BALANCE_UPDATE,
        f"Balance with {snapshot['supplier_name']} changed by {format_currency(owed, currency)}. "
        f"New balance: {format_currency(snapshot['supplier_balance'], currency)}",
        {"supplier_id": snapshot["supplier_id"], "change": owed, "purchase_id": snapshot["invoice_id"]},
        commit=False,
    )
    activity_service.log_activity(
        account_id,
        activity_service.PURCHASE_RECORDED,
        f"Purchase #{snapshot['numeric_purchase_id']} (Inv: {snapshot['invoice_number']}) from "
        f"{snapshot['supplier_name']} recorded: total {format_currency(snapshot['grand_total'], currency)}, "
        f"tax {format_currency(snapshot['tax_amount'], currency)}, "
        f"paid {format_currency(snapshot['amount_paid'], currency)}",
        {
            "purchase_id": snapshot["invoice_id"],
            "numeric_purchase_id": snapshot["numeric_purchase_id"],
            "grand_total": snapshot["grand_total"],
            "tax_amount": snapshot["tax_amount"],
            "amount_paid": snapshot["amount_paid"],
        },
    )


def update_purchase_invoice(account_id: int, invoice_id: int, invoice_input: PurchaseInvoiceInput) -> PurchaseInvoice:
    """
    Edit an invoice by compensating adjustment.

    Only restock lines are accepted; products created by the original
    invoice are edited as ordinary restock lines against that product.

    Raises:
        InsufficientStockError: reducing a quantity would take stock below 0
        NotFoundError: invoice, supplier or product missing
    """
    new_total = invoice_input.grand_total
    new_paid = round_money(invoice_input.amount_paid)

    def _op():
        invoice = get_purchase_invoice(account_id, invoice_id)
        settings = settings_service.load_settings_for_update(account_id)
        new_supplier = _load_supplier(account_id, invoice_input.supplier_id)

        old_total = invoice.total_amount
        old_tax = invoice.tax_amount or 0.0
        old_paid = invoice.amount_paid
        old_supplier_id = invoice.supplier_id

        deltas: dict[int, int] = defaultdict(int)
        for line in invoice.lines:
            deltas[line.product_id] -= line.quantity
        for item in invoice_input.items:
            deltas[item.product_id] += item.quantity

        touched = {pid for pid, delta in deltas.items() if delta != 0}
        touched |= {item.product_id for item in invoice_input.items}
        products = {
            p.id: p
            for p in db.session.query(Product).filter(
                Product.account_id == account_id, Product.id.in_(touched)
            ).all()
        }
        new_ids = {item.product_id for item in invoice_input.items}
        missing = sorted(pid for pid in new_ids if pid not in products or not products[pid].is_active)
        if missing:
            raise NotFoundError("Product not found", details={"product_ids": missing})

        insufficient = []
        for product_id, delta in deltas.items():
            product = products.get(product_id)
            if product is None or delta == 0:
                continue
            if product.stock + delta < 0:
                insufficient.append({
                    "product_id": product_id,
                    "product_name": product.name,
                    "requested_quantity": -delta,
                    "on_hand": product.stock,
                })
        if insufficient:
            raise InsufficientStockError(
                "Edit would take stock below zero",
                details={"items": insufficient},
            )
        for product_id, delta in deltas.items():
            if delta and product_id in products:
                products[product_id].stock += delta

        for item in invoice_input.items:
            product = products[item.product_id]
            if product.cost_price != item.purchase_price:
                product.cost_price = item.purchase_price

        old_owed = round_money(old_total - old_paid)
        new_owed = round_money(new_total - new_paid)
        if old_supplier_id == new_supplier.id:
            new_supplier.current_balance = round_money(new_supplier.current_balance + new_owed - old_owed)
        else:
            old_supplier = db.session.query(Supplier).filter_by(account_id=account_id, id=old_supplier_id).first()
            if old_supplier is not None:
                old_supplier.current_balance = round_money(old_supplier.current_balance - old_owed)
            new_supplier.current_balance = round_money(new_supplier.current_balance + new_owed)

        settings_service.apply_cash_delta(settings, old_paid - new_paid)

        invoice.lines.clear()
        db.session.flush()
        for number, item in enumerate(invoice_input.items, start=1):
            product = products[item.product_id]
            invoice.lines.append(PurchaseLine(
                line_number=number,
                product_id=product.id,
                product_code=product.product_code,
                product_name=product.name,
                quantity=item.quantity,
                purchase_price=item.purchase_price,
                line_total=round_money(item.quantity * item.purchase_price),
            ))

        invoice.supplier_id = new_supplier.id
        invoice.supplier_name = new_supplier.name
        invoice.sub_total = invoice_input.sub_total
        invoice.tax_amount = round_money(invoice_input.tax_amount)
        invoice.total_amount = new_total
        invoice.amount_paid = new_paid
        invoice.payment_status = derive_payment_status(new_total, new_paid)
        if invoice_input.invoice_number:
            invoice.invoice_number = invoice_input.invoice_number
        invoice.notes = invoice_input.notes
        invoice_date = _coerce_invoice_date(invoice_input.invoice_date)
        if invoice_date is not None:
            invoice.invoice_date = invoice_date

        snapshot = {
            "invoice_id": invoice.id,
            "numeric_purchase_id": invoice.numeric_purchase_id,
            "invoice_number": invoice.invoice_number,
            "paid_delta": round_money(new_paid - old_paid),
            "total_delta": round_money(new_total - old_total),
            "tax_delta": round_money(invoice_input.tax_amount - old_tax),
            "stock_deltas": {str(pid): delta for pid, delta in deltas.items() if delta},
            "currency": settings.currency,
        }
        db.session.commit()
        return invoice, snapshot

    invoice, snapshot = run_with_retry(_op, operation="update_purchase_invoice", path=f"purchase_invoices/{invoice_id}")

    if snapshot["paid_delta"]:
        deferred.submit(
            "purchase_payment_adjustment_ledger",
            ledger_service.record_cash_movement,
            account_id,
            -snapshot["paid_delta"],
            ledger_service.PURCHASE_PAYMENT,
            f"Payment adjusted for purchase #{snapshot['numeric_purchase_id']} (Inv: {snapshot['invoice_number']})",
            snapshot["numeric_purchase_id"],
            apply_to_cash=False,
        )
    deferred.submit(
        "purchase_update_activity",
        activity_service.log_activity,
        account_id,
        activity_service.PURCHASE_UPDATED,
        f"Purchase Invoice #{snapshot['numeric_purchase_id']} was updated. Total changed by "
        f"{format_currency(snapshot['total_delta'], snapshot['currency'])}, paid changed by "
        f"{format_currency(snapshot['paid_delta'], snapshot['currency'])}.",
        {
            "purchase_id": snapshot["invoice_id"],
            "numeric_purchase_id": snapshot["numeric_purchase_id"],
            "tax_delta": snapshot["tax_delta"],
            "stock_deltas": snapshot["stock_deltas"],
        },
    )
    return invoice


def get_purchase_invoice(account_id: int, invoice_id: int) -> PurchaseInvoice:
    invoice = db.session.query(PurchaseInvoice).filter_by(account_id=account_id, id=invoice_id).first()
    if not invoice:
        raise NotFoundError("Purchase invoice not found", details={"invoice_id": invoice_id})
    return invoice


def list_purchase_invoices(account_id: int, *, period: str = "all", supplier_id: int | None = None) -> list[PurchaseInvoice]:
    start, end = period_bounds(period)
    query = db.session.query(PurchaseInvoice).filter_by(account_id=account_id)
    if supplier_id is not None:
        query = query.filter_by(supplier_id=supplier_id)
    if start is not None:
        query = query.filter(PurchaseInvoice.invoice_date >= start)
    if end is not None:
        query = query.filter(PurchaseInvoice.invoice_date < end)
    return query.order_by(PurchaseInvoice.invoice_date.desc(), PurchaseInvoice.id.desc()).all()


def list_open_invoices_for_supplier(account_id: int, supplier_id: int) -> list[PurchaseInvoice]:
    """Unpaid / partially paid invoices for a supplier, oldest first."""
    return (
        db.session.query(PurchaseInvoice)
        .filter(
            PurchaseInvoice.account_id == account_id,
            PurchaseInvoice.supplier_id == supplier_id,
            PurchaseInvoice.payment_status.in_(OPEN_PAYMENT_STATUSES),
        )
        .order_by(PurchaseInvoice.invoice_date.asc(), PurchaseInvoice.id.asc())
        .all()
    )
