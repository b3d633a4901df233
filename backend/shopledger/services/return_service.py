# Overview: Service-layer operations for customer returns; stock restore and cash refund in one transaction.

"""
Return Engine

A return is fully atomic: stock restore, the refund out of business cash,
the sale_return ledger entry and the return document commit together.
Only the audit trail is deferred.

STOCK RESTORE per line:
- inventory line, add_to_stock, product active  -> stock += qty, stock_updated True
- inventory line, add_to_stock, product missing -> stock_updated False (refund still proceeds)
- add_to_stock off, or manual line              -> stock_updated None

net_refund = subtotal + adjustment          (add)
           = max(0, subtotal - adjustment)  (deduct)
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import func

from ..currency import format_currency, round_money
from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import Product, Return, ReturnLine, Sale, SaleLine
from ..models.returns import ADJUSTMENT_ADD, ADJUSTMENT_DEDUCT
from ..models.sales import LINE_KIND_INVENTORY, LINE_KIND_MANUAL
from ..schemas import InventoryReturnLine, ManualReturnLine, ReturnInput
from ..time_utils import period_bounds
from . import activity_service, ledger_service, settings_service
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


def compute_net_refund(subtotal: float, adjustment_amount: float, adjustment_type: str) -> float:
    subtotal = round_money(subtotal)
    adjustment_amount = round_money(adjustment_amount or 0.0)
    if adjustment_type == ADJUSTMENT_ADD:
        return round_money(subtotal + adjustment_amount)
    return max(0.0, round_money(subtotal - adjustment_amount))


def _check_returnable_quantities(account_id: int, sale: Sale, items: list) -> None:
    """Cumulative returned quantity per product may not exceed what the sale sold."""
    sold: dict[int, int] = defaultdict(int)
    for line in sale.lines:
        if line.line_kind == LINE_KIND_INVENTORY and line.product_id is not None:
            sold[line.product_id] += line.quantity

    already = dict(
        db.session.query(ReturnLine.product_id, func.sum(ReturnLine.quantity))
        .join(Return, Return.id == ReturnLine.return_id)
        .filter(
            Return.account_id == account_id,
            Return.original_sale_id == sale.id,
            ReturnLine.product_id.isnot(None),
        )
        .group_by(ReturnLine.product_id)
        .all()
    )

    requested: dict[int, int] = defaultdict(int)
    for item in items:
        if isinstance(item, InventoryReturnLine):
            requested[item.product_id] += item.quantity

    over = []
    for product_id, qty in requested.items():
        allowed = sold.get(product_id, 0) - int(already.get(product_id) or 0)
        if qty > allowed:
            over.append({"product_id": product_id, "requested_quantity": qty, "returnable_quantity": max(0, allowed)})
    if over:
        raise ValidationError(
            f"Return exceeds the quantity sold on sale #{sale.numeric_sale_id}",
            details={"items": over},
        )


def add_return(account_id: int, return_input: ReturnInput) -> Return:
    """
    Process a customer return atomically.

    Raises:
        NotFoundError: original_sale_id given but missing
        ValidationError: returning more than the original sale sold
    """
    if return_input.adjustment_type not in (ADJUSTMENT_ADD, ADJUSTMENT_DEDUCT):
        raise ValidationError("adjustment_type must be 'add' or 'deduct'")

    subtotal = return_input.subtotal_returned
    net_refund = compute_net_refund(subtotal, return_input.adjustment_amount, return_input.adjustment_type)
    product_ids = {item.product_id for item in return_input.items if isinstance(item, InventoryReturnLine)}

    def _op():
        sale = None
        if return_input.original_sale_id is not None:
            sale = db.session.query(Sale).filter_by(account_id=account_id, id=return_input.original_sale_id).first()
            if sale is None:
                raise NotFoundError("Sale not found", details={"sale_id": return_input.original_sale_id})
            _check_returnable_quantities(account_id, sale, return_input.items)

        settings = settings_service.load_settings_for_update(account_id)
        products = {}
        if product_ids:
            products = {
                p.id: p
                for p in db.session.query(Product).filter(
                    Product.account_id == account_id,
                    Product.id.in_(product_ids),
                    Product.is_active.is_(True),
                ).all()
            }

        numeric_id = settings_service.claim_next_numeric_id(settings, "return")
        customer_id = return_input.customer_id
        customer_name = return_input.customer_name
        if sale is not None:
            customer_id = customer_id if customer_id is not None else sale.customer_id
            customer_name = customer_name or sale.customer_name

        doc = Return(
            account_id=account_id,
            numeric_return_id=numeric_id,
            original_sale_id=sale.id if sale else None,
            original_numeric_sale_id=sale.numeric_sale_id if sale else None,
            customer_id=customer_id,
            customer_name=customer_name,
            reason=return_input.reason,
            refund_method=return_input.refund_method,
            notes=return_input.notes,
            subtotal_returned=subtotal,
            adjustment_amount=round_money(return_input.adjustment_amount),
            adjustment_type=return_input.adjustment_type,
            net_refund=net_refund,
        )

        audit_lines = []
        for number, item in enumerate(return_input.items, start=1):
            line_total = round_money(item.quantity * item.price_at_sale)
            if isinstance(item, InventoryReturnLine):
                product = products.get(item.product_id)
                stock_updated = None
                if item.add_to_stock:
                    if product is None:
                        logger.warning(
                            "Return #%s: product %s not found, stock not restored", numeric_id, item.product_id
                        )
                        stock_updated = False
                    else:
                        product.stock += item.quantity
                        stock_updated = True
                description = item.description or (product.name if product else f"Product #{item.product_id}")
                line = ReturnLine(
                    line_number=number,
                    line_kind=LINE_KIND_INVENTORY,
                    product_id=item.product_id,
                    product_code=product.product_code if product else None,
                    description=description,
                    quantity=item.quantity,
                    price_at_sale=item.price_at_sale,
                    line_total=line_total,
                    add_to_stock=item.add_to_stock,
                    stock_updated=stock_updated,
                )
                audit_lines.append({
                    "product_id": item.product_id,
                    "description": description,
                    "product_code": product.product_code if product else None,
                    "quantity": item.quantity,
                    "stock_updated": stock_updated,
                    "new_stock": product.stock if product else None,
                })
            elif isinstance(item, ManualReturnLine):
                line = ReturnLine(
                    line_number=number,
                    line_kind=LINE_KIND_MANUAL,
                    description=item.description,
                    quantity=item.quantity,
                    price_at_sale=item.price_at_sale,
                    line_total=line_total,
                    add_to_stock=False,
                    stock_updated=None,
                )
                audit_lines.append({
                    "product_id": None,
                    "description": item.description,
                    "product_code": None,
                    "quantity": item.quantity,
                    "stock_updated": None,
                    "new_stock": None,
                })
            else:
                raise TypeError(f"Unsupported return line item: {item!r}")
            doc.lines.append(line)

        settings_service.apply_cash_delta(settings, -net_refund)
        db.session.add(doc)
        db.session.flush()
        if net_refund > 0:
            label = f" for sale #{sale.numeric_sale_id}" if sale else ""
            ledger_service.append_business_transaction(
                account_id=account_id,
                transaction_type=ledger_service.SALE_RETURN,
                description=f"Refund for return #{numeric_id}{label}",
                amount=-net_refund,
                related_document_id=numeric_id,
                notes=return_input.reason,
            )

        snapshot = {
            "return_id": doc.id,
            "numeric_return_id": numeric_id,
            "original_numeric_sale_id": doc.original_numeric_sale_id,
            "customer_name": customer_name,
            "net_refund": net_refund,
            "currency": settings.currency,
            "lines": audit_lines,
        }
        db.session.commit()
        return doc, snapshot

    doc, snapshot = run_with_retry(_op, operation="add_return", path=f"returns/{account_id}")
    deferred.submit("return_activity", log_return_activity, account_id, snapshot)
    return doc


def log_return_activity(account_id: int, snapshot: dict) -> None:
    number = snapshot["numeric_return_id"]
    for line in snapshot["lines"]:
        details = {
            "product_id": line["product_id"],
            "return_id": snapshot["return_id"],
            "quantity": line["quantity"],
            "stock_updated": line["stock_updated"],
        }
        if line["stock_updated"]:
            activity_service.log_activity(
                account_id,
                activity_service.STOCK_ADD,
                f"Stock for {line['description']} (Code: {line['product_code']}) increased by "
                f"{line['quantity']} (Return #{number}). New stock: {line['new_stock']}.",
                details,
                commit=False,
            )
            continue
        if line["stock_updated"] is False:
            outcome = f"product #{line['product_id']} not found, no stock updated"
        else:
            outcome = "no stock updated"
        activity_service.log_activity(
            account_id,
            activity_service.RETURN_PROCESSED,
            f"Returned {line['quantity']} x {line['description']} (Return #{number}): {outcome}.",
            details,
            commit=False,
        )
    description = f"Return #{snapshot['numeric_return_id']} processed"
    if snapshot["original_numeric_sale_id"]:
        description += f" for sale #{snapshot['original_numeric_sale_id']}"
    if snapshot["customer_name"]:
        description += f" ({snapshot['customer_name']})"
    description += f". Refund: {format_currency(snapshot['net_refund'], snapshot['currency'])}"
    activity_service.log_activity(
        account_id,
        activity_service.RETURN_PROCESSED,
        description,
        {
            "return_id": snapshot["return_id"],
            "numeric_return_id": snapshot["numeric_return_id"],
            "net_refund": snapshot["net_refund"],
        },
    )


def get_return(account_id: int, return_id: int) -> Return:
    doc = db.session.query(Return).filter_by(account_id=account_id, id=return_id).first()
    if not doc:
        raise NotFoundError("Return not found", details={"return_id": return_id})
    return doc


def list_returns(account_id: int, *, period: str = "all", sale_id: int | None = None) -> list[Return]:
    start, end = period_bounds(period)
    query = db.session.query(Return).filter_by(account_id=account_id)
    if sale_id is not None:
        query = query.filter_by(original_sale_id=sale_id)
    if start is not None:
        query = query.filter(Return.return_date >= start)
    if end is not None:
        query = query.filter(Return.return_date < end)
    return query.order_by(Return.return_date.desc(), Return.id.desc()).all()
