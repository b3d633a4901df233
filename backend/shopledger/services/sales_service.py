"""
Sale Engine - two-phase sale processing

WHY: The cashier must never wait on bookkeeping, and a sale must never be
half-written. So a sale is split:

PHASE A (atomic, retried on conflict):
- read settings and every referenced product
- validate stock (aggregated per product), fail the whole sale otherwise
- decrement stock, claim numeric_sale_id = last + 1
- insert the Sale and its lines, commit

PHASE B (deferred, best effort, each task independent):
- resolve / auto-create the customer and patch sale.customer_id
- business cash += grand_total, one sale_income ledger entry
- INVENTORY_UPDATE per inventory line, one SALE summary entry

A Phase B failure is logged and dropped; the sale stays valid.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..currency import format_currency, round_money
from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db, deferred
from ..models import Customer, Product, Sale, SaleLine
from ..models.sales import LINE_KIND_INVENTORY, LINE_KIND_MANUAL
from ..schemas import InventoryLineItem, ManualLineItem, SaleInput
from ..time_utils import period_bounds
from . import activity_service, customer_service, ledger_service, settings_service
from .concurrency import run_with_retry


@dataclass
class SaleResult:
    sale: Sale
    updated_products: list[Product]


def _load_products(account_id: int, product_ids: set[int]) -> dict[int, Product]:
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


def _validate_stock(items: list, products: dict[int, Product]) -> None:
    requested: dict[int, int] = {}
    for item in items:
        if isinstance(item, InventoryLineItem):
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].stock
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStockError(
            "Insufficient stock to complete sale",
            details={"items": insufficient},
        )


def _resolve_customer_for_phase_a(account_id: int, sale_input: SaleInput, walk_in_name: str):
    """
    Returns (customer_id, customer_name, typed_name_for_phase_b).

    An explicit customer_id must resolve now. A free-typed name is settled in
    Phase B. No identification at all means the walk-in customer.
    """
    if sale_input.customer_id is not None:
        customer = db.session.query(Customer).filter_by(
            account_id=account_id, id=sale_input.customer_id
        ).first()
        if not customer:
            raise NotFoundError("Customer not found", details={"customer_id": sale_input.customer_id})
        return customer.id, customer.name, None

    typed = (sale_input.customer_name or "").strip()
    walk_in = customer_service.ensure_walk_in_customer(account_id)
    if not typed or typed.lower() == walk_in_name.lower():
        return walk_in.id, walk_in_name, None
    return walk_in.id, typed, typed


def process_sale(account_id: int, sale_input: SaleInput) -> SaleResult:
    """
    Process a sale. Returns as soon as Phase A commits.

    Raises:
        NotFoundError: unknown/inactive product or unknown customer id
        InsufficientStockError: any product lacks stock (nothing is written)
        TransactionConflictError / StoreUnavailableError: retries exhausted
    """
    product_ids = {item.product_id for item in sale_input.items if isinstance(item, InventoryLineItem)}

    def _op():
        settings = settings_service.load_settings_for_update(account_id)
        products = _load_products(account_id, product_ids)
        _validate_stock(sale_input.items, products)

        customer_id, customer_name, typed_name = _resolve_customer_for_phase_a(
            account_id, sale_input, settings.walk_in_customer_name
        )

        sub_total = sale_input.sub_total
        discount = min(round_money(sale_input.discount_amount), sub_total)
        grand_total = max(0.0, round_money(sub_total - discount))

        sale = Sale(
            account_id=account_id,
            numeric_sale_id=settings_service.claim_next_numeric_id(settings, "sale"),
            sale_type=sale_input.sale_type,
            customer_id=customer_id,
            customer_name=customer_name,
            shop_name=sale_input.shop_name,
            sub_total=sub_total,
            discount_amount=discount,
            grand_total=grand_total,
        )

        cogs = 0.0
        manual_descriptions = []
        for number, item in enumerate(sale_input.items, start=1):
            line_total = round_money(item.quantity * item.price)
            if isinstance(item, InventoryLineItem):
                product = products[item.product_id]
                product.stock -= item.quantity
                line = SaleLine(
                    line_number=number,
                    line_kind=LINE_KIND_INVENTORY,
                    product_id=product.id,
                    product_code=product.product_code,
                    description=product.name,
                    quantity=item.quantity,
                    price=item.price,
                    cost_price=product.cost_price or 0.0,
                    line_total=line_total,
                )
            elif isinstance(item, ManualLineItem):
                manual_descriptions.append(f"{item.description} x{item.quantity}")
                line = SaleLine(
                    line_number=number,
                    line_kind=LINE_KIND_MANUAL,
                    description=item.description,
                    quantity=item.quantity,
                    price=item.price,
                    cost_price=item.cost_price,
                    line_total=line_total,
                )
            else:
                raise TypeError(f"Unsupported sale line item: {item!r}")
            cogs += line.quantity * line.cost_price
            sale.lines.append(line)

        sale.estimated_total_cogs = round_money(cogs)
        if sale_input.sale_type == Sale.TYPE_INSTANT and manual_descriptions:
            sale.items_description = ", ".join(manual_descriptions)

        db.session.add(sale)
        db.session.flush()
        snapshot = {
            "sale_id": sale.id,
            "numeric_sale_id": sale.numeric_sale_id,
            "grand_total": grand_total,
            "currency": settings.currency,
            "customer_name": customer_name,
            "item_count": sum(item.quantity for item in sale_input.items),
            "inventory_lines": [
                {
                    "product_id": line.product_id,
                    "product_name": line.description,
                    "product_code": line.product_code,
                    "quantity": line.quantity,
                    "new_stock": products[line.product_id].stock,
                }
                for line in sale.lines
                if line.line_kind == LINE_KIND_INVENTORY
            ],
        }
        db.session.commit()
        return sale, list(products.values()), typed_name, snapshot

    sale, updated_products, typed_name, snapshot = run_with_retry(
        _op, operation="process_sale", path=f"sales/{account_id}"
    )

    _submit_phase_b(account_id, typed_name, snapshot)
    return SaleResult(sale=sale, updated_products=updated_products)


def _submit_phase_b(account_id: int, typed_name: str | None, snapshot: dict) -> None:
    if typed_name:
        deferred.submit("sale_customer", resolve_sale_customer, account_id, snapshot["sale_id"], typed_name)

    if snapshot["grand_total"] > 0:
        deferred.submit(
            "sale_cash",
            ledger_service.record_cash_movement,
            account_id,
            snapshot["grand_total"],
            ledger_service.SALE_INCOME,
            f"Sale #{snapshot['numeric_sale_id']} to {snapshot['customer_name']}",
            snapshot["numeric_sale_id"],
        )

    deferred.submit("sale_activity", log_sale_activity, account_id, snapshot)


def resolve_sale_customer(account_id: int, sale_id: int, typed_name: str) -> Customer:
    """
    Deferred: link the sale to the customer the cashier typed.

    An existing customer with the same name (case-insensitive) or phone is
    reused; otherwise one is created. A phone-like entry becomes a customer
    named "Cash" with that phone.
    """
    created = False

    def _op():
        nonlocal created
        customer = customer_service.find_customer_by_name_or_phone(account_id, typed_name)
        if customer is None:
            customer = Customer(account_id=account_id, **customer_service.customer_fields_from_typed_name(typed_name))
            db.session.add(customer)
            db.session.flush()
            created = True
        sale = db.session.query(Sale).filter_by(account_id=account_id, id=sale_id).first()
        if sale is None:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        sale.customer_id = customer.id
        db.session.commit()
        return customer

    customer = run_with_retry(_op, operation="resolve_sale_customer", path=f"sales/{sale_id}")
    if created:
        activity_service.log_activity(
            account_id,
            activity_service.NEW_CUSTOMER,
            f"New customer added from sale: {customer.name} ({customer.phone})",
            {"customer_id": customer.id, "sale_id": sale_id},
        )
    return customer


def log_sale_activity(account_id: int, snapshot: dict) -> None:
    for line in snapshot["inventory_lines"]:
        activity_service.log_activity(
            account_id,
            activity_service.INVENTORY_UPDATE,
            f"Stock for {line['product_name']} (Code: {line['product_code']}) decreased by "
            f"{line['quantity']} (Sale #{snapshot['numeric_sale_id']}). New stock: {line['new_stock']}.",
            {"product_id": line["product_id"], "sale_id": snapshot["sale_id"], "quantity": -line["quantity"]},
            commit=False,
        )
    activity_service.log_activity(
        account_id,
        activity_service.SALE,
        f"Sale #{snapshot['numeric_sale_id']} to {snapshot['customer_name']}: "
        f"{snapshot['item_count']} item(s), total {format_currency(snapshot['grand_total'], snapshot['currency'])}",
        {
            "sale_id": snapshot["sale_id"],
            "numeric_sale_id": snapshot["numeric_sale_id"],
            "grand_total": snapshot["grand_total"],
        },
    )


def get_sale(account_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(account_id=account_id, id=sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def get_sale_by_numeric_id(account_id: int, numeric_sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(account_id=account_id, numeric_sale_id=numeric_sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"numeric_sale_id": numeric_sale_id})
    return sale


def list_sales(account_id: int, *, period: str = "all", limit: int | None = None) -> list[Sale]:
    start, end = period_bounds(period)
    query = db.session.query(Sale).filter_by(account_id=account_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date < end)
    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
