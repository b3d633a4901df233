# Overview: Service-layer operations for inventory; products, stock edits and soft deletes.

"""
Inventory store.

STOCK INVARIANT: stock is never negative after a committed operation. Every
write path checks before it writes and raises InsufficientStockError; there
is no capping at zero.

CASH COUPLING:
- Stock added with a known cost (direct add or manual increase) is treated
  as bought with business cash: a deferred cash debit plus a
  purchase_payment ledger entry.
- Deleting a product can credit its remaining stock value back to cash
  (stock_adjustment_credit), atomically with the delete.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..currency import format_currency, round_money
from ..errors import DuplicateKeyError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import Product
from ..time_utils import utcnow
from ..validation import (
    PRODUCT_DETAILS_POLICY,
    PRODUCT_POLICY,
    enforce_rules_product,
    validate_payload,
)
from . import activity_service, ledger_service, settings_service
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"
STOCK_ACTIONS = ("set", "add", "remove")


def get_product(account_id: int, product_id: int, *, include_inactive: bool = False) -> Product:
    query = db.session.query(Product).filter_by(account_id=account_id, id=product_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    product = query.first()
    if not product:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def get_product_by_code(account_id: int, product_code: str) -> Product | None:
    return (
        db.session.query(Product)
        .filter_by(account_id=account_id, product_code=product_code.strip(), is_active=True)
        .first()
    )


def list_products(
    account_id: int,
    *,
    include_inactive: bool = False,
    search: str | None = None,
    category: str | None = None,
) -> list[Product]:
    query = db.session.query(Product).filter_by(account_id=account_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter((Product.name.ilike(like)) | (Product.product_code.ilike(like)))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def list_low_stock(account_id: int) -> list[Product]:
    threshold = settings_service.get_settings(account_id).low_stock_threshold
    return (
        db.session.query(Product)
        .filter(
            Product.account_id == account_id,
            Product.is_active.is_(True),
            Product.stock <= threshold,
        )
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


def ensure_code_available(account_id: int, product_code: str) -> None:
    existing = get_product_by_code(account_id, product_code)
    if existing:
        raise DuplicateKeyError(
            f'Product with code "{product_code}" already exists (Name: {existing.name})',
            details={"product_code": product_code, "existing_product_id": existing.id},
        )


def remember_category(settings, category: str | None) -> None:
    if not category:
        return
    known = list(settings.known_categories or [])
    if category not in known:
        known.append(category)
        settings.known_categories = known


def add_product(account_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    patch["category"] = patch.get("category") or DEFAULT_CATEGORY
    patch.setdefault("cost_price", 0.0)
    patch.setdefault("stock", 0)
    patch.setdefault("discount_percentage", 0.0)

    def _op():
        ensure_code_available(account_id, patch["product_code"])
        settings = settings_service.load_settings_for_update(account_id)
        product = Product(account_id=account_id, **patch)
        db.session.add(product)
        settings.total_products = (settings.total_products or 0) + 1
        remember_category(settings, product.category)
        currency = settings.currency
        db.session.commit()
        return product, currency

    try:
        product, currency = run_with_retry(_op, operation="add_product", path=f"products/{account_id}")
    except IntegrityError as exc:
        raise DuplicateKeyError(
            f'Product with code "{patch["product_code"]}" already exists',
            details={"product_code": patch["product_code"]},
            operation="add_product",
        ) from exc

    stock_value = round_money(product.stock * product.cost_price)
    if stock_value > 0:
        deferred.submit(
            "initial_stock_payment",
            ledger_service.record_cash_movement,
            account_id,
            -stock_value,
            ledger_service.PURCHASE_PAYMENT,
            f"Initial stock purchase: {product.name} (x{product.stock})",
            product.id,
        )
    deferred.submit(
        "new_product_activity",
        activity_service.log_activity,
        account_id,
        activity_service.INVENTORY_UPDATE,
        f"New product added: {product.name} (Code: {product.product_code}). "
        f"Stock: {product.stock}, price {format_currency(product.price, currency)}",
        {"product_id": product.id, "product_code": product.product_code, "stock": product.stock},
    )
    return product


def update_product_stock(
    account_id: int,
    product_id: int,
    action: str,
    quantity: int,
    *,
    cost_price: float | None = None,
) -> Product:
    """
    Manual stock edit: "set" to an absolute value, or "add"/"remove" a delta.

    An increase with a positive cost is paid from business cash in the
    deferred phase (purchase_payment).
    """
    if action not in STOCK_ACTIONS:
        raise ValidationError(f"action must be one of {list(STOCK_ACTIONS)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("quantity must be a non-negative integer")
    if action != "set" and quantity == 0:
        raise ValidationError("quantity must be greater than 0")
    if cost_price is not None and cost_price < 0:
        raise ValidationError("cost_price must be >= 0")

    def _op():
        product = get_product(account_id, product_id)
        old_stock = product.stock
        if action == "set":
            new_stock = quantity
        elif action == "add":
            new_stock = old_stock + quantity
        else:
            new_stock = old_stock - quantity
        if new_stock < 0:
            raise InsufficientStockError(
                f"Cannot remove {quantity} units of {product.name}; only {old_stock} in stock",
                details={"product_id": product_id, "requested_quantity": quantity, "on_hand": old_stock},
            )
        product.stock = new_stock
        unit_cost = cost_price if cost_price is not None else (product.cost_price or 0.0)
        db.session.commit()
        return product, old_stock, unit_cost

    product, old_stock, unit_cost = run_with_retry(
        _op, operation="update_product_stock", path=f"products/{product_id}"
    )
    difference = product.stock - old_stock

    if difference > 0 and unit_cost > 0:
        deferred.submit(
            "stock_add_payment",
            ledger_service.record_cash_movement,
            account_id,
            -round_money(difference * unit_cost),
            ledger_service.PURCHASE_PAYMENT,
            f"Stock added for {product.name} (x{difference})",
            product.id,
        )

    description = f"Stock for {product.name} (Code: {product.product_code}) "
    if action == "set":
        description += f"set to {product.stock}."
    elif action == "add":
        description += f"increased by {quantity}. New stock: {product.stock}."
    else:
        description += f"decreased by {quantity}. New stock: {product.stock}."
    deferred.submit(
        "stock_edit_activity",
        activity_service.log_activity,
        account_id,
        activity_service.STOCK_ADD if action == "add" else activity_service.INVENTORY_UPDATE,
        description,
        {"product_id": product.id, "old_stock": old_stock, "new_stock": product.stock, "action": action},
    )
    return product


def update_product_details(account_id: int, product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_DETAILS_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = get_product(account_id, product_id)
        for key, value in patch.items():
            setattr(product, key, value)
        if "category" in patch:
            product.category = product.category or DEFAULT_CATEGORY
            remember_category(settings_service.load_settings_for_update(account_id), product.category)
        db.session.commit()
        return product

    product = run_with_retry(_op, operation="update_product_details", path=f"products/{product_id}")
    deferred.submit(
        "product_details_activity",
        activity_service.log_activity,
        account_id,
        activity_service.INVENTORY_UPDATE,
        f"Details updated for product: {product.name} (Code: {product.product_code}).",
        {"product_id": product.id, "updated_fields": sorted(patch)},
    )
    return product


def delete_product(account_id: int, product_id: int, *, credit_cash: bool = False) -> Product:
    """
    Soft-delete a product.

    With credit_cash, the remaining stock value (stock x cost_price) is
    credited to business cash with a stock_adjustment_credit entry in the
    same transaction.
    """
    def _op():
        product = get_product(account_id, product_id)
        settings = settings_service.load_settings_for_update(account_id)
        credited = 0.0
        if credit_cash:
            credited = round_money(product.stock * (product.cost_price or 0.0))
        if credited > 0:
            settings_service.apply_cash_delta(settings, credited)
            ledger_service.append_business_transaction(
                account_id=account_id,
                transaction_type=ledger_service.STOCK_ADJUSTMENT_CREDIT,
                description=f"Stock value credited for deleted product: {product.name}",
                amount=credited,
                related_document_id=product.id,
                notes=f"Credited for {product.stock} units at cost of {product.cost_price:.2f} each.",
            )
        product.is_active = False
        product.deleted_at = utcnow()
        settings.total_products = max(0, (settings.total_products or 0) - 1)
        currency = settings.currency
        db.session.commit()
        return product, credited, currency

    product, credited, currency = run_with_retry(
        _op, operation="delete_product", path=f"products/{product_id}"
    )
    description = f"Product removed from inventory: {product.name} (Code: {product.product_code})."
    if credited > 0:
        description += f" {format_currency(credited, currency)} credited to cash."
    deferred.submit(
        "product_delete_activity",
        activity_service.log_activity,
        account_id,
        activity_service.PRODUCT_DELETE,
        description,
        {"product_id": product.id, "credited_cash": credit_cash, "credited_amount": credited},
    )
    return product
