# Overview: Typed engine inputs and the caller-facing validation that builds them.

"""
Engine input types.

Line items are tagged unions. Each engine dispatches on the concrete class:

    Sale lines      InventoryLineItem | ManualLineItem
    Purchase lines  RestockLine | NewProductLine
    Return lines    InventoryReturnLine | ManualReturnLine

parse_* functions turn a JSON payload into these types and raise
ValidationError for malformed input before anything touches the store. The
engines trust their inputs to be well-formed but still enforce every
business rule that depends on stored state (stock, uniqueness, existence).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Union

from .currency import round_money
from .errors import ValidationError
from .time_utils import parse_iso_date

SALE_TYPES = ("REGULAR", "INSTANT")
ADJUSTMENT_TYPES = ("add", "deduct")


@dataclass(frozen=True)
class InventoryLineItem:
    product_id: int
    quantity: int
    price: float


@dataclass(frozen=True)
class ManualLineItem:
    description: str
    quantity: int
    price: float
    cost_price: float = 0.0


SaleLineItem = Union[InventoryLineItem, ManualLineItem]


@dataclass
class SaleInput:
    items: list[SaleLineItem]
    sale_type: str = "REGULAR"
    discount_amount: float = 0.0
    customer_id: int | None = None
    customer_name: str | None = None
    shop_name: str | None = None

    @property
    def sub_total(self) -> float:
        return round_money(sum(item.quantity * item.price for item in self.items))


@dataclass(frozen=True)
class RestockLine:
    product_id: int
    quantity: int
    purchase_price: float


@dataclass(frozen=True)
class NewProductLine:
    product_code: str
    product_name: str
    quantity: int
    purchase_price: float
    sale_price: float
    category: str | None = None


PurchaseLineItem = Union[RestockLine, NewProductLine]


@dataclass
class PurchaseInvoiceInput:
    supplier_id: int
    items: list[PurchaseLineItem]
    amount_paid: float = 0.0
    invoice_number: str | None = None
    invoice_date: Any = None
    notes: str | None = None
    tax_amount: float = 0.0

    @property
    def sub_total(self) -> float:
        return round_money(sum(item.quantity * item.purchase_price for item in self.items))

    @property
    def grand_total(self) -> float:
        return round_money(self.sub_total + self.tax_amount)


@dataclass(frozen=True)
class InventoryReturnLine:
    product_id: int
    quantity: int
    price_at_sale: float
    add_to_stock: bool = True
    description: str | None = None


@dataclass(frozen=True)
class ManualReturnLine:
    description: str
    quantity: int
    price_at_sale: float


ReturnLineItem = Union[InventoryReturnLine, ManualReturnLine]


@dataclass
class ReturnInput:
    items: list[ReturnLineItem]
    original_sale_id: int | None = None
    customer_id: int | None = None
    customer_name: str | None = None
    adjustment_amount: float = 0.0
    adjustment_type: str = "deduct"
    reason: str | None = None
    refund_method: str | None = None
    notes: str | None = None

    @property
    def subtotal_returned(self) -> float:
        return round_money(sum(item.quantity * item.price_at_sale for item in self.items))


@dataclass(frozen=True)
class QuotationLineInput:
    description: str
    quantity: int
    sale_price: float
    discount_percentage: float = 0.0
    tax_percentage: float = 0.0
    product_id: int | None = None


@dataclass
class QuotationInput:
    items: list[QuotationLineInput]
    quote_date: date
    valid_till_date: date
    customer_id: int | None = None
    customer_name: str | None = None
    status: str = "Draft"
    overall_discount_amount: float = 0.0
    overall_tax_amount: float = 0.0
    shipping_charges: float = 0.0
    extra_costs: float = 0.0
    notes: str | None = None
    terms_and_conditions: str | None = None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{name} must be an integer")


def _to_amount(value: Any, name: str, *, default: float | None = None) -> float:
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _positive_int(value: Any, name: str) -> int:
    number = _to_int(value, name)
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return number


def _positive_amount(value: Any, name: str) -> float:
    number = _to_amount(value, name)
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return number


def _non_negative_amount(value: Any, name: str) -> float:
    number = _to_amount(value, name, default=0.0)
    if number < 0:
        raise ValidationError(f"{name} must be >= 0")
    return number


def _optional_id(value: Any, name: str) -> int | None:
    if value is None or value == "":
        return None
    return _to_int(value, name)


def _items(payload: dict) -> list[dict]:
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object")
    return items


def _require_dict(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_sale_input(payload: dict) -> SaleInput:
    """
    Build a SaleInput from a JSON payload.

    Item kind is taken from "kind" ("inventory" / "manual") or inferred from
    the presence of product_id. The overall discount is clamped to the
    subtotal.
    """
    payload = _require_dict(payload)
    sale_type = (payload.get("sale_type") or "REGULAR").upper()
    if sale_type not in SALE_TYPES:
        raise ValidationError(f"sale_type must be one of {list(SALE_TYPES)}")

    items: list[SaleLineItem] = []
    for index, raw in enumerate(_items(payload), start=1):
        kind = (raw.get("kind") or ("inventory" if raw.get("product_id") is not None else "manual")).lower()
        quantity = _positive_int(raw.get("quantity"), f"items[{index}].quantity")
        price = _positive_amount(raw.get("price"), f"items[{index}].price")
        if kind == "inventory":
            items.append(InventoryLineItem(
                product_id=_to_int(raw.get("product_id"), f"items[{index}].product_id"),
                quantity=quantity,
                price=price,
            ))
        elif kind == "manual":
            description = _to_text(raw.get("description") or raw.get("name"))
            if not description:
                raise ValidationError(f"items[{index}].description is required for manual items")
            items.append(ManualLineItem(
                description=description,
                quantity=quantity,
                price=price,
                cost_price=_non_negative_amount(raw.get("cost_price"), f"items[{index}].cost_price"),
            ))
        else:
            raise ValidationError(f"items[{index}].kind must be 'inventory' or 'manual'")

    sale = SaleInput(
        items=items,
        sale_type=sale_type,
        customer_id=_optional_id(payload.get("customer_id"), "customer_id"),
        customer_name=_to_text(payload.get("customer_name")),
        shop_name=_to_text(payload.get("shop_name")),
    )
    discount = _non_negative_amount(payload.get("discount_amount"), "discount_amount")
    sale.discount_amount = min(round_money(discount), sale.sub_total)
    return sale


def parse_purchase_input(payload: dict, *, allow_new_products: bool = True) -> PurchaseInvoiceInput:
    payload = _require_dict(payload)
    supplier_id = payload.get("supplier_id")
    if supplier_id in (None, ""):
        raise ValidationError("supplier_id is required")

    items: list[PurchaseLineItem] = []
    seen_codes: set[str] = set()
    for index, raw in enumerate(_items(payload), start=1):
        kind = (raw.get("kind") or ("restock" if raw.get("product_id") is not None else "new_product")).lower()
        quantity = _positive_int(raw.get("quantity"), f"items[{index}].quantity")
        purchase_price = _positive_amount(raw.get("purchase_price"), f"items[{index}].purchase_price")
        if kind == "restock":
            items.append(RestockLine(
                product_id=_to_int(raw.get("product_id"), f"items[{index}].product_id"),
                quantity=quantity,
                purchase_price=purchase_price,
            ))
        elif kind == "new_product":
            if not allow_new_products:
                raise ValidationError("New products cannot be added when editing a purchase invoice")
            code = _to_text(raw.get("product_code"))
            name = _to_text(raw.get("product_name") or raw.get("name"))
            if not code:
                raise ValidationError(f"items[{index}].product_code is required for new products")
            if not name:
                raise ValidationError(f"items[{index}].product_name is required for new products")
            if code in seen_codes:
                raise ValidationError(f"Product code '{code}' appears more than once in this invoice")
            seen_codes.add(code)
            items.append(NewProductLine(
                product_code=code,
                product_name=name,
                quantity=quantity,
                purchase_price=purchase_price,
                sale_price=_positive_amount(raw.get("sale_price"), f"items[{index}].sale_price"),
                category=_to_text(raw.get("category")),
            ))
        else:
            raise ValidationError(f"items[{index}].kind must be 'restock' or 'new_product'")

    return PurchaseInvoiceInput(
        supplier_id=_to_int(supplier_id, "supplier_id"),
        items=items,
        amount_paid=_non_negative_amount(payload.get("amount_paid"), "amount_paid"),
        invoice_number=_to_text(payload.get("invoice_number")),
        invoice_date=payload.get("invoice_date"),
        notes=_to_text(payload.get("notes")),
        tax_amount=_non_negative_amount(payload.get("tax_amount"), "tax_amount"),
    )


def parse_return_input(payload: dict) -> ReturnInput:
    payload = _require_dict(payload)
    adjustment_type = (payload.get("adjustment_type") or "deduct").lower()
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError("adjustment_type must be 'add' or 'deduct'")

    items: list[ReturnLineItem] = []
    for index, raw in enumerate(_items(payload), start=1):
        kind = (raw.get("kind") or ("inventory" if raw.get("product_id") is not None else "manual")).lower()
        quantity = _positive_int(raw.get("quantity"), f"items[{index}].quantity")
        price = _positive_amount(raw.get("price_at_sale"), f"items[{index}].price_at_sale")
        if kind == "inventory":
            items.append(InventoryReturnLine(
                product_id=_to_int(raw.get("product_id"), f"items[{index}].product_id"),
                quantity=quantity,
                price_at_sale=price,
                add_to_stock=bool(raw.get("add_to_stock", True)),
                description=_to_text(raw.get("description") or raw.get("name")),
            ))
        elif kind == "manual":
            description = _to_text(raw.get("description") or raw.get("name"))
            if not description:
                raise ValidationError(f"items[{index}].description is required for manual items")
            items.append(ManualReturnLine(description=description, quantity=quantity, price_at_sale=price))
        else:
            raise ValidationError(f"items[{index}].kind must be 'inventory' or 'manual'")

    return ReturnInput(
        items=items,
        original_sale_id=_optional_id(payload.get("original_sale_id"), "original_sale_id"),
        customer_id=_optional_id(payload.get("customer_id"), "customer_id"),
        customer_name=_to_text(payload.get("customer_name")),
        adjustment_amount=_non_negative_amount(payload.get("adjustment_amount"), "adjustment_amount"),
        adjustment_type=adjustment_type,
        reason=_to_text(payload.get("reason")),
        refund_method=_to_text(payload.get("refund_method")),
        notes=_to_text(payload.get("notes")),
    )


def _percentage(value: Any, name: str) -> float:
    number = _non_negative_amount(value, name)
    if number > 100:
        raise ValidationError(f"{name} must be between 0 and 100")
    return number


def parse_quotation_input(payload: dict) -> QuotationInput:
    payload = _require_dict(payload)
    try:
        quote_date = parse_iso_date(payload.get("quote_date"))
        valid_till = parse_iso_date(payload.get("valid_till_date"))
    except ValueError:
        raise ValidationError("quote_date and valid_till_date must be ISO dates")
    if quote_date is None or valid_till is None:
        raise ValidationError("quote_date and valid_till_date are required")
    if valid_till < quote_date:
        raise ValidationError("valid_till_date cannot be before quote_date")

    items: list[QuotationLineInput] = []
    for index, raw in enumerate(_items(payload), start=1):
        description = _to_text(raw.get("description") or raw.get("name"))
        if not description:
            raise ValidationError(f"items[{index}].description is required")
        items.append(QuotationLineInput(
            description=description,
            quantity=_positive_int(raw.get("quantity"), f"items[{index}].quantity"),
            sale_price=_positive_amount(raw.get("sale_price"), f"items[{index}].sale_price"),
            discount_percentage=_percentage(raw.get("discount_percentage"), f"items[{index}].discount_percentage"),
            tax_percentage=_percentage(raw.get("tax_percentage"), f"items[{index}].tax_percentage"),
            product_id=_optional_id(raw.get("product_id"), f"items[{index}].product_id"),
        ))

    return QuotationInput(
        items=items,
        quote_date=quote_date,
        valid_till_date=valid_till,
        customer_id=_optional_id(payload.get("customer_id"), "customer_id"),
        customer_name=_to_text(payload.get("customer_name")),
        status=payload.get("status") or "Draft",
        overall_discount_amount=_non_negative_amount(payload.get("overall_discount_amount"), "overall_discount_amount"),
        overall_tax_amount=_non_negative_amount(payload.get("overall_tax_amount"), "overall_tax_amount"),
        shipping_charges=_non_negative_amount(payload.get("shipping_charges"), "shipping_charges"),
        extra_costs=_non_negative_amount(payload.get("extra_costs"), "extra_costs"),
        notes=_to_text(payload.get("notes")),
        terms_and_conditions=_to_text(payload.get("terms_and_conditions")),
    )
