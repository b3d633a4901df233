from datetime import date

import pytest

from shopledger.errors import ValidationError
from shopledger.schemas import (
    InventoryLineItem,
    InventoryReturnLine,
    ManualLineItem,
    ManualReturnLine,
    NewProductLine,
    RestockLine,
    parse_purchase_input,
    parse_quotation_input,
    parse_return_input,
    parse_sale_input,
)


def test_sale_item_kind_inferred():
    sale = parse_sale_input({
        "items": [
            {"product_id": 3, "quantity": 2, "price": 10},
            {"description": "Gift wrap", "quantity": 1, "price": "5.50"},
        ],
        "customer_name": "  Ali  ",
    })

    assert sale.items == [InventoryLineItem(3, 2, 10.0), ManualLineItem("Gift wrap", 1, 5.5)]
    assert sale.customer_name == "Ali"
    assert sale.sale_type == "REGULAR"
    assert sale.sub_total == 25.5


def test_sale_discount_clamped_to_subtotal():
    sale = parse_sale_input({"items": [{"product_id": 1, "quantity": 1, "price": 40}], "discount_amount": 90})

    assert sale.discount_amount == 40.0


@pytest.mark.parametrize("payload", [
    None,
    {"items": []},
    {"items": [{"product_id": 1, "quantity": 0, "price": 10}]},
    {"items": [{"product_id": 1, "quantity": 1.5, "price": 10}]},
    {"items": [{"product_id": 1, "quantity": 1, "price": -1}]},
    {"items": [{"quantity": 1, "price": 10}]},
    {"items": [{"product_id": 1, "quantity": 1, "price": 10}], "sale_type": "LAYAWAY"},
    {"items": [{"product_id": 1, "quantity": 1, "price": 10}], "discount_amount": -5},
])
def test_sale_rejects_malformed_input(payload):
    with pytest.raises(ValidationError):
        parse_sale_input(payload)


def test_purchase_lines():
    invoice = parse_purchase_input({
        "supplier_id": "4",
        "amount_paid": 100,
        "items": [
            {"product_id": 9, "quantity": 5, "purchase_price": 20},
            {"product_code": "NEW-1", "product_name": "Tea", "quantity": 2, "purchase_price": 50, "sale_price": 70},
        ],
    })

    assert invoice.supplier_id == 4
    assert invoice.items[0] == RestockLine(9, 5, 20.0)
    assert invoice.items[1] == NewProductLine("NEW-1", "Tea", 2, 50.0, 70.0)
    assert invoice.grand_total == 200.0


def test_purchase_tax_amount():
    invoice = parse_purchase_input({
        "supplier_id": 1,
        "tax_amount": "50",
        "items": [{"product_id": 9, "quantity": 10, "purchase_price": 45}],
    })

    assert invoice.sub_total == 450.0
    assert invoice.tax_amount == 50.0
    assert invoice.grand_total == 500.0

    with pytest.raises(ValidationError):
        parse_purchase_input({
            "supplier_id": 1,
            "tax_amount": -1,
            "items": [{"product_id": 9, "quantity": 1, "purchase_price": 45}],
        })


def test_purchase_duplicate_new_codes():
    item = {"product_code": "DUP", "product_name": "X", "quantity": 1, "purchase_price": 1, "sale_price": 2}
    with pytest.raises(ValidationError):
        parse_purchase_input({"supplier_id": 1, "items": [item, dict(item)]})


def test_purchase_edit_refuses_new_products():
    payload = {
        "supplier_id": 1,
        "items": [{"product_code": "N", "product_name": "X", "quantity": 1, "purchase_price": 1, "sale_price": 2}],
    }
    with pytest.raises(ValidationError):
        parse_purchase_input(payload, allow_new_products=False)


def test_purchase_requires_supplier():
    with pytest.raises(ValidationError):
        parse_purchase_input({"items": [{"product_id": 1, "quantity": 1, "purchase_price": 1}]})


def test_return_lines_and_defaults():
    doc = parse_return_input({
        "original_sale_id": 12,
        "adjustment_amount": 5,
        "items": [
            {"product_id": 2, "quantity": 2, "price_at_sale": 25, "add_to_stock": False},
            {"description": "Service", "quantity": 1, "price_at_sale": 10},
        ],
    })

    assert doc.adjustment_type == "deduct"
    assert doc.items[0] == InventoryReturnLine(2, 2, 25.0, add_to_stock=False)
    assert doc.items[1] == ManualReturnLine("Service", 1, 10.0)
    assert doc.subtotal_returned == 60.0


def test_return_bad_adjustment_type():
    with pytest.raises(ValidationError):
        parse_return_input({"adjustment_type": "bonus", "items": [{"description": "x", "quantity": 1, "price_at_sale": 1}]})


def test_quotation_dates():
    quote = parse_quotation_input({
        "quote_date": "2026-10-01",
        "valid_till_date": "2026-10-31T00:00:00Z",
        "items": [{"description": "Chair", "quantity": 2, "sale_price": 100, "tax_percentage": 5}],
    })

    assert quote.quote_date == date(2026, 10, 1)
    assert quote.valid_till_date == date(2026, 10, 31)
    assert quote.items[0].tax_percentage == 5.0
    assert quote.status == "Draft"


@pytest.mark.parametrize("payload", [
    {"quote_date": "2026-10-10", "valid_till_date": "2026-10-01"},
    {"quote_date": "yesterday", "valid_till_date": "2026-10-01"},
    {"valid_till_date": "2026-10-01"},
])
def test_quotation_rejects_bad_dates(payload):
    payload = dict(payload, items=[{"description": "Chair", "quantity": 1, "sale_price": 1}])
    with pytest.raises(ValidationError):
        parse_quotation_input(payload)


def test_quotation_rejects_discount_over_100():
    with pytest.raises(ValidationError):
        parse_quotation_input({
            "quote_date": "2026-10-01",
            "valid_till_date": "2026-10-31",
            "items": [{"description": "Chair", "quantity": 1, "sale_price": 1, "discount_percentage": 101}],
        })
