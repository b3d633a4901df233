"""
Sale engine tests.

Covers the atomic phase (stock, numbering, all-or-nothing) and the deferred
phase (customer link, cash, ledger, audit trail).
"""

import pytest

from shopledger.errors import InsufficientStockError, NotFoundError
from shopledger.extensions import db
from shopledger.models import ActivityLogEntry, BusinessTransaction, Customer, Sale
from shopledger.schemas import InventoryLineItem, ManualLineItem, SaleInput
from shopledger.services import ledger_service, sales_service, settings_service


def _sale(*items, **kwargs):
    return SaleInput(items=list(items), **kwargs)


def test_insufficient_stock_writes_nothing(account, make_product, fresh):
    product = make_product(stock=10)

    with pytest.raises(InsufficientStockError) as exc_info:
        sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 11, 50.0)))

    err = exc_info.value
    assert err.operation == "process_sale"
    assert err.details["items"][0]["on_hand"] == 10
    assert err.details["items"][0]["requested_quantity"] == 11

    fresh()
    assert product.stock == 10
    assert db.session.query(Sale).filter_by(account_id=account.id).count() == 0
    assert settings_service.get_settings(account.id).last_sale_numeric_id == 0


def test_stock_check_aggregates_lines_for_same_product(account, make_product, fresh):
    product = make_product(stock=5)
    sale_input = _sale(InventoryLineItem(product.id, 3, 50.0), InventoryLineItem(product.id, 3, 50.0))

    with pytest.raises(InsufficientStockError):
        sales_service.process_sale(account.id, sale_input)

    assert fresh(product).stock == 5


def test_one_bad_product_fails_whole_sale(account, make_product, fresh):
    ok = make_product(stock=10)
    short = make_product(stock=1)

    with pytest.raises(InsufficientStockError):
        sales_service.process_sale(
            account.id,
            _sale(InventoryLineItem(ok.id, 2, 50.0), InventoryLineItem(short.id, 2, 50.0)),
        )

    fresh()
    assert ok.stock == 10
    assert short.stock == 1


def test_discounted_sale_moves_cash_and_writes_one_ledger_entry(account, make_product, fresh):
    product = make_product(price=50.0, stock=10)

    result = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 2, 50.0), discount_amount=20.0)
    )

    sale = result.sale
    assert sale.numeric_sale_id == 1
    assert sale.sub_total == 100.0
    assert sale.discount_amount == 20.0
    assert sale.grand_total == 80.0
    assert [p.stock for p in result.updated_products] == [8]

    fresh()
    assert settings_service.get_settings(account.id).current_business_cash == 80.0
    entries = db.session.query(BusinessTransaction).filter_by(
        account_id=account.id, type=ledger_service.SALE_INCOME
    ).all()
    assert len(entries) == 1
    assert entries[0].amount == 80.0
    assert entries[0].related_document_id == "1"
    assert ledger_service.reconcile_cash(account.id).is_consistent


def test_discount_is_clamped_to_subtotal(account, make_product):
    product = make_product(price=30.0)

    result = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 1, 30.0), discount_amount=100.0)
    )

    assert result.sale.discount_amount == 30.0
    assert result.sale.grand_total == 0.0


def test_numeric_ids_stay_gap_free_after_failed_sale(account, make_product):
    product = make_product(stock=3)

    first = sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 1, 50.0)))
    with pytest.raises(InsufficientStockError):
        sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 5, 50.0)))
    second = sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 1, 50.0)))

    assert [first.sale.numeric_sale_id, second.sale.numeric_sale_id] == [1, 2]


def test_instant_sale_with_manual_items(account):
    sale_input = _sale(
        ManualLineItem("Gift wrap", 2, 15.0, cost_price=5.0),
        ManualLineItem("Delivery", 1, 100.0),
        sale_type="INSTANT",
    )

    sale = sales_service.process_sale(account.id, sale_input).sale

    assert sale.grand_total == 130.0
    assert sale.estimated_total_cogs == 10.0
    assert sale.items_description == "Gift wrap x2, Delivery x1"
    assert all(line.product_id is None for line in sale.lines)


def test_unknown_product_is_not_found(account):
    with pytest.raises(NotFoundError):
        sales_service.process_sale(account.id, _sale(InventoryLineItem(999999, 1, 10.0)))


def test_deleted_product_cannot_be_sold(account, make_product):
    from shopledger.services import inventory_service

    product = make_product()
    inventory_service.delete_product(account.id, product.id)

    with pytest.raises(NotFoundError):
        sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 1, 50.0)))


def test_no_customer_uses_walk_in(account, make_product):
    product = make_product()

    sale = sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 1, 50.0))).sale

    walk_in = db.session.query(Customer).filter_by(account_id=account.id, is_walk_in=True).one()
    assert sale.customer_id == walk_in.id
    assert sale.customer_name == "Walk-in Customer"


def test_explicit_customer_id(account, make_product, customer):
    product = make_product()

    sale = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 1, 50.0), customer_id=customer.id)
    ).sale

    assert sale.customer_id == customer.id
    assert sale.customer_name == "Sara Khan"


def test_unknown_customer_id_is_rejected(account, make_product, fresh):
    product = make_product(stock=4)

    with pytest.raises(NotFoundError):
        sales_service.process_sale(
            account.id, _sale(InventoryLineItem(product.id, 1, 50.0), customer_id=424242)
        )

    assert fresh(product).stock == 4


def test_typed_name_creates_customer_in_deferred_phase(account, make_product, fresh):
    product = make_product()

    sale = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 1, 50.0), customer_name="Bilal Ahmed")
    ).sale

    fresh()
    created = db.session.query(Customer).filter_by(account_id=account.id, name="Bilal Ahmed").one()
    assert sale.customer_id == created.id
    assert sale.customer_name == "Bilal Ahmed"
    assert db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="NEW_CUSTOMER").count() == 1


def test_typed_name_reuses_existing_customer(account, make_product, customer, fresh):
    product = make_product()

    sale = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 1, 50.0), customer_name="sara khan")
    ).sale

    fresh()
    assert sale.customer_id == customer.id
    assert db.session.query(Customer).filter_by(account_id=account.id, is_walk_in=False).count() == 1


def test_typed_phone_becomes_cash_customer(account, make_product, fresh):
    product = make_product()

    sale = sales_service.process_sale(
        account.id, _sale(InventoryLineItem(product.id, 1, 50.0), customer_name="0300-7654321")
    ).sale

    fresh()
    created = db.session.get(Customer, sale.customer_id)
    assert created.name == "Cash"
    assert created.phone == "0300-7654321"


def test_sale_writes_audit_trail(account, make_product, fresh):
    product = make_product(stock=10)

    sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 3, 50.0)))

    fresh()
    updates = db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="INVENTORY_UPDATE").all()
    assert any("decreased by 3" in entry.description and "New stock: 7" in entry.description for entry in updates)
    summary = db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="SALE").one()
    assert summary.details["numeric_sale_id"] == 1


def test_deferred_failure_keeps_sale(account, make_product, monkeypatch, fresh):
    product = make_product(stock=10)

    def _boom(*args, **kwargs):
        raise RuntimeError("ledger offline")

    monkeypatch.setattr(ledger_service, "record_cash_movement", _boom)

    result = sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 2, 50.0)))

    fresh()
    assert db.session.get(Sale, result.sale.id) is not None
    assert product.stock == 8
    assert settings_service.get_settings(account.id).current_business_cash == 0.0
    assert ledger_service.reconcile_cash(account.id).is_consistent


def test_sale_lookup_by_number_is_account_scoped(account, other_account, make_product):
    product = make_product()
    sales_service.process_sale(account.id, _sale(InventoryLineItem(product.id, 1, 50.0)))

    assert sales_service.get_sale_by_numeric_id(account.id, 1).numeric_sale_id == 1
    with pytest.raises(NotFoundError):
        sales_service.get_sale_by_numeric_id(other_account.id, 1)
