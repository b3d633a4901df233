import pytest

from shopledger.errors import DuplicateKeyError, InsufficientStockError, NotFoundError
from shopledger.extensions import db
from shopledger.models import ActivityLogEntry, BusinessTransaction, Product
from shopledger.schemas import NewProductLine, PurchaseInvoiceInput, RestockLine
from shopledger.services import ledger_service, purchase_service, settings_service, supplier_service


def _invoice(supplier_id, *items, **kwargs):
    return PurchaseInvoiceInput(supplier_id=supplier_id, items=list(items), **kwargs)


def test_partial_payment_moves_supplier_balance_and_cash(account, make_product, supplier, fresh):
    product = make_product(stock=5)

    invoice = purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, RestockLine(product.id, 10, 50.0), amount_paid=200.0)
    )

    assert invoice.total_amount == 500.0
    assert invoice.payment_status == "partially_paid"
    assert invoice.numeric_purchase_id == 1
    assert invoice.invoice_number == "AUTOGEN-1"

    fresh()
    assert supplier.current_balance == 300.0
    assert product.stock == 15
    assert product.cost_price == 50.0
    assert settings_service.get_settings(account.id).current_business_cash == -200.0
    entries = db.session.query(BusinessTransaction).filter_by(
        account_id=account.id, type=ledger_service.PURCHASE_PAYMENT
    ).all()
    assert [e.amount for e in entries] == [-200.0]
    assert ledger_service.reconcile_cash(account.id).is_consistent


@pytest.mark.parametrize("total, paid, expected", [
    (500.0, 500.0, "paid"),
    (500.0, 600.0, "paid"),
    (500.0, 1.0, "partially_paid"),
    (500.0, 0.0, "unpaid"),
])
def test_payment_status(total, paid, expected):
    assert purchase_service.derive_payment_status(total, paid) == expected


def test_new_product_line_creates_product(account, supplier, fresh):
    invoice = purchase_service.add_purchase_invoice(
        account.id,
        _invoice(
            supplier.id,
            NewProductLine("NEW-1", "Green Tea 200g", 12, 80.0, 120.0, category="Beverages"),
            invoice_number="INV-77",
        ),
    )

    fresh()
    product = db.session.query(Product).filter_by(account_id=account.id, product_code="NEW-1").one()
    assert product.stock == 12
    assert product.price == 120.0
    assert product.cost_price == 80.0
    assert invoice.lines[0].created_product is True
    assert invoice.payment_status == "unpaid"

    settings = settings_service.get_settings(account.id)
    assert settings.total_products == 1
    assert "Beverages" in settings.known_categories
    assert supplier.current_balance == 960.0


def test_new_product_without_category_is_uncategorized(account, supplier):
    purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, NewProductLine("NEW-2", "Matches", 100, 1.0, 2.0))
    )

    product = db.session.query(Product).filter_by(account_id=account.id, product_code="NEW-2").one()
    assert product.category == "Uncategorized"


def test_duplicate_product_code_rejects_whole_invoice(account, make_product, supplier, fresh):
    existing = make_product(stock=5)
    restock = make_product(stock=5)

    with pytest.raises(DuplicateKeyError):
        purchase_service.add_purchase_invoice(
            account.id,
            _invoice(
                supplier.id,
                RestockLine(restock.id, 5, 10.0),
                NewProductLine(existing.product_code, "Clash", 1, 1.0, 2.0),
            ),
        )

    fresh()
    assert restock.stock == 5
    assert supplier.current_balance == 0.0
    assert settings_service.get_settings(account.id).last_purchase_numeric_id == 0


def test_unknown_supplier(account, make_product):
    product = make_product()

    with pytest.raises(NotFoundError):
        purchase_service.add_purchase_invoice(account.id, _invoice(987654, RestockLine(product.id, 1, 1.0)))


def test_purchase_writes_audit_trail(account, make_product, supplier, fresh):
    product = make_product(stock=2)

    purchase_service.add_purchase_invoice(account.id, _invoice(supplier.id, RestockLine(product.id, 3, 10.0)))

    fresh()
    types = [e.type for e in db.session.query(ActivityLogEntry).filter_by(account_id=account.id).all()]
    assert "STOCK_ADD" in types
    assert "SUPPLIER_BALANCE_UPDATE" in types
    assert "PURCHASE_RECORDED" in types


def test_update_adjusts_stock_supplier_and_cash(account, make_product, supplier, fresh):
    product = make_product(stock=0)
    invoice = purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, RestockLine(product.id, 10, 50.0), amount_paid=100.0)
    )

    purchase_service.update_purchase_invoice(
        account.id, invoice.id, _invoice(supplier.id, RestockLine(product.id, 6, 50.0), amount_paid=300.0)
    )

    fresh()
    assert product.stock == 6
    assert invoice.total_amount == 300.0
    assert invoice.payment_status == "paid"
    assert supplier.current_balance == 0.0
    assert settings_service.get_settings(account.id).current_business_cash == -300.0
    assert ledger_service.reconcile_cash(account.id).is_consistent
    assert db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="PURCHASE_UPDATED").count() == 1


def test_update_cannot_take_stock_negative(account, make_product, supplier, fresh):
    product = make_product(stock=0)
    invoice = purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, RestockLine(product.id, 10, 5.0))
    )
    # Sell most of the purchased stock
    from shopledger.schemas import InventoryLineItem, SaleInput
    from shopledger.services import sales_service
    sales_service.process_sale(account.id, SaleInput(items=[InventoryLineItem(product.id, 8, 9.0)]))

    with pytest.raises(InsufficientStockError):
        purchase_service.update_purchase_invoice(
            account.id, invoice.id, _invoice(supplier.id, RestockLine(product.id, 1, 5.0))
        )

    fresh()
    assert product.stock == 2
    assert invoice.total_amount == 50.0


def test_update_moves_balance_between_suppliers(account, make_product, supplier, fresh):
    other = supplier_service.add_supplier(account.id, {"name": "Second Source"})
    product = make_product(stock=0)
    invoice = purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, RestockLine(product.id, 4, 25.0))
    )

    purchase_service.update_purchase_invoice(
        account.id, invoice.id, _invoice(other.id, RestockLine(product.id, 4, 25.0))
    )

    fresh()
    assert supplier.current_balance == 0.0
    assert other.current_balance == 100.0
    assert invoice.supplier_name == "Second Source"


def test_list_open_invoices_oldest_first(account, make_product, supplier):
    product = make_product()
    first = purchase_service.add_purchase_invoice(account.id, _invoice(supplier.id, RestockLine(product.id, 1, 10.0)))
    purchase_service.add_purchase_invoice(
        account.id, _invoice(supplier.id, RestockLine(product.id, 1, 10.0), amount_paid=10.0)
    )
    third = purchase_service.add_purchase_invoice(account.id, _invoice(supplier.id, RestockLine(product.id, 1, 10.0)))

    open_ids = [i.id for i in purchase_service.list_open_invoices_for_supplier(account.id, supplier.id)]
    assert open_ids == [first.id, third.id]


def test_tax_is_part_of_grand_total(account, make_product, supplier, fresh):
    product = make_product(stock=0)

    invoice = purchase_service.add_purchase_invoice(
        account.id,
        _invoice(supplier.id, RestockLine(product.id, 10, 45.0), tax_amount=50.0, amount_paid=200.0),
    )

    assert invoice.sub_total == 450.0
    assert invoice.tax_amount == 50.0
    assert invoice.total_amount == 500.0
    assert invoice.payment_status == "partially_paid"
    assert invoice.to_dict()["tax_amount"] == 50.0

    fresh()
    assert supplier.current_balance == 300.0
    assert settings_service.get_settings(account.id).current_business_cash == -200.0


def test_paying_lines_only_leaves_taxed_invoice_open(account, make_product, supplier):
    product = make_product(stock=0)

    invoice = purchase_service.add_purchase_invoice(
        account.id,
        _invoice(supplier.id, RestockLine(product.id, 10, 45.0), tax_amount=50.0, amount_paid=450.0),
    )

    assert invoice.payment_status == "partially_paid"
    assert invoice.balance_due == 50.0


def test_update_carries_tax_change(account, make_product, supplier, fresh):
    product = make_product(stock=0)
    invoice = purchase_service.add_purchase_invoice(
        account.id,
        _invoice(supplier.id, RestockLine(product.id, 10, 45.0), tax_amount=50.0, amount_paid=200.0),
    )

    purchase_service.update_purchase_invoice(
        account.id,
        invoice.id,
        _invoice(supplier.id, RestockLine(product.id, 10, 45.0), tax_amount=20.0, amount_paid=200.0),
    )

    fresh()
    assert invoice.sub_total == 450.0
    assert invoice.tax_amount == 20.0
    assert invoice.total_amount == 470.0
    assert supplier.current_balance == 270.0
    assert product.stock == 10
    entry = db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="PURCHASE_UPDATED").one()
    assert entry.details["tax_delta"] == -30.0
