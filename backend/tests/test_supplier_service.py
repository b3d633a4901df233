import pytest

from shopledger.errors import NotFoundError, ValidationError
from shopledger.extensions import db
from shopledger.models import BusinessTransaction, Customer, Sale
from shopledger.schemas import InventoryLineItem, PurchaseInvoiceInput, RestockLine, SaleInput
from shopledger.services import (
    customer_service,
    ledger_service,
    purchase_service,
    sales_service,
    settings_service,
    supplier_service,
)


def _purchase(account_id, supplier_id, product_id, quantity, price, paid=0.0):
    return purchase_service.add_purchase_invoice(
        account_id,
        PurchaseInvoiceInput(
            supplier_id=supplier_id,
            items=[RestockLine(product_id, quantity, price)],
            amount_paid=paid,
        ),
    )


@pytest.mark.parametrize("balance_type, expected", [
    ("owed_to_supplier", 250.0),
    ("owed_by_user", -250.0),
])
def test_opening_balance_sign(account, balance_type, expected):
    supplier = supplier_service.add_supplier(
        account.id, {"name": "Opening Co", "opening_balance": 250.0, "opening_balance_type": balance_type}
    )

    assert supplier.current_balance == expected


def test_invalid_opening_balance_type(account):
    with pytest.raises(ValidationError):
        supplier_service.add_supplier(account.id, {"name": "Bad", "opening_balance_type": "sideways"})


def test_add_supplier_counts(account, supplier, fresh):
    fresh()
    assert settings_service.get_settings(account.id).total_suppliers == 1


def test_payment_allocates_oldest_invoice_first(account, make_product, supplier, fresh):
    product = make_product(stock=0)
    first = _purchase(account.id, supplier.id, product.id, 3, 100.0)
    second = _purchase(account.id, supplier.id, product.id, 2, 100.0)

    supplier_service.record_supplier_payment(account.id, supplier.id, 400.0, reference="CHQ-19")

    fresh()
    assert first.payment_status == "paid"
    assert first.amount_paid == 300.0
    assert second.payment_status == "partially_paid"
    assert second.amount_paid == 100.0
    assert supplier.current_balance == 100.0
    assert settings_service.get_settings(account.id).current_business_cash == -400.0
    entry = db.session.query(BusinessTransaction).filter_by(
        account_id=account.id, type=ledger_service.SUPPLIER_PAYMENT
    ).one()
    assert entry.amount == -400.0
    assert "Ref: CHQ-19" in entry.description
    assert ledger_service.reconcile_cash(account.id).is_consistent


def test_overpayment_becomes_advance(account, supplier, fresh):
    supplier_service.record_supplier_payment(account.id, supplier.id, 75.0)

    assert fresh(supplier).current_balance == -75.0


def test_payment_must_be_positive(account, supplier):
    with pytest.raises(ValidationError):
        supplier_service.record_supplier_payment(account.id, supplier.id, 0)


def test_supplier_with_invoices_cannot_be_deleted(account, make_product, supplier):
    product = make_product()
    _purchase(account.id, supplier.id, product.id, 1, 10.0)

    with pytest.raises(ValidationError):
        supplier_service.delete_supplier(account.id, supplier.id)


def test_delete_supplier(account, supplier, fresh):
    supplier_service.delete_supplier(account.id, supplier.id)

    fresh()
    with pytest.raises(NotFoundError):
        supplier_service.get_supplier(account.id, supplier.id)
    assert settings_service.get_settings(account.id).total_suppliers == 0


def test_update_supplier_cannot_change_opening_balance(account, supplier):
    with pytest.raises(ValidationError):
        supplier_service.update_supplier(account.id, supplier.id, {"opening_balance": 10.0})


def test_customer_requires_phone(account):
    with pytest.raises(ValidationError):
        customer_service.add_customer(account.id, {"name": "No Phone"})


def test_customer_company_name_only(account):
    customer = customer_service.add_customer(account.id, {"company_name": "Khan Traders", "phone": "042-111"})

    assert customer.name == "Khan Traders"


def test_walk_in_customer_cannot_be_deleted(account):
    walk_in = customer_service.ensure_walk_in_customer(account.id)

    with pytest.raises(ValidationError):
        customer_service.delete_customer(account.id, walk_in.id)


def test_deleting_customer_keeps_sale_name(account, make_product, customer, fresh):
    product = make_product()
    sale = sales_service.process_sale(
        account.id, SaleInput(items=[InventoryLineItem(product.id, 1, 50.0)], customer_id=customer.id)
    ).sale

    customer_service.delete_customer(account.id, customer.id)

    fresh()
    sale = db.session.get(Sale, sale.id)
    assert sale.customer_id is None
    assert sale.customer_name == "Sara Khan"
    assert db.session.query(Customer).filter_by(account_id=account.id, is_walk_in=False).count() == 0
