import pytest

from shopledger.errors import DuplicateKeyError, InsufficientStockError, ValidationError
from shopledger.extensions import db
from shopledger.models import ActivityLogEntry, BusinessTransaction
from shopledger.services import inventory_service, ledger_service, settings_service


def test_add_product_defaults_and_counters(account, fresh):
    product = inventory_service.add_product(
        account.id, {"product_code": "SKU-1", "name": "Rice 5kg", "price": 900.0}
    )

    assert product.category == "Uncategorized"
    assert product.stock == 0
    assert product.cost_price == 0.0
    assert product.is_active is True

    fresh()
    settings = settings_service.get_settings(account.id)
    assert settings.total_products == 1
    assert "Uncategorized" in settings.known_categories


def test_add_product_requires_fields(account):
    with pytest.raises(ValidationError):
        inventory_service.add_product(account.id, {"product_code": "SKU-2", "name": "No price"})


def test_duplicate_code_is_rejected(account, make_product):
    product = make_product()

    with pytest.raises(DuplicateKeyError) as exc_info:
        inventory_service.add_product(
            account.id, {"product_code": product.product_code, "name": "Copy", "price": 1.0}
        )

    assert exc_info.value.details["existing_product_id"] == product.id


def test_same_code_allowed_in_other_account(account, other_account, make_product):
    make_product()

    other = make_product(account_id=other_account.id)

    assert other.account_id == other_account.id


def test_initial_stock_with_cost_is_paid_from_cash(account, fresh):
    inventory_service.add_product(
        account.id,
        {"product_code": "SKU-3", "name": "Soap", "price": 60.0, "cost_price": 40.0, "stock": 10},
    )

    fresh()
    assert settings_service.get_settings(account.id).current_business_cash == -400.0
    assert ledger_service.reconcile_cash(account.id).is_consistent


def test_stock_remove_below_zero_fails(account, make_product, fresh):
    product = make_product(stock=3)

    with pytest.raises(InsufficientStockError):
        inventory_service.update_product_stock(account.id, product.id, "remove", 4)

    assert fresh(product).stock == 3


@pytest.mark.parametrize("action, quantity, expected", [
    ("set", 7, 7),
    ("add", 5, 15),
    ("remove", 10, 0),
])
def test_stock_actions(account, make_product, action, quantity, expected):
    product = make_product(stock=10)

    updated = inventory_service.update_product_stock(account.id, product.id, action, quantity)

    assert updated.stock == expected


def test_stock_add_with_cost_debits_cash(account, make_product, fresh):
    product = make_product(stock=0)

    inventory_service.update_product_stock(account.id, product.id, "add", 4, cost_price=12.5)

    fresh()
    assert settings_service.get_settings(account.id).current_business_cash == -50.0
    entry = db.session.query(BusinessTransaction).filter_by(account_id=account.id).one()
    assert entry.type == ledger_service.PURCHASE_PAYMENT
    assert entry.amount == -50.0


def test_invalid_stock_action(account, make_product):
    product = make_product()

    with pytest.raises(ValidationError):
        inventory_service.update_product_stock(account.id, product.id, "double", 2)


def test_update_details_cannot_touch_stock(account, make_product):
    product = make_product(stock=10)

    with pytest.raises(ValidationError):
        inventory_service.update_product_details(account.id, product.id, {"stock": 99})


def test_update_details(account, make_product, fresh):
    product = make_product(price=10.0)

    inventory_service.update_product_details(account.id, product.id, {"price": 12.0, "category": "Snacks"})

    fresh()
    assert product.price == 12.0
    assert "Snacks" in settings_service.get_settings(account.id).known_categories


def test_delete_with_credit_adds_stock_value(account, fresh):
    product = inventory_service.add_product(
        account.id,
        {"product_code": "SKU-4", "name": "Shampoo", "price": 15.0, "cost_price": 10.0, "stock": 5},
    )
    fresh()
    before = settings_service.get_settings(account.id).current_business_cash

    inventory_service.delete_product(account.id, product.id, credit_cash=True)

    fresh()
    settings = settings_service.get_settings(account.id)
    assert settings.current_business_cash == before + 50.0
    assert settings.total_products == 0
    credit = db.session.query(BusinessTransaction).filter_by(
        account_id=account.id, type=ledger_service.STOCK_ADJUSTMENT_CREDIT
    ).one()
    assert credit.amount == 50.0
    assert product.is_active is False
    assert product.deleted_at is not None
    assert ledger_service.reconcile_cash(account.id).is_consistent


def test_delete_without_credit_leaves_cash(account, make_product, fresh):
    product = make_product(stock=5)

    inventory_service.delete_product(account.id, product.id)

    fresh()
    assert settings_service.get_settings(account.id).current_business_cash == 0.0
    assert inventory_service.list_products(account.id) == []
    assert len(inventory_service.list_products(account.id, include_inactive=True)) == 1
    assert db.session.query(ActivityLogEntry).filter_by(account_id=account.id, type="PRODUCT_DELETE").count() == 1


def test_low_stock_uses_threshold(account, make_product):
    low = make_product(stock=3)
    make_product(stock=50)

    assert [p.id for p in inventory_service.list_low_stock(account.id)] == [low.id]


def test_search_matches_name_or_code(account, make_product):
    make_product("Basmati Rice")
    make_product("Cooking Oil")

    assert [p.name for p in inventory_service.list_products(account.id, search="rice")] == ["Basmati Rice"]
