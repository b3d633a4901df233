"""
Atomic-phase retry tests.

A conflicting commit between read and write must surface as StaleDataError
(version_id check) and be retried from scratch.
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from shopledger.errors import NotFoundError, StoreUnavailableError, TransactionConflictError
from shopledger.extensions import db
from shopledger.schemas import InventoryLineItem, SaleInput
from shopledger.services import inventory_service, sales_service, settings_service
from shopledger.services.concurrency import run_with_retry


def test_conflicting_settings_write_is_retried(app, account):
    attempts = []

    def _op():
        settings = settings_service.load_settings_for_update(account.id)
        if not attempts:
            # Another writer commits between our read and our write
            with app.app_context():
                settings_service.adjust_business_cash(account.id, 10.0)
        attempts.append(settings.current_business_cash)
        settings_service.apply_cash_delta(settings, 5.0)
        db.session.commit()
        return settings.current_business_cash

    assert run_with_retry(_op, operation="test_conflict", attempts=3, backoff_base=0) == 15.0
    assert attempts == [0.0, 10.0]


def test_conflicting_stock_write_cannot_oversell(app, account, make_product, fresh):
    product = make_product(stock=5)
    calls = []

    def _op():
        p = inventory_service.get_product(account.id, product.id)
        if not calls:
            with app.app_context():
                sales_service.process_sale(account.id, SaleInput(items=[InventoryLineItem(product.id, 4, 50.0)]))
        calls.append(p.stock)
        if p.stock < 3:
            raise NotFoundError("not enough")
        p.stock -= 3
        db.session.commit()

    with pytest.raises(NotFoundError) as exc_info:
        run_with_retry(_op, operation="oversell", path=f"products/{product.id}", attempts=3, backoff_base=0)

    assert calls == [5, 1]
    assert exc_info.value.operation == "oversell"
    assert fresh(product).stock == 1


def test_stale_data_exhaustion_is_conflict(app):
    def _op():
        raise StaleDataError("row changed")

    with pytest.raises(TransactionConflictError) as exc_info:
        run_with_retry(_op, operation="always_stale", path="settings/1", attempts=2, backoff_base=0)

    assert exc_info.value.details == {"attempts": 2}
    assert exc_info.value.path == "settings/1"


def test_operational_error_exhaustion_is_unavailable(app):
    def _op():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with app.app_context():
        with pytest.raises(StoreUnavailableError) as exc_info:
            run_with_retry(_op, operation="locked", attempts=2, backoff_base=0)

    assert not isinstance(exc_info.value, TransactionConflictError)


def test_transient_failure_then_success(app):
    calls = []

    def _op():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("row changed")
        return "done"

    with app.app_context():
        assert run_with_retry(_op, operation="flaky", attempts=5, backoff_base=0) == "done"
    assert len(calls) == 3


def test_other_errors_propagate_unchanged(app):
    def _op():
        raise KeyError("missing")

    with app.app_context():
        with pytest.raises(KeyError):
            run_with_retry(_op, operation="broken", attempts=5, backoff_base=0)
