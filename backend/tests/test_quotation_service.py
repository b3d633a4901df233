from datetime import date

import pytest

from shopledger.errors import NotFoundError, ValidationError
from shopledger.extensions import db
from shopledger.models import ActivityLogEntry
from shopledger.schemas import QuotationInput, QuotationLineInput
from shopledger.services import ledger_service, quotation_service, settings_service


def _quote(*items, **kwargs):
    kwargs.setdefault("quote_date", date(2026, 10, 1))
    kwargs.setdefault("valid_till_date", date(2026, 10, 31))
    return QuotationInput(items=list(items), **kwargs)


def test_line_and_grand_total_math(account):
    quotation = quotation_service.create_quotation(
        account.id,
        _quote(
            QuotationLineInput("Office chair", 2, 100.0, discount_percentage=10.0, tax_percentage=5.0),
            overall_discount_amount=9.0,
            shipping_charges=20.0,
            customer_name="Hassan Traders",
        ),
    )

    line = quotation.lines[0]
    assert line.item_subtotal == 200.0
    assert line.discount_amount == 20.0
    assert line.tax_amount == 9.0
    assert line.line_total == 189.0
    assert quotation.sub_total == 200.0
    assert quotation.total_item_discount == 20.0
    assert quotation.total_item_tax == 9.0
    assert quotation.grand_total == 200.0
    assert quotation.numeric_quotation_id == 1


def test_quotation_does_not_touch_stock_or_cash(account, make_product, fresh):
    product = make_product(stock=4)

    quotation_service.create_quotation(
        account.id, _quote(QuotationLineInput(product.name, 10, 50.0, product_id=product.id))
    )

    fresh()
    assert product.stock == 4
    assert settings_service.get_settings(account.id).current_business_cash == 0.0
    assert ledger_service.list_business_transactions(account.id) == []


def test_customer_id_fills_name(account, customer):
    quotation = quotation_service.create_quotation(
        account.id, _quote(QuotationLineInput("Desk", 1, 300.0), customer_id=customer.id)
    )

    assert quotation.customer_name == "Sara Khan"


def test_unknown_customer_id(account):
    with pytest.raises(NotFoundError):
        quotation_service.create_quotation(
            account.id, _quote(QuotationLineInput("Desk", 1, 300.0), customer_id=123456)
        )


def test_invalid_status(account):
    with pytest.raises(ValidationError):
        quotation_service.create_quotation(account.id, _quote(QuotationLineInput("Desk", 1, 1.0), status="Won"))


def test_update_keeps_number(account, fresh):
    quotation = quotation_service.create_quotation(account.id, _quote(QuotationLineInput("Desk", 1, 300.0)))

    quotation_service.update_quotation(
        account.id, quotation.id, _quote(QuotationLineInput("Desk", 2, 280.0), QuotationLineInput("Lamp", 1, 40.0))
    )

    fresh()
    assert quotation.numeric_quotation_id == 1
    assert len(quotation.lines) == 2
    assert quotation.grand_total == 600.0


def test_status_change_logged_only_when_changed(account, fresh):
    quotation = quotation_service.create_quotation(account.id, _quote(QuotationLineInput("Desk", 1, 300.0)))

    quotation_service.set_quotation_status(account.id, quotation.id, "Sent")
    quotation_service.set_quotation_status(account.id, quotation.id, "Sent")

    fresh()
    assert quotation.status == "Sent"
    assert db.session.query(ActivityLogEntry).filter_by(
        account_id=account.id, type="QUOTATION_STATUS_CHANGED"
    ).count() == 1


def test_expire_overdue(account, fresh):
    draft = quotation_service.create_quotation(
        account.id, _quote(QuotationLineInput("A", 1, 1.0), valid_till_date=date(2026, 10, 5))
    )
    accepted = quotation_service.create_quotation(
        account.id, _quote(QuotationLineInput("B", 1, 1.0), valid_till_date=date(2026, 10, 5), status="Accepted")
    )
    current = quotation_service.create_quotation(
        account.id, _quote(QuotationLineInput("C", 1, 1.0), valid_till_date=date(2026, 10, 31))
    )

    expired = quotation_service.expire_overdue_quotations(account.id, today=date(2026, 10, 19))

    assert [q.id for q in expired] == [draft.id]
    fresh()
    assert [draft.status, accepted.status, current.status] == ["Expired", "Accepted", "Draft"]


def test_list_by_status(account):
    quotation_service.create_quotation(account.id, _quote(QuotationLineInput("A", 1, 1.0)))
    sent = quotation_service.create_quotation(account.id, _quote(QuotationLineInput("B", 1, 1.0), status="Sent"))

    assert [q.id for q in quotation_service.list_quotations(account.id, status="Sent")] == [sent.id]
