# Overview: Service-layer operations for quotations; numbering, totals and status lifecycle.

from __future__ import annotations

from datetime import date

from ..currency import format_currency, round_money
from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import Customer, Quotation, QuotationLine
from ..models.quotations import QUOTATION_STATUSES
from ..schemas import QuotationInput
from ..time_utils import utcnow
from . import activity_service, settings_service
from .concurrency import run_with_retry

STATUS_EXPIRABLE = ("Draft", "Sent")
STATUS_EXPIRED = "Expired"


def _build_lines(quotation_input: QuotationInput) -> tuple[list[QuotationLine], dict]:
    """
    Line math:
        subtotal = qty * price
        discount = subtotal * disc% / 100
        tax      = (subtotal - discount) * tax% / 100
        total    = subtotal - discount + tax
    """
    lines = []
    totals = {"sub_total": 0.0, "total_item_discount": 0.0, "total_item_tax": 0.0, "lines_total": 0.0}
    for number, item in enumerate(quotation_input.items, start=1):
        subtotal = round_money(item.quantity * item.sale_price)
        discount = round_money(subtotal * item.discount_percentage / 100)
        tax = round_money((subtotal - discount) * item.tax_percentage / 100)
        line_total = round_money(subtotal - discount + tax)
        lines.append(QuotationLine(
            line_number=number,
            product_id=item.product_id,
            description=item.description,
            quantity=item.quantity,
            sale_price=item.sale_price,
            discount_percentage=item.discount_percentage,
            tax_percentage=item.tax_percentage,
            item_subtotal=subtotal,
            discount_amount=discount,
            tax_amount=tax,
            line_total=line_total,
        ))
        totals["sub_total"] += subtotal
        totals["total_item_discount"] += discount
        totals["total_item_tax"] += tax
        totals["lines_total"] += line_total
    return lines, {key: round_money(value) for key, value in totals.items()}


def compute_grand_total(lines_total: float, quotation_input: QuotationInput) -> float:
    return round_money(
        lines_total
        - quotation_input.overall_discount_amount
        + quotation_input.overall_tax_amount
        + quotation_input.shipping_charges
        + quotation_input.extra_costs
    )


def _check_status(status: str) -> str:
    if status not in QUOTATION_STATUSES:
        raise ValidationError(f"status must be one of {list(QUOTATION_STATUSES)}")
    return status


def _resolve_customer_name(account_id: int, quotation_input: QuotationInput) -> str | None:
    if quotation_input.customer_id is None:
        return quotation_input.customer_name
    customer = db.session.query(Customer).filter_by(account_id=account_id, id=quotation_input.customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found", details={"customer_id": quotation_input.customer_id})
    return quotation_input.customer_name or customer.name


def _apply(quotation: Quotation, quotation_input: QuotationInput, customer_name: str | None) -> None:
    lines, totals = _build_lines(quotation_input)
    quotation.lines.clear()
    quotation.lines.extend(lines)
    quotation.customer_id = quotation_input.customer_id
    quotation.customer_name = customer_name
    quotation.quote_date = quotation_input.quote_date
    quotation.valid_till_date = quotation_input.valid_till_date
    quotation.status = quotation_input.status
    quotation.sub_total = totals["sub_total"]
    quotation.total_item_discount = totals["total_item_discount"]
    quotation.total_item_tax = totals["total_item_tax"]
    quotation.overall_discount_amount = round_money(quotation_input.overall_discount_amount)
    quotation.overall_tax_amount = round_money(quotation_input.overall_tax_amount)
    quotation.shipping_charges = round_money(quotation_input.shipping_charges)
    quotation.extra_costs = round_money(quotation_input.extra_costs)
    quotation.grand_total = compute_grand_total(totals["lines_total"], quotation_input)
    quotation.notes = quotation_input.notes
    quotation.terms_and_conditions = quotation_input.terms_and_conditions


def create_quotation(account_id: int, quotation_input: QuotationInput) -> Quotation:
    _check_status(quotation_input.status)

    def _op():
        customer_name = _resolve_customer_name(account_id, quotation_input)
        settings = settings_service.load_settings_for_update(account_id)
        quotation = Quotation(
            account_id=account_id,
            numeric_quotation_id=settings_service.claim_next_numeric_id(settings, "quotation"),
        )
        _apply(quotation, quotation_input, customer_name)
        db.session.add(quotation)
        currency = settings.currency
        db.session.commit()
        return quotation, currency

    quotation, currency = run_with_retry(_op, operation="create_quotation", path=f"quotations/{account_id}")
    deferred.submit(
        "quotation_created_activity",
        activity_service.log_activity,
        account_id,
        activity_service.QUOTATION_CREATED,
        f"Quotation #{quotation.numeric_quotation_id} created for {quotation.customer_name or 'customer'}: "
        f"{format_currency(quotation.grand_total, currency)}",
        {"quotation_id": quotation.id, "numeric_quotation_id": quotation.numeric_quotation_id},
    )
    return quotation


def update_quotation(account_id: int, quotation_id: int, quotation_input: QuotationInput) -> Quotation:
    """Replace lines and totals; the numeric id never changes."""
    _check_status(quotation_input.status)

    def _op():
        quotation = get_quotation(account_id, quotation_id)
        customer_name = _resolve_customer_name(account_id, quotation_input)
        _apply(quotation, quotation_input, customer_name)
        db.session.commit()
        return quotation

    quotation = run_with_retry(_op, operation="update_quotation", path=f"quotations/{quotation_id}")
    deferred.submit(
        "quotation_updated_activity",
        activity_service.log_activity,
        account_id,
        activity_service.QUOTATION_UPDATED,
        f"Quotation #{quotation.numeric_quotation_id} updated",
        {"quotation_id": quotation.id, "grand_total": quotation.grand_total},
    )
    return quotation


def set_quotation_status(account_id: int, quotation_id: int, status: str) -> Quotation:
    _check_status(status)

    def _op():
        quotation = get_quotation(account_id, quotation_id)
        previous = quotation.status
        quotation.status = status
        db.session.commit()
        return quotation, previous

    quotation, previous = run_with_retry(_op, operation="set_quotation_status", path=f"quotations/{quotation_id}")
    if previous != status:
        deferred.submit(
            "quotation_status_activity",
            activity_service.log_activity,
            account_id,
            activity_service.QUOTATION_STATUS_CHANGED,
            f"Quotation #{quotation.numeric_quotation_id} status changed from {previous} to {status}",
            {"quotation_id": quotation.id, "from": previous, "to": status},
        )
    return quotation


def expire_overdue_quotations(account_id: int, *, today: date | None = None) -> list[Quotation]:
    """Draft/Sent quotations whose valid-till date has passed become Expired."""
    today = today or utcnow().date()

    def _op():
        overdue = (
            db.session.query(Quotation)
            .filter(
                Quotation.account_id == account_id,
                Quotation.status.in_(STATUS_EXPIRABLE),
                Quotation.valid_till_date < today,
            )
            .order_by(Quotation.id.asc())
            .all()
        )
        for quotation in overdue:
            quotation.status = STATUS_EXPIRED
        db.session.commit()
        return overdue

    expired = run_with_retry(_op, operation="expire_overdue_quotations", path=f"quotations/{account_id}")
    for quotation in expired:
        deferred.submit(
            "quotation_expired_activity",
            activity_service.log_activity,
            account_id,
            activity_service.QUOTATION_STATUS_CHANGED,
            f"Quotation #{quotation.numeric_quotation_id} expired (valid till {quotation.valid_till_date.isoformat()})",
            {"quotation_id": quotation.id, "to": STATUS_EXPIRED},
        )
    return expired


def get_quotation(account_id: int, quotation_id: int) -> Quotation:
    quotation = db.session.query(Quotation).filter_by(account_id=account_id, id=quotation_id).first()
    if not quotation:
        raise NotFoundError("Quotation not found", details={"quotation_id": quotation_id})
    return quotation


def list_quotations(account_id: int, *, status: str | None = None) -> list[Quotation]:
    query = db.session.query(Quotation).filter_by(account_id=account_id)
    if status:
        query = query.filter_by(status=_check_status(status))
    return query.order_by(Quotation.quote_date.desc(), Quotation.id.desc()).all()
