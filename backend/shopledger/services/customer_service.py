# Overview: Service-layer operations for customers; master data plus the walk-in sentinel.

from __future__ import annotations

import re

from sqlalchemy import func, or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import Customer, Quotation, Return, Sale
from ..validation import CUSTOMER_POLICY, enforce_rules_customer, validate_payload
from . import activity_service, settings_service
from .concurrency import run_with_retry

# A typed "name" that is really a phone number ("0300-1234567", "0300 123 4567")
PHONE_LIKE_RE = re.compile(r"^\d[\d\s-]*\d$")

WALK_IN_PHONE = "N/A"


def get_customer(account_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(account_id=account_id, id=customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def list_customers(account_id: int, *, search: str | None = None, include_walk_in: bool = True) -> list[Customer]:
    query = db.session.query(Customer).filter_by(account_id=account_id)
    if not include_walk_in:
        query = query.filter(Customer.is_walk_in.is_(False))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Customer.name.ilike(like), Customer.phone.ilike(like), Customer.company_name.ilike(like)))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def ensure_walk_in_customer(account_id: int) -> Customer:
    """Return the account's walk-in customer, creating it if missing. Caller commits."""
    customer = db.session.query(Customer).filter_by(account_id=account_id, is_walk_in=True).first()
    if customer:
        return customer
    settings = settings_service.ensure_settings(account_id)
    customer = Customer(
        account_id=account_id,
        name=settings.walk_in_customer_name,
        phone=WALK_IN_PHONE,
        is_walk_in=True,
    )
    db.session.add(customer)
    db.session.flush()
    return customer


def find_customer_by_name_or_phone(account_id: int, text: str) -> Customer | None:
    """Case-insensitive name match or exact phone match among non-walk-in customers."""
    value = (text or "").strip()
    if not value:
        return None
    return (
        db.session.query(Customer)
        .filter(
            Customer.account_id == account_id,
            Customer.is_walk_in.is_(False),
            or_(func.lower(Customer.name) == value.lower(), Customer.phone == value),
        )
        .order_by(Customer.id.asc())
        .first()
    )


def customer_fields_from_typed_name(text: str) -> dict:
    """
    Derive new-customer fields from what the cashier typed.

    A phone-like string becomes {"name": "Cash", "phone": text}; anything else
    is used as the name with an empty phone placeholder.
    """
    value = text.strip()
    if PHONE_LIKE_RE.match(value):
        return {"name": "Cash", "phone": value}
    return {"name": value, "phone": WALK_IN_PHONE}


def add_customer(account_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    if not patch.get("name"):
        patch["name"] = patch.get("company_name") or ""
    enforce_rules_customer(patch, partial=False)

    def _op():
        settings_service.ensure_settings(account_id)
        customer = Customer(account_id=account_id, **patch)
        db.session.add(customer)
        db.session.commit()
        return customer

    customer = run_with_retry(_op, operation="add_customer", path=f"customers/{account_id}")
    deferred.submit(
        "new_customer_activity",
        activity_service.log_activity,
        account_id,
        activity_service.NEW_CUSTOMER,
        f"New customer added: {customer.name} ({customer.phone})",
        {"customer_id": customer.id, "name": customer.name, "phone": customer.phone},
    )
    return customer


def update_customer(account_id: int, customer_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch, partial=True)

    def _op():
        customer = get_customer(account_id, customer_id)
        for key, value in patch.items():
            setattr(customer, key, value)
        db.session.commit()
        return customer

    customer = run_with_retry(_op, operation="update_customer", path=f"customers/{customer_id}")
    deferred.submit(
        "customer_update_activity",
        activity_service.log_activity,
        account_id,
        activity_service.CUSTOMER_UPDATE,
        f"Customer updated: {customer.name}",
        {"customer_id": customer_id, "updated_fields": sorted(patch)},
    )
    return customer


def delete_customer(account_id: int, customer_id: int) -> None:
    """Delete a customer; their documents keep the typed customer_name."""
    def _op():
        customer = get_customer(account_id, customer_id)
        if customer.is_walk_in:
            raise ValidationError("The walk-in customer cannot be deleted")
        name = customer.name
        for model in (Sale, Return, Quotation):
            db.session.query(model).filter_by(account_id=account_id, customer_id=customer_id).update(
                {"customer_id": None}, synchronize_session=False
            )
        db.session.delete(customer)
        db.session.commit()
        return name

    name = run_with_retry(_op, operation="delete_customer", path=f"customers/{customer_id}")
    deferred.submit(
        "customer_delete_activity",
        activity_service.log_activity,
        account_id,
        activity_service.CUSTOMER_DELETE,
        f"Customer deleted: {name}",
        {"customer_id": customer_id, "name": name},
    )
