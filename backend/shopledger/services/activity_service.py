# Overview: Service-layer operations for the activity log; append-only audit trail.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLogEntry

SALE = "SALE"
INVENTORY_UPDATE = "INVENTORY_UPDATE"
NEW_CUSTOMER = "NEW_CUSTOMER"
STOCK_ADD = "STOCK_ADD"
CUSTOMER_UPDATE = "CUSTOMER_UPDATE"
CUSTOMER_DELETE = "CUSTOMER_DELETE"
PRODUCT_DELETE = "PRODUCT_DELETE"
SETTINGS_UPDATE = "SETTINGS_UPDATE"
ACCOUNT_CREATED = "ACCOUNT_CREATED"
ACCOUNT_RESET = "ACCOUNT_RESET"
NEW_SUPPLIER = "NEW_SUPPLIER"
SUPPLIER_UPDATE = "SUPPLIER_UPDATE"
SUPPLIER_DELETE = "SUPPLIER_DELETE"
PURCHASE_RECORDED = "PURCHASE_RECORDED"
PURCHASE_UPDATED = "PURCHASE_UPDATED"
SUPPLIER_BALANCE_UPDATE = "SUPPLIER_BALANCE_UPDATE"
BUSINESS_CASH_ADJUSTMENT = "BUSINESS_CASH_ADJUSTMENT"
QUOTATION_CREATED = "QUOTATION_CREATED"
QUOTATION_UPDATED = "QUOTATION_UPDATED"
QUOTATION_STATUS_CHANGED = "QUOTATION_STATUS_CHANGED"
RETURN_PROCESSED = "RETURN_PROCESSED"
SHOP_NAME_UPDATE = "SHOP_NAME_UPDATE"
DATA_BACKUP = "DATA_BACKUP"
DATA_RESTORE = "DATA_RESTORE"


def log_activity(
    account_id: int,
    activity_type: str,
    description: str,
    details: dict | None = None,
    *,
    commit: bool = True,
) -> ActivityLogEntry:
    """
    Append an activity entry.

    Engines call this from deferred tasks (commit=True, own session) or,
    for administrative operations, inside their own transaction
    (commit=False).
    """
    entry = ActivityLogEntry(
        account_id=account_id,
        type=activity_type,
        description=description,
        details=details or {},
    )
    db.session.add(entry)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return entry


def list_activity(account_id: int, *, limit: int = 100, activity_type: str | None = None) -> list[ActivityLogEntry]:
    query = db.session.query(ActivityLogEntry).filter_by(account_id=account_id)
    if activity_type:
        query = query.filter_by(type=activity_type)
    return (
        query.order_by(ActivityLogEntry.occurred_at.desc(), ActivityLogEntry.id.desc())
        .limit(limit)
        .all()
    )
