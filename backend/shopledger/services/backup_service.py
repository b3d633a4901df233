# Overview: Service-layer operations for account snapshots; full-state backup and restore.

"""
Backup/Restore Engine

BACKUP: one immutable BackupSnapshot row per call. payload holds every row
of every business table for the account, serialized column by column, plus
the settings row without its backup-config sub-object.

RESTORE is a full-state replacement, the only path allowed to write store
state without going through the engines:
1. delete every live row of the account, children before parents
2. bulk insert the snapshot rows with their original primary keys
3. overwrite the settings row from the snapshot, keeping the live backup
   config (auto_backup_frequency and the last_*_backup_at stamps)

All three steps are one database transaction. Snapshots themselves are
never touched by a restore.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import Date, DateTime, inspect

from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import (
    ActivityLogEntry,
    AppSettings,
    BackupSnapshot,
    BusinessTransaction,
    Customer,
    Product,
    PurchaseInvoice,
    PurchaseLine,
    Quotation,
    QuotationLine,
    Return,
    ReturnLine,
    Sale,
    SaleLine,
    Supplier,
)
from ..time_utils import utcnow
from . import activity_service, settings_service
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = 1
MAX_LISTED_BACKUPS = 50

AUTO_BACKUP_INTERVALS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}

# (payload key, model, parent model, parent fk column). Insert order; deletes run reversed.
COLLECTIONS = (
    ("products", Product, None, None),
    ("customers", Customer, None, None),
    ("suppliers", Supplier, None, None),
    ("sales", Sale, None, None),
    ("sale_lines", SaleLine, Sale, "sale_id"),
    ("purchase_invoices", PurchaseInvoice, None, None),
    ("purchase_lines", PurchaseLine, PurchaseInvoice, "invoice_id"),
    ("returns", Return, None, None),
    ("return_lines", ReturnLine, Return, "return_id"),
    ("quotations", Quotation, None, None),
    ("quotation_lines", QuotationLine, Quotation, "quotation_id"),
    ("business_transactions", BusinessTransaction, None, None),
    ("activity_log", ActivityLogEntry, None, None),
)

# Settings columns a restore never overwrites
SETTINGS_RESTORE_SKIP = frozenset({"id", "account_id", "version_id", "updated_at"}) | frozenset(
    settings_service.BACKUP_CONFIG_FIELDS
)


def _serialize_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _row_to_dict(obj) -> dict:
    mapper = inspect(obj).mapper
    return {
        column.key: _serialize_value(getattr(obj, column.key))
        for column in mapper.column_attrs
    }


def _deserialize_row(model, row: dict) -> dict:
    table = model.__table__
    values = {}
    for key, value in row.items():
        if key not in table.c:
            continue
        column_type = table.c[key].type
        if value is not None and isinstance(value, str):
            if isinstance(column_type, DateTime):
                value = datetime.fromisoformat(value)
            elif isinstance(column_type, Date):
                value = date.fromisoformat(value)
        values[key] = value
    return values


def _query_collection(account_id: int, model, parent, fk: str | None):
    if parent is None:
        return db.session.query(model).filter(model.account_id == account_id)
    parent_ids = db.session.query(parent.id).filter(parent.account_id == account_id)
    return db.session.query(model).filter(getattr(model, fk).in_(parent_ids))


def collect_payload(account_id: int) -> dict:
    payload = {}
    for key, model, parent, fk in COLLECTIONS:
        rows = _query_collection(account_id, model, parent, fk).order_by(model.id.asc()).all()
        payload[key] = [_row_to_dict(row) for row in rows]

    settings = settings_service.load_settings_for_update(account_id)
    payload["settings"] = {
        key: value
        for key, value in _row_to_dict(settings).items()
        if key not in settings_service.BACKUP_CONFIG_FIELDS
    }
    return payload


def _new_backup_key(backup_type: str) -> str:
    prefix = "auto" if backup_type == BackupSnapshot.TYPE_AUTOMATIC else "manual"
    millis = int(utcnow().timestamp() * 1000)
    return f"{prefix}-{millis}-{uuid.uuid4().hex[:6]}"


def create_backup(
    account_id: int,
    *,
    backup_type: str = BackupSnapshot.TYPE_MANUAL,
    description: str | None = None,
) -> BackupSnapshot:
    if backup_type not in (BackupSnapshot.TYPE_MANUAL, BackupSnapshot.TYPE_AUTOMATIC):
        raise ValidationError("backup_type must be 'manual' or 'automatic'")

    def _op():
        payload = collect_payload(account_id)
        now = utcnow()
        snapshot = BackupSnapshot(
            account_id=account_id,
            backup_key=_new_backup_key(backup_type),
            description=description or f"{backup_type.capitalize()} backup",
            backup_type=backup_type,
            version=BACKUP_FORMAT_VERSION,
            payload=payload,
        )
        db.session.add(snapshot)
        if backup_type == BackupSnapshot.TYPE_AUTOMATIC:
            settings_service.update_backup_config(account_id, last_auto_backup_at=now, commit=False)
        else:
            settings_service.update_backup_config(account_id, last_manual_backup_at=now, commit=False)
        db.session.commit()
        return snapshot

    snapshot = run_with_retry(_op, operation="create_backup", path=f"backups/{account_id}")
    counts = snapshot.to_dict()["counts"]
    deferred.submit(
        "backup_activity",
        activity_service.log_activity,
        account_id,
        activity_service.DATA_BACKUP,
        f"{backup_type.capitalize()} backup created: {snapshot.backup_key}",
        {"backup_id": snapshot.id, "backup_key": snapshot.backup_key, "counts": counts},
    )
    return snapshot


def list_backups(account_id: int, *, limit: int = MAX_LISTED_BACKUPS) -> list[BackupSnapshot]:
    limit = max(1, min(limit or MAX_LISTED_BACKUPS, MAX_LISTED_BACKUPS))
    return (
        db.session.query(BackupSnapshot)
        .filter_by(account_id=account_id)
        .order_by(BackupSnapshot.created_at.desc(), BackupSnapshot.id.desc())
        .limit(limit)
        .all()
    )


def get_backup(account_id: int, backup_id: int) -> BackupSnapshot:
    snapshot = db.session.query(BackupSnapshot).filter_by(account_id=account_id, id=backup_id).first()
    if not snapshot:
        raise NotFoundError("Backup not found", details={"backup_id": backup_id})
    return snapshot


def delete_backup(account_id: int, backup_id: int) -> None:
    def _op():
        db.session.delete(get_backup(account_id, backup_id))
        db.session.commit()

    run_with_retry(_op, operation="delete_backup", path=f"backups/{backup_id}")


def wipe_account_data(account_id: int) -> None:
    """Delete every business row of the account, children first. Caller commits."""
    for _key, model, parent, fk in reversed(COLLECTIONS):
        if parent is None:
            db.session.query(model).filter(model.account_id == account_id).delete(synchronize_session=False)
        else:
            parent_ids = db.session.query(parent.id).filter(parent.account_id == account_id)
            db.session.query(model).filter(getattr(model, fk).in_(parent_ids)).delete(synchronize_session=False)


def restore_backup(account_id: int, backup_id: int) -> dict:
    """
    Replace the account's live data with a snapshot.

    Returns per-collection row counts written.
    """
    def _op():
        snapshot = get_backup(account_id, backup_id)
        payload = snapshot.payload or {}
        backup_key = snapshot.backup_key

        wipe_account_data(account_id)
        db.session.flush()

        counts = {}
        for key, model, parent, _fk in COLLECTIONS:
            rows = []
            for row in payload.get(key) or []:
                values = _deserialize_row(model, row)
                if parent is None:
                    values["account_id"] = account_id
                rows.append(values)
            if rows:
                db.session.execute(model.__table__.insert(), rows)
            counts[key] = len(rows)

        settings = settings_service.load_settings_for_update(account_id)
        restored = _deserialize_row(AppSettings, payload.get("settings") or {})
        for key, value in restored.items():
            if key in SETTINGS_RESTORE_SKIP:
                continue
            setattr(settings, key, value)

        db.session.commit()
        db.session.expire_all()
        return backup_key, counts

    backup_key, counts = run_with_retry(_op, operation="restore_backup", path=f"backups/{backup_id}")
    logger.info("Account %s restored from backup %s", account_id, backup_key)
    deferred.submit(
        "restore_activity",
        activity_service.log_activity,
        account_id,
        activity_service.DATA_RESTORE,
        f"Data restored from backup: {backup_key}",
        {"backup_id": backup_id, "backup_key": backup_key, "counts": counts},
    )
    return counts


def auto_backup_due(settings: AppSettings, *, now: datetime | None = None) -> bool:
    interval = AUTO_BACKUP_INTERVALS.get(settings.auto_backup_frequency)
    if interval is None:
        return False
    if settings.last_auto_backup_at is None:
        return True
    now = now or utcnow()
    last = settings.last_auto_backup_at
    if last.tzinfo is not None:
        last = last.replace(tzinfo=None)
    return now - last >= interval


def run_due_auto_backup(account_id: int, *, now: datetime | None = None) -> BackupSnapshot | None:
    """Create an automatic backup when the configured frequency says one is due."""
    settings = settings_service.get_settings(account_id)
    if not auto_backup_due(settings, now=now):
        return None
    return create_backup(account_id, backup_type=BackupSnapshot.TYPE_AUTOMATIC, description="Automatic backup")
