# Overview: Service-layer operations for the per-account settings singleton (counters, cash, preferences).

"""
Counter & settings store.

The AppSettings row plays three roles (see the model docstring). This module
keeps them apart:

- Engines use the in-transaction primitives (load_settings_for_update,
  claim_next_numeric_id, apply_cash_delta) and commit with their own writes.
- Users change preferences through update_settings, which can never touch
  counters, cash or running totals.
- The backup config sub-object is written only by update_backup_config.

Reads degrade: if the store is unreachable, get_settings returns an unsaved
default row so callers can keep rendering in a read-only mode.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import DBAPIError

from ..currency import CURRENCY_SYMBOLS, round_money
from ..errors import NotFoundError, ValidationError
from ..extensions import db, deferred
from ..models import Account, AppSettings
from . import activity_service
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


class SettingsError(ValidationError):
    pass


class SettingsValidationError(SettingsError):
    pass


DEFAULT_SETTINGS: dict[str, Any] = {
    "low_stock_threshold": 20,
    "last_sale_numeric_id": 0,
    "last_purchase_numeric_id": 0,
    "last_quotation_numeric_id": 0,
    "last_return_numeric_id": 0,
    "currency": "PKR",
    "company_display_name": None,
    "has_completed_initial_setup": False,
    "current_business_cash": 0.0,
    "walk_in_customer_name": "Walk-in Customer",
    "known_categories": [],
    "known_shop_names": [],
    "prompt_credit_on_delete": True,
    "auto_backup_frequency": "disabled",
    "last_manual_backup_at": None,
    "last_auto_backup_at": None,
    "total_products": 0,
    "total_suppliers": 0,
}

# Preference fields writable through update_settings, with their value type
PREFERENCE_FIELDS: dict[str, str] = {
    "low_stock_threshold": "int",
    "currency": "currency",
    "company_display_name": "string",
    "has_completed_initial_setup": "bool",
    "walk_in_customer_name": "string",
    "known_categories": "string_list",
    "known_shop_names": "string_list",
    "prompt_credit_on_delete": "bool",
}

PROTECTED_FIELDS = frozenset({
    "last_sale_numeric_id",
    "last_purchase_numeric_id",
    "last_quotation_numeric_id",
    "last_return_numeric_id",
    "current_business_cash",
    "total_products",
    "total_suppliers",
})

BACKUP_CONFIG_FIELDS = ("auto_backup_frequency", "last_manual_backup_at", "last_auto_backup_at")
AUTO_BACKUP_FREQUENCIES = ("disabled", "daily", "weekly", "monthly")

COUNTER_FIELDS = {
    "sale": "last_sale_numeric_id",
    "purchase": "last_purchase_numeric_id",
    "quotation": "last_quotation_numeric_id",
    "return": "last_return_numeric_id",
}


def default_settings(account_id: int) -> AppSettings:
    """Unsaved settings row carrying the defaults."""
    settings = AppSettings(account_id=account_id)
    for key, value in DEFAULT_SETTINGS.items():
        setattr(settings, key, list(value) if isinstance(value, list) else value)
    return settings


def _load_settings(account_id: int) -> AppSettings | None:
    return db.session.query(AppSettings).filter_by(account_id=account_id).first()


def ensure_settings(account_id: int) -> AppSettings:
    """Load the settings row, creating the default row if absent. Caller commits."""
    settings = _load_settings(account_id)
    if settings is not None:
        return settings
    if db.session.get(Account, account_id) is None:
        raise NotFoundError("Account not found", details={"account_id": account_id})
    settings = default_settings(account_id)
    db.session.add(settings)
    db.session.flush()
    return settings


def get_settings(account_id: int) -> AppSettings:
    try:
        settings = _load_settings(account_id)
        if settings is None:
            settings = ensure_settings(account_id)
            db.session.commit()
        return settings
    except DBAPIError as exc:
        db.session.rollback()
        logger.warning("Settings store unreachable for account %s, using defaults: %s", account_id, exc)
        return default_settings(account_id)


def load_settings_for_update(account_id: int) -> AppSettings:
    """Read the settings row as part of the caller's transaction."""
    return ensure_settings(account_id)


def claim_next_numeric_id(settings: AppSettings, doc_type: str) -> int:
    """
    Claim the next id for a document type (sale/purchase/quotation/return).

    Must be called inside the transaction that writes the document; the
    version_id check on commit guarantees no two documents get the same id.
    """
    field = COUNTER_FIELDS.get(doc_type)
    if field is None:
        raise ValueError(f"Unknown document type: {doc_type}")
    next_id = (getattr(settings, field) or 0) + 1
    setattr(settings, field, next_id)
    return next_id


def apply_cash_delta(settings: AppSettings, delta: float) -> float:
    settings.current_business_cash = round_money((settings.current_business_cash or 0.0) + delta)
    return settings.current_business_cash


def adjust_business_cash(account_id: int, delta: float) -> float:
    """Read-modify-write of the cash balance in its own transaction."""
    def _op():
        settings = load_settings_for_update(account_id)
        balance = apply_cash_delta(settings, delta)
        db.session.commit()
        return balance

    return run_with_retry(_op, operation="adjust_business_cash", path=f"settings/{account_id}")


def _coerce(key: str, value: Any) -> Any:
    kind = PREFERENCE_FIELDS[key]
    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            s = value.strip().lower()
            if s in {"true", "1", "yes", "on"}:
                return True
            if s in {"false", "0", "no", "off"}:
                return False
        raise SettingsValidationError(f"{key}: expected boolean")
    if kind == "int":
        if isinstance(value, bool):
            raise SettingsValidationError(f"{key}: expected integer")
        if isinstance(value, int):
            coerced = value
        elif isinstance(value, float) and int(value) == value:
            coerced = int(value)
        elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
            coerced = int(value.strip())
        else:
            raise SettingsValidationError(f"{key}: expected integer")
        if coerced < 0:
            raise SettingsValidationError(f"{key}: must be >= 0")
        return coerced
    if kind == "currency":
        code = str(value or "").strip().upper()
        if code not in CURRENCY_SYMBOLS:
            raise SettingsValidationError(f"{key}: expected one of {sorted(CURRENCY_SYMBOLS)}")
        return code
    if kind == "string_list":
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise SettingsValidationError(f"{key}: expected a list of strings")
        seen: list[str] = []
        for item in value:
            text = str(item).strip()
            if text and text not in seen:
                seen.append(text)
        return seen
    text = "" if value is None else str(value).strip()
    if key == "walk_in_customer_name" and not text:
        raise SettingsValidationError(f"{key}: must not be empty")
    return text or None


def _snapshot_value(current: Any, key: str, stored: Any) -> Any:
    if isinstance(current, dict):
        return current.get(key, stored)
    return getattr(current, key)


def update_settings(account_id: int, current: Any, changes: dict) -> AppSettings:
    """
    Merge preference changes over the caller's snapshot and persist.

    current is the settings the caller last saw (an AppSettings or a dict
    from to_dict(), or None to use the stored row). Every preference field
    absent from changes is carried forward from the snapshot. Counter, cash
    and running-total fields are rejected; unknown keys are ignored.
    """
    changes = changes or {}
    protected = sorted(PROTECTED_FIELDS.intersection(changes))
    if protected:
        raise SettingsValidationError(
            "Counters, cash and totals cannot be changed through settings",
            details={"fields": protected},
        )
    if any(key in changes for key in BACKUP_CONFIG_FIELDS):
        raise SettingsValidationError(
            "Backup configuration is changed through the backup settings",
            details={"fields": [k for k in BACKUP_CONFIG_FIELDS if k in changes]},
        )

    merged = {}
    for key in PREFERENCE_FIELDS:
        if key in changes:
            merged[key] = _coerce(key, changes[key])

    def _op():
        settings = load_settings_for_update(account_id)
        snapshot = current if current is not None else settings
        changed: dict[str, dict] = {}
        for key in PREFERENCE_FIELDS:
            previous = getattr(settings, key)
            value = merged[key] if key in merged else _snapshot_value(snapshot, key, previous)
            if value != previous:
                changed[key] = {"from": previous, "to": value}
            setattr(settings, key, value)
        db.session.commit()
        return settings, changed

    settings, changed = run_with_retry(_op, operation="update_settings", path=f"settings/{account_id}")

    if changed:
        if set(changed) == {"company_display_name"}:
            activity_type = activity_service.SHOP_NAME_UPDATE
            description = f"Shop name changed to '{changed['company_display_name']['to'] or ''}'"
        else:
            activity_type = activity_service.SETTINGS_UPDATE
            description = "Settings updated: " + ", ".join(sorted(changed))
        deferred.submit(
            "settings_activity",
            activity_service.log_activity,
            account_id,
            activity_type,
            description,
            {"changes": changed},
        )
    return settings


def update_backup_config(
    account_id: int,
    *,
    auto_backup_frequency: str | None = None,
    last_manual_backup_at=None,
    last_auto_backup_at=None,
    commit: bool = True,
) -> AppSettings:
    """Only writer of the backup-config sub-object."""
    if auto_backup_frequency is not None and auto_backup_frequency not in AUTO_BACKUP_FREQUENCIES:
        raise SettingsValidationError(
            f"auto_backup_frequency: expected one of {list(AUTO_BACKUP_FREQUENCIES)}"
        )

    def _apply():
        settings = load_settings_for_update(account_id)
        if auto_backup_frequency is not None:
            settings.auto_backup_frequency = auto_backup_frequency
        if last_manual_backup_at is not None:
            settings.last_manual_backup_at = last_manual_backup_at
        if last_auto_backup_at is not None:
            settings.last_auto_backup_at = last_auto_backup_at
        return settings

    if not commit:
        return _apply()

    def _op():
        settings = _apply()
        db.session.commit()
        return settings

    return run_with_retry(_op, operation="update_backup_config", path=f"settings/{account_id}")


def reset_settings(settings: AppSettings) -> AppSettings:
    """
    Administrative reset of counters, cash, totals and backup config.

    Preferences (currency, names, thresholds) are kept. Caller commits.
    """
    for key in ("last_sale_numeric_id", "last_purchase_numeric_id", "last_quotation_numeric_id",
                "last_return_numeric_id", "current_business_cash", "total_products", "total_suppliers",
                "known_categories", "known_shop_names") + BACKUP_CONFIG_FIELDS:
        value = DEFAULT_SETTINGS[key]
        setattr(settings, key, list(value) if isinstance(value, list) else value)
    return settings
