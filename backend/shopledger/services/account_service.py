# Overview: Service-layer operations for accounts; provisioning and administrative reset.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateKeyError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Account, BackupSnapshot
from . import activity_service, backup_service, customer_service, settings_service
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


def create_account(name: str, code: str | None = None) -> Account:
    """
    Provision a new account: settings row, walk-in customer and an
    ACCOUNT_CREATED entry, all in one transaction.
    """
    name = (name or "").strip()
    code = (code or "").strip() or None
    if not name:
        raise ValidationError("Account name is required")

    def _op():
        if code and db.session.query(Account).filter_by(code=code).first():
            raise DuplicateKeyError(f'Account code "{code}" already exists', details={"code": code})
        account = Account(name=name, code=code)
        db.session.add(account)
        db.session.flush()
        settings_service.ensure_settings(account.id)
        customer_service.ensure_walk_in_customer(account.id)
        activity_service.log_activity(
            account.id,
            activity_service.ACCOUNT_CREATED,
            f"Account created: {name}",
            {"code": code},
            commit=False,
        )
        db.session.commit()
        return account

    try:
        return run_with_retry(_op, operation="create_account", path="accounts")
    except IntegrityError as exc:
        raise DuplicateKeyError(f'Account code "{code}" already exists', details={"code": code}) from exc


def get_account(account_id: int) -> Account:
    account = db.session.get(Account, account_id)
    if account is None:
        raise NotFoundError("Account not found", details={"account_id": account_id})
    return account


def get_account_by_code(code: str) -> Account:
    account = db.session.query(Account).filter_by(code=code).first()
    if account is None:
        raise NotFoundError("Account not found", details={"code": code})
    return account


def list_accounts() -> list[Account]:
    return db.session.query(Account).order_by(Account.id.asc()).all()


def reset_account_data(account_id: int) -> None:
    """
    Wipe every business row, snapshot and activity entry, then reset the
    counters, cash, totals and backup config. Preferences survive.
    """
    def _op():
        get_account(account_id)
        backup_service.wipe_account_data(account_id)
        db.session.query(BackupSnapshot).filter_by(account_id=account_id).delete(synchronize_session=False)
        settings = settings_service.load_settings_for_update(account_id)
        settings_service.reset_settings(settings)
        db.session.flush()
        customer_service.ensure_walk_in_customer(account_id)
        activity_service.log_activity(
            account_id,
            activity_service.ACCOUNT_RESET,
            "All account data was reset",
            commit=False,
        )
        db.session.commit()

    run_with_retry(_op, operation="reset_account_data", path=f"accounts/{account_id}")
    logger.warning("Account %s data reset", account_id)
