from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class Account(db.Model):
    """
    Tenant root: every business record belongs to exactly one Account.

    DESIGN:
    - All queries are scoped by account_id
    - Each account owns one AppSettings row (counters, cash, preferences)
    - Each account owns one walk-in Customer (see Customer.is_walk_in)
    """
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "created_at": to_utc_z(self.created_at),
        }


class AppSettings(db.Model):
    """
    Per-account settings singleton.

    Holds three kinds of state:
    - Document counters (last_*_numeric_id). Each is claimed as value+1 inside
      the same transaction that writes the document, so ids are gap-free.
    - Running totals (current_business_cash, total_products, total_suppliers).
      Only ever changed by read-modify-write inside a transaction.
    - User preferences, including the backup-config sub-object
      (auto_backup_frequency, last_manual_backup_at, last_auto_backup_at).

    CONCURRENCY: version_id is the optimistic lock. Two transactions that both
    read the row and try to bump a counter or the cash balance cannot both
    commit; the loser gets StaleDataError and is retried from scratch.
    """
    __tablename__ = "app_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, unique=True, index=True)

    low_stock_threshold = db.Column(db.Integer, nullable=False, default=20)

    last_sale_numeric_id = db.Column(db.Integer, nullable=False, default=0)
    last_purchase_numeric_id = db.Column(db.Integer, nullable=False, default=0)
    last_quotation_numeric_id = db.Column(db.Integer, nullable=False, default=0)
    last_return_numeric_id = db.Column(db.Integer, nullable=False, default=0)

    currency = db.Column(db.String(8), nullable=False, default="PKR")
    company_display_name = db.Column(db.String(255), nullable=True)
    has_completed_initial_setup = db.Column(db.Boolean, nullable=False, default=False)

    current_business_cash = db.Column(db.Float, nullable=False, default=0.0)

    walk_in_customer_name = db.Column(db.String(255), nullable=False, default="Walk-in Customer")
    known_categories = db.Column(db.JSON, nullable=True)
    known_shop_names = db.Column(db.JSON, nullable=True)
    prompt_credit_on_delete = db.Column(db.Boolean, nullable=False, default=True)

    # Backup config sub-object; only backup_service writes these
    auto_backup_frequency = db.Column(db.String(16), nullable=False, default="disabled")
    last_manual_backup_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_auto_backup_at = db.Column(db.DateTime(timezone=True), nullable=True)

    total_products = db.Column(db.Integer, nullable=False, default=0)
    total_suppliers = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    account = db.relationship("Account", backref=db.backref("settings", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<AppSettings account_id={self.account_id} cash={self.current_business_cash}>"

    def backup_config(self) -> dict:
        return {
            "auto_backup_frequency": self.auto_backup_frequency,
            "last_manual_backup_at": to_utc_z(self.last_manual_backup_at),
            "last_auto_backup_at": to_utc_z(self.last_auto_backup_at),
        }

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "low_stock_threshold": self.low_stock_threshold,
            "last_sale_numeric_id": self.last_sale_numeric_id,
            "last_purchase_numeric_id": self.last_purchase_numeric_id,
            "last_quotation_numeric_id": self.last_quotation_numeric_id,
            "last_return_numeric_id": self.last_return_numeric_id,
            "currency": self.currency,
            "company_display_name": self.company_display_name,
            "has_completed_initial_setup": self.has_completed_initial_setup,
            "current_business_cash": self.current_business_cash,
            "walk_in_customer_name": self.walk_in_customer_name,
            "known_categories": list(self.known_categories or []),
            "known_shop_names": list(self.known_shop_names or []),
            "prompt_credit_on_delete": self.prompt_credit_on_delete,
            "backup_config": self.backup_config(),
            "total_products": self.total_products,
            "total_suppliers": self.total_suppliers,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }
