from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data.

    WALK-IN SENTINEL: each account has exactly one row with is_walk_in=True.
    Sales without an identified customer are attached to it. It cannot be
    deleted.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_account_name", "account_id", "name"),
        db.Index("ix_customers_account_phone", "account_id", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    company_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    is_walk_in = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    joined_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("Account", backref=db.backref("customers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "company_name": self.company_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "is_walk_in": self.is_walk_in,
            "joined_date": to_utc_z(self.joined_date),
        }


class Supplier(db.Model):
    """
    Supplier with a running payable balance.

    current_balance > 0 means the business owes the supplier; < 0 means the
    supplier owes the business. Purchases add (grand_total - amount_paid),
    supplier payments subtract.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_account_name", "account_id", "name"),
        {"sqlite_autoincrement": True},
    )

    OWED_TO_SUPPLIER = "owed_to_supplier"
    OWED_BY_USER = "owed_by_user"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    company_name = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    opening_balance = db.Column(db.Float, nullable=False, default=0.0)
    opening_balance_type = db.Column(db.String(32), nullable=False, default=OWED_TO_SUPPLIER)
    current_balance = db.Column(db.Float, nullable=False, default=0.0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    account = db.relationship("Account", backref=db.backref("suppliers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} balance={self.current_balance}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "company_name": self.company_name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "tax_number": self.tax_number,
            "notes": self.notes,
            "opening_balance": self.opening_balance,
            "opening_balance_type": self.opening_balance_type,
            "current_balance": self.current_balance,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
