from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PARTIALLY_PAID = "partially_paid"
PAYMENT_STATUS_UNPAID = "unpaid"

OPEN_PAYMENT_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIALLY_PAID)


class PurchaseInvoice(db.Model):
    """
    Purchase invoice from a supplier.

    STOCK & MONEY EFFECTS (applied atomically with the insert):
    - restock lines add quantity to existing products and overwrite cost_price
    - new-product lines create products
    - supplier.current_balance += grand_total - amount_paid, where
      grand_total = sub_total + tax_amount
    - business cash -= amount_paid

    payment_status is always derived from (grand_total, amount_paid); see
    purchase_service.derive_payment_status.
    """
    __tablename__ = "purchase_invoices"
    __table_args__ = (
        db.UniqueConstraint("account_id", "numeric_purchase_id", name="uq_purchases_account_numeric_id"),
        db.Index("ix_purchases_account_date", "account_id", "invoice_date"),
        db.Index("ix_purchases_supplier_status", "supplier_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    numeric_purchase_id = db.Column(db.Integer, nullable=False)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    supplier_name = db.Column(db.String(255), nullable=False)
    invoice_number = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    sub_total = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    # grand total: sub_total + tax_amount
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    amount_paid = db.Column(db.Float, nullable=False, default=0.0)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_UNPAID)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchase_invoices", lazy=True))
    lines = db.relationship(
        "PurchaseLine",
        backref="invoice",
        lazy=True,
        order_by="PurchaseLine.line_number",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def balance_due(self) -> float:
        return max(0.0, (self.total_amount or 0.0) - (self.amount_paid or 0.0))

    def __repr__(self) -> str:
        return f"<PurchaseInvoice id={self.id} numeric_purchase_id={self.numeric_purchase_id} status={self.payment_status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "numeric_purchase_id": self.numeric_purchase_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "invoice_number": self.invoice_number,
            "notes": self.notes,
            "sub_total": self.sub_total,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "amount_paid": self.amount_paid,
            "balance_due": self.balance_due,
            "payment_status": self.payment_status,
            "invoice_date": to_utc_z(self.invoice_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("purchase_invoices.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    purchase_price = db.Column(db.Float, nullable=False)
    line_total = db.Column(db.Float, nullable=False)

    # Only meaningful for lines that created the product
    sale_price = db.Column(db.Float, nullable=True)
    created_product = db.Column(db.Boolean, nullable=False, default=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "purchase_price": self.purchase_price,
            "line_total": self.line_total,
            "sale_price": self.sale_price,
            "created_product": self.created_product,
        }
