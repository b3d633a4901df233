from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

LINE_KIND_INVENTORY = "INVENTORY"
LINE_KIND_MANUAL = "MANUAL"


class Sale(db.Model):
    """
    Completed sale document.

    numeric_sale_id is the human-facing sale number: claimed from
    AppSettings.last_sale_numeric_id in the same transaction that inserts the
    row, so it is unique and gap-free per account.

    customer_id may be patched once after commit by the deferred customer
    resolution task; nothing else on the row changes after insert.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("account_id", "numeric_sale_id", name="uq_sales_account_numeric_id"),
        db.Index("ix_sales_account_date", "account_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    TYPE_REGULAR = "REGULAR"
    TYPE_INSTANT = "INSTANT"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    numeric_sale_id = db.Column(db.Integer, nullable=False)

    sale_type = db.Column(db.String(16), nullable=False, default=TYPE_REGULAR)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    shop_name = db.Column(db.String(255), nullable=True)
    items_description = db.Column(db.Text, nullable=True)

    sub_total = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    grand_total = db.Column(db.Float, nullable=False, default=0.0)
    estimated_total_cogs = db.Column(db.Float, nullable=False, default=0.0)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("Account", backref=db.backref("sales", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} numeric_sale_id={self.numeric_sale_id} total={self.grand_total}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "numeric_sale_id": self.numeric_sale_id,
            "sale_type": self.sale_type,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "shop_name": self.shop_name,
            "items_description": self.items_description,
            "sub_total": self.sub_total,
            "discount_amount": self.discount_amount,
            "grand_total": self.grand_total,
            "estimated_total_cogs": self.estimated_total_cogs,
            "sale_date": to_utc_z(self.sale_date),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    One sold item.

    line_kind is the union tag:
    - INVENTORY: product_id/product_code set, stock was decremented
    - MANUAL: free-text item, no inventory link, cost_price is whatever the
      cashier entered (0 when unknown)
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    line_kind = db.Column(db.String(16), nullable=False, default=LINE_KIND_INVENTORY)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    product_code = db.Column(db.String(64), nullable=True)
    description = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)
    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    line_total = db.Column(db.Float, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "line_kind": self.line_kind,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "description": self.description,
            "quantity": self.quantity,
            "price": self.price,
            "cost_price": self.cost_price,
            "line_total": self.line_total,
        }
