from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

ADJUSTMENT_ADD = "add"
ADJUSTMENT_DEDUCT = "deduct"


class Return(db.Model):
    """
    Customer return / refund.

    net_refund = subtotal_returned + adjustment (add) or
                 max(0, subtotal_returned - adjustment) (deduct)

    The refund is paid out of business cash in the same transaction that
    inserts this row.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.UniqueConstraint("account_id", "numeric_return_id", name="uq_returns_account_numeric_id"),
        db.Index("ix_returns_account_date", "account_id", "return_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    numeric_return_id = db.Column(db.Integer, nullable=False)

    original_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    original_numeric_sale_id = db.Column(db.Integer, nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    reason = db.Column(db.String(255), nullable=True)
    refund_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    subtotal_returned = db.Column(db.Float, nullable=False, default=0.0)
    adjustment_amount = db.Column(db.Float, nullable=False, default=0.0)
    adjustment_type = db.Column(db.String(8), nullable=False, default=ADJUSTMENT_DEDUCT)
    net_refund = db.Column(db.Float, nullable=False, default=0.0)

    return_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    original_sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))
    lines = db.relationship(
        "ReturnLine",
        backref="return_doc",
        lazy=True,
        order_by="ReturnLine.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Return id={self.id} numeric_return_id={self.numeric_return_id} net_refund={self.net_refund}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "numeric_return_id": self.numeric_return_id,
            "original_sale_id": self.original_sale_id,
            "original_numeric_sale_id": self.original_numeric_sale_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "reason": self.reason,
            "refund_method": self.refund_method,
            "notes": self.notes,
            "subtotal_returned": self.subtotal_returned,
            "adjustment_amount": self.adjustment_amount,
            "adjustment_type": self.adjustment_type,
            "net_refund": self.net_refund,
            "return_date": to_utc_z(self.return_date),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class ReturnLine(db.Model):
    """
    stock_updated is tri-state:
    - True: an inventory line whose product was found and restocked
    - False: an inventory line that asked for restock but the product was gone
    - None: restock not requested, or a manual line
    """
    __tablename__ = "return_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    line_kind = db.Column(db.String(16), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    product_code = db.Column(db.String(64), nullable=True)
    description = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale = db.Column(db.Float, nullable=False)
    line_total = db.Column(db.Float, nullable=False)

    add_to_stock = db.Column(db.Boolean, nullable=False, default=False)
    stock_updated = db.Column(db.Boolean, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "line_number": self.line_number,
            "line_kind": self.line_kind,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "description": self.description,
            "quantity": self.quantity,
            "price_at_sale": self.price_at_sale,
            "line_total": self.line_total,
            "add_to_stock": self.add_to_stock,
            "stock_updated": self.stock_updated,
        }
