from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

QUOTATION_STATUSES = ("Draft", "Sent", "Accepted", "Declined", "Expired")


class Quotation(db.Model):
    """
    Price quotation. Never touches stock or cash.

    grand_total = sum(line totals) - overall_discount + overall_tax
                  + shipping_charges + extra_costs
    """
    __tablename__ = "quotations"
    __table_args__ = (
        db.UniqueConstraint("account_id", "numeric_quotation_id", name="uq_quotations_account_numeric_id"),
        db.Index("ix_quotations_account_status", "account_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    numeric_quotation_id = db.Column(db.Integer, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    quote_date = db.Column(db.Date, nullable=False)
    valid_till_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Draft")

    sub_total = db.Column(db.Float, nullable=False, default=0.0)
    total_item_discount = db.Column(db.Float, nullable=False, default=0.0)
    total_item_tax = db.Column(db.Float, nullable=False, default=0.0)
    overall_discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    overall_tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    shipping_charges = db.Column(db.Float, nullable=False, default=0.0)
    extra_costs = db.Column(db.Float, nullable=False, default=0.0)
    grand_total = db.Column(db.Float, nullable=False, default=0.0)

    notes = db.Column(db.Text, nullable=True)
    terms_and_conditions = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "QuotationLine",
        backref="quotation",
        lazy=True,
        order_by="QuotationLine.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Quotation id={self.id} numeric_quotation_id={self.numeric_quotation_id} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "numeric_quotation_id": self.numeric_quotation_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "quote_date": self.quote_date.isoformat() if self.quote_date else None,
            "valid_till_date": self.valid_till_date.isoformat() if self.valid_till_date else None,
            "status": self.status,
            "sub_total": self.sub_total,
            "total_item_discount": self.total_item_discount,
            "total_item_tax": self.total_item_tax,
            "overall_discount_amount": self.overall_discount_amount,
            "overall_tax_amount": self.overall_tax_amount,
            "shipping_charges": self.shipping_charges,
            "extra_costs": self.extra_costs,
            "grand_total": self.grand_total,
            "notes": self.notes,
            "terms_and_conditions": self.terms_and_conditions,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class QuotationLine(db.Model):
    __tablename__ = "quotation_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotations.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    sale_price = db.Column(db.Float, nullable=False)
    discount_percentage = db.Column(db.Float, nullable=False, default=0.0)
    tax_percentage = db.Column(db.Float, nullable=False, default=0.0)

    item_subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=False, default=0.0)
    line_total = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quotation_id": self.quotation_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "description": self.description,
            "quantity": self.quantity,
            "sale_price": self.sale_price,
            "discount_percentage": self.discount_percentage,
            "tax_percentage": self.tax_percentage,
            "item_subtotal": self.item_subtotal,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "line_total": self.line_total,
        }
