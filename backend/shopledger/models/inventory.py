from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class Product(db.Model):
    """
    Inventory item.

    PRODUCT CODE DESIGN DECISION:
    - product_code is unique among ACTIVE products of an account
    - Removing a product is a soft delete (is_active=False, deleted_at set),
      so historical sale/purchase lines keep pointing at a real row and the
      code becomes reusable
    - The partial unique index enforces this at the database level; services
      also check up front so callers get DuplicateKeyError instead of an
      IntegrityError

    STOCK:
    - stock is a non-negative integer, decremented by sales and increased by
      purchases and restocking returns
    - cost_price is overwritten by the latest purchase price on restock
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index(
            "uq_products_account_code_active",
            "account_id",
            "product_code",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        db.Index("ix_products_account_name", "account_id", "name"),
        db.Index("ix_products_account_active", "account_id", "is_active"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    product_code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=True)

    price = db.Column(db.Float, nullable=False, default=0.0)
    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    discount_percentage = db.Column(db.Float, nullable=False, default=0.0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    account = db.relationship("Account", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "product_code": self.product_code,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "cost_price": self.cost_price,
            "stock": self.stock,
            "discount_percentage": self.discount_percentage,
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
