"""Initial shop ledger schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("accounts", schema=None) as batch_op:
        batch_op.create_index("ix_accounts_code", ["code"], unique=True)

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default=sa.text("20")),
        sa.Column("last_sale_numeric_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_purchase_numeric_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_quotation_numeric_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_return_numeric_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(8), nullable=False, server_default="PKR"),
        sa.Column("company_display_name", sa.String(255), nullable=True),
        sa.Column("has_completed_initial_setup", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_business_cash", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("walk_in_customer_name", sa.String(255), nullable=False, server_default="Walk-in Customer"),
        sa.Column("known_categories", sa.JSON(), nullable=True),
        sa.Column("known_shop_names", sa.JSON(), nullable=True),
        sa.Column("prompt_credit_on_delete", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("auto_backup_frequency", sa.String(16), nullable=False, server_default="disabled"),
        sa.Column("last_manual_backup_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_auto_backup_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_products", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_suppliers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("app_settings", schema=None) as batch_op:
        batch_op.create_index("ix_app_settings_account_id", ["account_id"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("product_code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_products_account_name", ["account_id", "name"], unique=False)
        batch_op.create_index("ix_products_account_active", ["account_id", "is_active"], unique=False)
        batch_op.create_index(
            "uq_products_account_code_active",
            ["account_id", "product_code"],
            unique=True,
            sqlite_where=sa.text("is_active = 1"),
            postgresql_where=sa.text("is_active"),
        )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_walk_in", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("joined_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_customers_account_name", ["account_id", "name"], unique=False)
        batch_op.create_index("ix_customers_account_phone", ["account_id", "phone"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("tax_number", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("opening_balance", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("opening_balance_type", sa.String(32), nullable=False, server_default="owed_to_supplier"),
        sa.Column("current_balance", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("suppliers", schema=None) as batch_op:
        batch_op.create_index("ix_suppliers_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_suppliers_account_name", ["account_id", "name"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("numeric_sale_id", sa.Integer(), nullable=False),
        sa.Column("sale_type", sa.String(16), nullable=False, server_default="REGULAR"),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("shop_name", sa.String(255), nullable=True),
        sa.Column("items_description", sa.Text(), nullable=True),
        sa.Column("sub_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("grand_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("estimated_total_cogs", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("sale_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "numeric_sale_id", name="uq_sales_account_numeric_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_sales_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_account_date", ["account_id", "sale_date"], unique=False)

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("line_kind", sa.String(16), nullable=False, server_default="INVENTORY"),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_code", sa.String(64), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("cost_price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sale_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sale_lines_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_lines_product_id", ["product_id"], unique=False)

    op.create_table(
        "purchase_invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("numeric_purchase_id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("supplier_name", sa.String(255), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sub_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_paid", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="unpaid"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("invoice_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "numeric_purchase_id", name="uq_purchases_account_numeric_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchase_invoices", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_invoices_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_purchase_invoices_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_purchases_account_date", ["account_id", "invoice_date"], unique=False)
        batch_op.create_index("ix_purchases_supplier_status", ["supplier_id", "payment_status"], unique=False)

    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_code", sa.String(64), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("purchase_price", sa.Float(), nullable=False),
        sa.Column("line_total", sa.Float(), nullable=False),
        sa.Column("sale_price", sa.Float(), nullable=True),
        sa.Column("created_product", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["invoice_id"], ["purchase_invoices.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchase_lines", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_lines_invoice_id", ["invoice_id"], unique=False)
        batch_op.create_index("ix_purchase_lines_product_id", ["product_id"], unique=False)

    op.create_table(
        "returns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("numeric_return_id", sa.Integer(), nullable=False),
        sa.Column("original_sale_id", sa.Integer(), nullable=True),
        sa.Column("original_numeric_sale_id", sa.Integer(), nullable=True),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("refund_method", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("subtotal_returned", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("adjustment_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("adjustment_type", sa.String(8), nullable=False, server_default="deduct"),
        sa.Column("net_refund", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("return_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["original_sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "numeric_return_id", name="uq_returns_account_numeric_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("returns", schema=None) as batch_op:
        batch_op.create_index("ix_returns_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_returns_original_sale_id", ["original_sale_id"], unique=False)
        batch_op.create_index("ix_returns_account_date", ["account_id", "return_date"], unique=False)

    op.create_table(
        "return_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("return_id", sa.Integer(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("line_kind", sa.String(16), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_code", sa.String(64), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_at_sale", sa.Float(), nullable=False),
        sa.Column("line_total", sa.Float(), nullable=False),
        sa.Column("add_to_stock", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock_updated", sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(["return_id"], ["returns.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("return_lines", schema=None) as batch_op:
        batch_op.create_index("ix_return_lines_return_id", ["return_id"], unique=False)
        batch_op.create_index("ix_return_lines_product_id", ["product_id"], unique=False)

    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("numeric_quotation_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("quote_date", sa.Date(), nullable=False),
        sa.Column("valid_till_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="Draft"),
        sa.Column("sub_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_item_discount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_item_tax", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("overall_discount_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("overall_tax_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("shipping_charges", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("extra_costs", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("grand_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("terms_and_conditions", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "numeric_quotation_id", name="uq_quotations_account_numeric_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("quotations", schema=None) as batch_op:
        batch_op.create_index("ix_quotations_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_quotations_account_status", ["account_id", "status"], unique=False)

    op.create_table(
        "quotation_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("quotation_id", sa.Integer(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sale_price", sa.Float(), nullable=False),
        sa.Column("discount_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("item_subtotal", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("quotation_lines", schema=None) as batch_op:
        batch_op.create_index("ix_quotation_lines_quotation_id", ["quotation_id"], unique=False)

    op.create_table(
        "business_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("description", sa.String(512), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("related_document_id", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("business_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_business_transactions_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_business_transactions_related_document_id", ["related_document_id"], unique=False)
        batch_op.create_index("ix_business_tx_account_occurred", ["account_id", "occurred_at"], unique=False)
        batch_op.create_index("ix_business_tx_account_type", ["account_id", "type"], unique=False)

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("description", sa.String(512), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("activity_log", schema=None) as batch_op:
        batch_op.create_index("ix_activity_log_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_activity_log_type", ["type"], unique=False)
        batch_op.create_index("ix_activity_account_occurred", ["account_id", "occurred_at"], unique=False)

    op.create_table(
        "backup_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("backup_key", sa.String(64), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("backup_type", sa.String(16), nullable=False, server_default="manual"),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("backup_key", name="uq_backup_snapshots_backup_key"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("backup_snapshots", schema=None) as batch_op:
        batch_op.create_index("ix_backup_snapshots_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_backups_account_created", ["account_id", "created_at"], unique=False)


def downgrade():
    for table in (
        "backup_snapshots",
        "activity_log",
        "business_transactions",
        "quotation_lines",
        "quotations",
        "return_lines",
        "returns",
        "purchase_lines",
        "purchase_invoices",
        "sale_lines",
        "sales",
        "suppliers",
        "customers",
        "products",
        "app_settings",
        "accounts",
    ):
        op.drop_table(table)
