"""Initial schema

Revision ID: 001
Revises:
Create Date: 2024-06-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Stores
    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False, unique=True),
        sa.Column("code", sa.String(50), nullable=True, unique=True),
        sa.Column("timezone", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Inventory
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("item_name", sa.String(255), nullable=False, index=True),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("stock_quantity", sa.Numeric(14, 4), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("store_id", "item_name", name="uq_inventory_store_item"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock_non_negative"),
    )

    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("inventory_item_id", sa.Integer(), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("movement_type", sa.String(30), nullable=False),
        sa.Column("quantity_change", sa.Numeric(14, 4), nullable=False),
        sa.Column("previous_quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("new_quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index("idx_movement_reference", "inventory_movements", ["reference_type", "reference_id"])

    # Recipes and catalog
    op.create_table(
        "recipes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("recipe_id", sa.Integer(), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("ingredient_name", sa.String(255), nullable=False),
        sa.Column("quantity_per_unit", sa.Numeric(12, 4), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("inventory_item_id", sa.Integer(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity_per_unit > 0", name="ck_recipe_ingredient_qty_positive"),
    )

    op.create_table(
        "product_catalog",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("product_name", sa.String(255), nullable=False, index=True),
        sa.Column("recipe_id", sa.Integer(), sa.ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_direct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("store_id", "product_name", name="uq_catalog_store_product"),
    )

    # Deduction audit ledger
    op.create_table(
        "inventory_sync_audit",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.String(64), nullable=False, index=True),
        sa.Column("store_id", sa.Integer(), nullable=True, index=True),
        sa.Column("sync_status", sa.String(20), nullable=False, index=True),
        sa.Column("items_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("items_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_details", sa.Text(), nullable=True),
        sa.Column("affected_inventory_items", sa.JSON(), nullable=True),
        sa.Column("sync_duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    # At most one success row per transaction
    op.create_index(
        "uq_sync_audit_success_per_transaction",
        "inventory_sync_audit",
        ["transaction_id"],
        unique=True,
        postgresql_where=sa.text("sync_status = 'success'"),
        sqlite_where=sa.text("sync_status = 'success'"),
    )

    # POS sales ledger
    op.create_table(
        "sale_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("receipt_number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="completed"),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("vat_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("vat_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("vat_exempt_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("zero_rated_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount_type", sa.String(30), nullable=True),
        sa.Column("payment_method", sa.String(30), nullable=False, server_default="cash"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_sale_store_created", "sale_transactions", ["store_id", "created_at"])

    op.create_table(
        "sale_transaction_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.String(36), sa.ForeignKey("sale_transactions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
    )

    op.create_table(
        "refunds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("transaction_id", sa.String(36), sa.ForeignKey("sale_transactions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("refund_vat_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("refund_receipt_number", sa.String(50), nullable=True),
        sa.Column("refund_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    # EOD transmissions
    op.create_table(
        "eod_transmissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("sales_date", sa.Date(), nullable=False, index=True),
        sa.Column("eod_counter", sa.Integer(), nullable=False),
        sa.Column("net_sales", sa.Numeric(16, 2), nullable=False),
        sa.Column("grand_total", sa.Numeric(16, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="success"),
        sa.Column("partner", sa.String(30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index(
        "uq_eod_success_per_store_day",
        "eod_transmissions",
        ["store_id", "sales_date"],
        unique=True,
        postgresql_where=sa.text("status = 'success'"),
        sqlite_where=sa.text("status = 'success'"),
    )


def downgrade() -> None:
    op.drop_index("uq_eod_success_per_store_day", table_name="eod_transmissions")
    op.drop_table("eod_transmissions")
    op.drop_table("refunds")
    op.drop_table("sale_transaction_items")
    op.drop_index("idx_sale_store_created", table_name="sale_transactions")
    op.drop_table("sale_transactions")
    op.drop_index("uq_sync_audit_success_per_transaction", table_name="inventory_sync_audit")
    op.drop_table("inventory_sync_audit")
    op.drop_table("product_catalog")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_index("idx_movement_reference", table_name="inventory_movements")
    op.drop_table("inventory_movements")
    op.drop_table("inventory_items")
    op.drop_table("stores")
