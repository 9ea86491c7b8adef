"""inventario core schema

Revision ID: 0001_inventario_core
Revises:
Create Date: 2026-10-17 09:00:00

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_inventario_core"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QTY = sa.Numeric(18, 4)
COST = sa.Numeric(18, 6)
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    # ---------- 主数据 ----------
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("active", sa.Boolean, nullable=False),
    )
    op.create_table(
        "warehouse_locations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "warehouse_id",
            sa.Integer,
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("active", sa.Boolean, nullable=False),
        sa.UniqueConstraint("warehouse_id", "code", name="uq_warehouse_locations_wh_code"),
    )
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tax_id", sa.String(11), nullable=False),
        sa.Column("trade_name", sa.String(255), nullable=True),
        sa.Column("contact", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(32), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("active", sa.Boolean, nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.UniqueConstraint("tax_id", name="uq_suppliers_tax_id"),
    )

    # ---------- 库存聚合 ----------
    op.create_table(
        "stock_lines",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "product_id",
            sa.Integer,
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "warehouse_id",
            sa.Integer,
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "location_id",
            sa.Integer,
            sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("location_key", sa.Integer, nullable=False, server_default="0"),
        sa.Column("available", QTY, nullable=False, server_default="0"),
        sa.Column("committed", QTY, nullable=False, server_default="0"),
        sa.Column("average_cost", COST, nullable=False, server_default="0"),
        sa.Column("minimum_stock", QTY, nullable=False, server_default="0"),
        sa.Column("updated_at", TS, nullable=False),
        sa.UniqueConstraint(
            "product_id", "warehouse_id", "location_key", name="uq_stock_lines_prod_wh_loc"
        ),
        sa.CheckConstraint("available >= 0", name="ck_stock_lines_available_nonneg"),
        sa.CheckConstraint("committed >= 0", name="ck_stock_lines_committed_nonneg"),
        sa.CheckConstraint("average_cost >= 0", name="ck_stock_lines_avg_cost_nonneg"),
    )
    op.create_index("ix_stock_lines_wh_prod", "stock_lines", ["warehouse_id", "product_id"])

    # ---------- 台账 ----------
    op.create_table(
        "movement_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column(
            "product_id", sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column(
            "stock_line_id",
            sa.Integer,
            sa.ForeignKey("stock_lines.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("is_increment", sa.Boolean, nullable=False),
        sa.Column("unit_cost", COST, nullable=True),
        sa.Column("reference", sa.String(120), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("actor_user_id", sa.Integer, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_movement_entries_qty_pos"),
    )
    op.create_index(
        "ix_movement_entries_prod_created", "movement_entries", ["product_id", "created_at"]
    )
    op.create_index("ix_movement_entries_reference", "movement_entries", ["reference"])

    # ---------- 预留 ----------
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("product_id", sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("warehouse_id", sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "location_id",
            sa.Integer,
            sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("stock_line_id", sa.Integer, sa.ForeignKey("stock_lines.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("state", sa.String(16), nullable=False),
        sa.Column("linked_transaction_id", sa.Integer, nullable=True),
        sa.Column("linked_detail_id", sa.Integer, nullable=True),
        sa.Column("expires_at", TS, nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column(
            "movement_id",
            sa.Integer,
            sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("triggered_by", sa.Integer, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_reservations_qty_pos"),
    )
    op.create_index("ix_reservations_state_expires", "reservations", ["state", "expires_at"])
    op.create_index("ix_reservations_linked_tx", "reservations", ["linked_transaction_id"])

    # ---------- 调拨 ----------
    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("product_id", sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "origin_warehouse_id", sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column(
            "origin_location_id",
            sa.Integer,
            sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "destination_warehouse_id",
            sa.Integer,
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "destination_location_id",
            sa.Integer,
            sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("state", sa.String(16), nullable=False),
        sa.Column(
            "dispatch_movement_id",
            sa.Integer,
            sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "receipt_movement_id",
            sa.Integer,
            sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("reference", sa.String(120), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("closed_by", sa.Integer, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_transfers_qty_pos"),
    )
    op.create_index("ix_transfers_state", "transfers", ["state"])

    # ---------- 采购 ----------
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "supplier_id",
            sa.Integer,
            sa.ForeignKey("suppliers.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("purchased_at", TS, nullable=False),
        sa.Column("total", QTY, nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_by", sa.Integer, nullable=True),
    )
    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("purchase_id", sa.Integer, sa.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit_price", COST, nullable=False),
        sa.Column("subtotal", QTY, nullable=False),
        sa.Column(
            "movement_id",
            sa.Integer,
            sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.UniqueConstraint("purchase_id", "product_id", name="uq_purchase_lines_purchase_product"),
    )

    # ---------- 审计 ----------
    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.Integer, nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("table_name", sa.String(64), nullable=False),
        sa.Column("ref", sa.String(128), nullable=True),
        sa.Column("meta", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_ref_time", "audit_events", ["ref", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_ref_time", table_name="audit_events")
    op.drop_index("ix_audit_events_action", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("purchase_lines")
    op.drop_table("purchases")
    op.drop_index("ix_transfers_state", table_name="transfers")
    op.drop_table("transfers")
    op.drop_index("ix_reservations_linked_tx", table_name="reservations")
    op.drop_index("ix_reservations_state_expires", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_movement_entries_reference", table_name="movement_entries")
    op.drop_index("ix_movement_entries_prod_created", table_name="movement_entries")
    op.drop_table("movement_entries")
    op.drop_index("ix_stock_lines_wh_prod", table_name="stock_lines")
    op.drop_table("stock_lines")
    op.drop_table("suppliers")
    op.drop_table("warehouse_locations")
    op.drop_table("warehouses")
    op.drop_table("products")
