# inventario/models/stock_line.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base
from inventario.models._types import Qty, UnitCost, utcnow


class StockLine(Base):
    """
    库存聚合：(product_id, warehouse_id, location_key) 一行

    - available：可售/可预留
    - committed：已被活动预留占用
    - average_cost：加权平均单位成本
    - minimum_stock：低库存阈值，0 表示不监控
    - location_key：无库位时为 0，使唯一键对“无库位”同样生效
    """

    __tablename__ = "stock_lines"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    product_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"),
        nullable=True,
    )
    location_key: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    available: Mapped[Decimal] = mapped_column(Qty, nullable=False, default=Decimal("0"))
    committed: Mapped[Decimal] = mapped_column(Qty, nullable=False, default=Decimal("0"))
    average_cost: Mapped[Decimal] = mapped_column(UnitCost, nullable=False, default=Decimal("0"))
    minimum_stock: Mapped[Decimal] = mapped_column(Qty, nullable=False, default=Decimal("0"))

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "product_id", "warehouse_id", "location_key", name="uq_stock_lines_prod_wh_loc"
        ),
        CheckConstraint("available >= 0", name="ck_stock_lines_available_nonneg"),
        CheckConstraint("committed >= 0", name="ck_stock_lines_committed_nonneg"),
        CheckConstraint("average_cost >= 0", name="ck_stock_lines_avg_cost_nonneg"),
        Index("ix_stock_lines_wh_prod", "warehouse_id", "product_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StockLine prod={self.product_id} wh={self.warehouse_id} loc={self.location_id} "
            f"avail={self.available} committed={self.committed} avg={self.average_cost}>"
        )
