# inventario/models/reservation.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base
from inventario.models._types import Qty, utcnow
from inventario.models.enums import ReservationState


class Reservation(Base):
    """
    库存预留：ACTIVE 期间数量记在 committed 上

    终态 CONFIRMED / RELEASED / CANCELLED / EXPIRED，每张单只能进入一次。
    expires_at 只是 TTL 数据，由过期回收任务消费。
    """

    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    product_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"), nullable=True
    )
    stock_line_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("stock_lines.id", ondelete="RESTRICT"), nullable=False
    )

    quantity: Mapped[Decimal] = mapped_column(Qty, nullable=False)
    state: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=ReservationState.ACTIVE.value
    )

    # 关联的业务单据（销售单 / 工单 及其明细）
    linked_transaction_id: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    linked_detail_id: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)

    # confirm 时写入的 SALIDA
    movement_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"), nullable=True
    )
    created_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    triggered_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_reservations_qty_pos"),
        Index("ix_reservations_state_expires", "state", "expires_at"),
        Index("ix_reservations_linked_tx", "linked_transaction_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation id={self.id} prod={self.product_id} wh={self.warehouse_id} "
            f"qty={self.quantity} state={self.state}>"
        )
