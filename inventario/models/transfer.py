# inventario/models/transfer.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base
from inventario.models._types import Qty, utcnow
from inventario.models.enums import TransferState


class Transfer(Base):
    """
    仓间调拨（两阶段）

    PENDING：源仓已扣减并写 TRANSFER_DISPATCH，目的仓尚未入账（在途）
    CONFIRMED：目的仓入账并写 TRANSFER_RECEIPT
    CANCELLED：源仓恢复，目的仓不动
    """

    __tablename__ = "transfers"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    product_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    origin_warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False
    )
    origin_location_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"), nullable=True
    )
    destination_warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False
    )
    destination_location_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouse_locations.id", ondelete="RESTRICT"), nullable=True
    )

    quantity: Mapped[Decimal] = mapped_column(Qty, nullable=False)
    state: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=TransferState.PENDING.value
    )

    # 建单时在同一事务内回填
    dispatch_movement_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"), nullable=True
    )
    receipt_movement_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"), nullable=True
    )

    reference: Mapped[Optional[str]] = mapped_column(sa.String(120), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    closed_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_transfers_qty_pos"),
        Index("ix_transfers_state", "state"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transfer id={self.id} prod={self.product_id} "
            f"{self.origin_warehouse_id}->{self.destination_warehouse_id} "
            f"qty={self.quantity} state={self.state}>"
        )
