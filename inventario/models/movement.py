# inventario/models/movement.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Index, event
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base
from inventario.models._types import Qty, UnitCost, utcnow
from inventario.services.errors import ImmutableLedgerEntry


class MovementEntry(Base):
    """
    库存台账（只追加）

    - quantity 无符号，方向由 kind 决定（AJUSTE 看 is_increment）
    - unit_cost：INGRESO / TRANSFER_RECEIPT 必有，其余记当时的平均成本
    - 写入后不允许 UPDATE / DELETE，纠错只能追加补偿流水
    """

    __tablename__ = "movement_entries"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(sa.String(32), nullable=False)

    product_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    stock_line_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("stock_lines.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[Decimal] = mapped_column(Qty, nullable=False)
    is_increment: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(UnitCost, nullable=True)

    reference: Mapped[Optional[str]] = mapped_column(sa.String(120), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_movement_entries_qty_pos"),
        Index("ix_movement_entries_prod_created", "product_id", "created_at"),
        Index("ix_movement_entries_reference", "reference"),
    )

    def __repr__(self) -> str:
        return (
            f"<MovementEntry id={self.id} kind={self.kind} prod={self.product_id} "
            f"qty={self.quantity} ref={self.reference!r}>"
        )


@event.listens_for(MovementEntry, "before_update")
def _forbid_update(mapper, connection, target):  # noqa: ARG001
    raise ImmutableLedgerEntry(
        "movement entries are immutable", context={"movement_id": target.id}
    )


@event.listens_for(MovementEntry, "before_delete")
def _forbid_delete(mapper, connection, target):  # noqa: ARG001
    raise ImmutableLedgerEntry(
        "movement entries are immutable", context={"movement_id": target.id}
    )
